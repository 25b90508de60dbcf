"""Append-only writer for the matrix directory (arrays, genes, data)."""

from collections.abc import Iterable
from pathlib import Path

import numpy as np
import structlog

logger = structlog.get_logger()

ARRAYS_FILE = "arrays"
GENES_FILE = "genes"
DATA_FILE = "data"
INVERSE_DATA_FILE = "inverse_data"

VALUE_DTYPE = np.dtype(np.float64)


class TruncatedWriteError(OSError):
    """A write to a matrix file stored fewer bytes than requested."""


class MatrixWriter:
    """Writes one converter run's output into an existing directory.

    The three files are opened (truncated) once and only appended to:
    ``arrays`` receives each sample id as it is declared, ``genes`` the
    gene symbols once the gene space is fixed, and ``data`` one row of
    ``gene_count`` native-endian float64 values per completed sample.
    Every write is flushed so partial runs leave whole rows on disk.
    """

    def __init__(self, output_dir: Path):
        """
        Args:
            output_dir: Matrix directory; must already exist

        Raises:
            NotADirectoryError: If output_dir is not an existing directory
        """
        self.output_dir = Path(output_dir)
        if not self.output_dir.is_dir():
            raise NotADirectoryError(f"Output directory does not exist: {self.output_dir}")

        self.gene_count: int | None = None
        self.arrays_written = 0
        self.rows_written = 0

        self._arrays = open(self.output_dir / ARRAYS_FILE, "w", encoding="utf-8")
        self._genes = open(self.output_dir / GENES_FILE, "w", encoding="utf-8")
        self._data = open(self.output_dir / DATA_FILE, "wb")

    @property
    def data_path(self) -> Path:
        return self.output_dir / DATA_FILE

    def write_array_id(self, array_id: str) -> None:
        """Append one declared sample id to the arrays index."""
        self._arrays.write(f"{array_id}\n")
        self._arrays.flush()
        self.arrays_written += 1

    def write_gene_index(self, symbols: Iterable[str]) -> None:
        """Write the gene symbols in output order and fix the row width.

        Raises:
            RuntimeError: If the gene index was already written
        """
        if self.gene_count is not None:
            raise RuntimeError("gene index already written")

        count = 0
        for symbol in symbols:
            self._genes.write(f"{symbol}\n")
            count += 1
        self._genes.flush()
        self.gene_count = count
        logger.info("gene_index_written", gene_count=count)

    def write_row(self, values: np.ndarray) -> None:
        """Append one sample row to the data file.

        Args:
            values: gene_count values in gene output order

        Raises:
            RuntimeError: If the gene index has not been written yet
            ValueError: If the row length differs from gene_count
            TruncatedWriteError: If fewer bytes were stored than requested
        """
        if self.gene_count is None:
            raise RuntimeError("cannot write a row before the gene index")

        row = np.ascontiguousarray(values, dtype=VALUE_DTYPE)
        if row.shape != (self.gene_count,):
            raise ValueError(
                f"row has {row.size} values, expected {self.gene_count}"
            )

        payload = row.tobytes()
        written = self._data.write(payload)
        if written != len(payload):
            logger.error(
                "data_write_truncated",
                row=self.rows_written,
                requested=len(payload),
                written=written,
            )
            raise TruncatedWriteError(
                f"short write on {self.data_path}: {written} of {len(payload)} bytes"
            )
        self._data.flush()
        self.rows_written += 1

    def write_missing_row(self) -> None:
        """Append an all-NaN row for a sample whose table never appeared."""
        self.write_row(np.full(self.gene_count or 0, np.nan, dtype=VALUE_DTYPE))

    def close(self) -> None:
        for handle in (self._arrays, self._genes, self._data):
            if not handle.closed:
                handle.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
