"""Reader for the matrix directory layout shared by the converter and its tools.

Layout:
    arrays        one sample id per line, platform declaration order
    genes         one gene symbol per line, ascending HGNC id order
    data          arrays x genes float64, row-major, native byte order
    inverse_data  genes x arrays float64 (written by invert_matrix)
"""

from collections.abc import Iterator
from pathlib import Path

import numpy as np
import structlog

from soft2matrix.matrix.writer import (
    ARRAYS_FILE,
    DATA_FILE,
    GENES_FILE,
    INVERSE_DATA_FILE,
    VALUE_DTYPE,
)

logger = structlog.get_logger()


class TruncatedMatrixError(ValueError):
    """A data file holds fewer values than its index files declare."""


def read_index(path: Path) -> list[str]:
    """Read a newline-terminated index file (arrays or genes)."""
    return Path(path).read_text(encoding="utf-8").splitlines()


def iter_rows(path: Path, width: int, block_rows: int = 1024) -> Iterator[np.ndarray]:
    """Yield consecutive rows of ``width`` float64 values from a raw file.

    Stops at the first incomplete row; trailing partial data is ignored.
    """
    if width <= 0:
        return
    with open(path, "rb") as f:
        while True:
            block = np.fromfile(f, dtype=VALUE_DTYPE, count=block_rows * width)
            complete = block.size // width
            yield from block[: complete * width].reshape(complete, width)
            if block.size < block_rows * width:
                return


class MatrixDirectory:
    """A directory holding one gene-by-sample matrix.

    Attributes:
        path: Directory path
        arrays: Sample ids (rows of data)
        genes: Gene symbols (columns of data)
    """

    def __init__(self, path: Path):
        """
        Raises:
            NotADirectoryError: If path is not a directory
            FileNotFoundError: If the arrays or genes index is missing
        """
        self.path = Path(path)
        if not self.path.is_dir():
            raise NotADirectoryError(f"Matrix directory does not exist: {self.path}")

        self.arrays = read_index(self.path / ARRAYS_FILE)
        self.genes = read_index(self.path / GENES_FILE)

    @property
    def shape(self) -> tuple[int, int]:
        """(arrays, genes) dimensions of ``data``."""
        return len(self.arrays), len(self.genes)

    def data_path(self, inverse: bool = False) -> Path:
        return self.path / (INVERSE_DATA_FILE if inverse else DATA_FILE)

    def data_shape(self, inverse: bool = False) -> tuple[int, int]:
        rows, cols = self.shape
        return (cols, rows) if inverse else (rows, cols)

    def validate(self, inverse: bool = False) -> None:
        """Check that the data file holds exactly rows x cols values.

        Raises:
            FileNotFoundError: If the data file is missing
            TruncatedMatrixError: If the data file is shorter than declared
        """
        path = self.data_path(inverse)
        rows, cols = self.data_shape(inverse)
        expected = rows * cols * VALUE_DTYPE.itemsize
        actual = path.stat().st_size

        if actual < expected:
            raise TruncatedMatrixError(
                f"{path} holds {actual} bytes, expected {expected} "
                f"({rows} x {cols} float64 values)"
            )
        if actual > expected:
            logger.warning(
                "matrix_trailing_data",
                path=str(path),
                expected_bytes=expected,
                actual_bytes=actual,
            )

    def read_data(self, inverse: bool = False) -> np.ndarray:
        """Load the whole matrix into memory.

        Returns:
            (arrays, genes) array, or (genes, arrays) for inverse=True
        """
        self.validate(inverse)
        rows, cols = self.data_shape(inverse)
        values = np.fromfile(self.data_path(inverse), dtype=VALUE_DTYPE, count=rows * cols)
        return values.reshape(rows, cols)
