"""Blocked transposition of ``data`` into ``inverse_data``."""

from pathlib import Path

import numpy as np
import structlog

from soft2matrix.matrix.directory import MatrixDirectory, TruncatedMatrixError
from soft2matrix.matrix.writer import VALUE_DTYPE

logger = structlog.get_logger()

DEFAULT_BLOCK_ROWS = 3000


def invert_matrix(matrix_dir: Path, block_rows: int = DEFAULT_BLOCK_ROWS) -> Path:
    """Write the genes x arrays transpose of a matrix directory's data.

    Reads ``block_rows`` sample rows at a time and scatters them into their
    columns of the memory-mapped output, so memory stays bounded by one
    block regardless of matrix size. The row and column counts come from the
    ``arrays`` and ``genes`` index files and must be matched exactly.

    Args:
        matrix_dir: Matrix directory
        block_rows: Sample rows processed per block

    Returns:
        Path to ``inverse_data``

    Raises:
        TruncatedMatrixError: If ``data`` holds fewer rows than ``arrays`` lists
    """
    if block_rows < 1:
        raise ValueError(f"block_rows must be >= 1, got {block_rows}")

    directory = MatrixDirectory(matrix_dir)
    n_arrays, n_genes = directory.shape
    directory.validate()

    output_path = directory.data_path(inverse=True)
    logger.info("invert_start", arrays=n_arrays, genes=n_genes, block_rows=block_rows)

    if n_arrays == 0 or n_genes == 0:
        output_path.write_bytes(b"")
        logger.info("invert_complete", path=str(output_path), empty=True)
        return output_path

    inverse = np.memmap(output_path, dtype=VALUE_DTYPE, mode="w+", shape=(n_genes, n_arrays))
    try:
        with open(directory.data_path(), "rb") as data:
            for row0 in range(0, n_arrays, block_rows):
                rows = min(block_rows, n_arrays - row0)
                block = np.fromfile(data, dtype=VALUE_DTYPE, count=rows * n_genes)
                if block.size != rows * n_genes:
                    raise TruncatedMatrixError(
                        f"data file is truncated at row {row0 + block.size // n_genes}"
                    )
                inverse[:, row0:row0 + rows] = block.reshape(rows, n_genes).T
        inverse.flush()
    finally:
        del inverse

    logger.info("invert_complete", path=str(output_path))
    return output_path
