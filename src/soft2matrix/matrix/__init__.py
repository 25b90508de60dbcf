"""Matrix directory: writer, reader, and the downstream matrix tools."""

from soft2matrix.matrix.directory import (
    MatrixDirectory,
    TruncatedMatrixError,
    iter_rows,
    read_index,
)
from soft2matrix.matrix.export import matrix_to_frame, write_matrix_table
from soft2matrix.matrix.rank import rank_averages, rank_row, rank_transform
from soft2matrix.matrix.transpose import invert_matrix
from soft2matrix.matrix.writer import MatrixWriter, TruncatedWriteError

__all__ = [
    "MatrixDirectory",
    "TruncatedMatrixError",
    "iter_rows",
    "read_index",
    "matrix_to_frame",
    "write_matrix_table",
    "rank_averages",
    "rank_row",
    "rank_transform",
    "invert_matrix",
    "MatrixWriter",
    "TruncatedWriteError",
]
