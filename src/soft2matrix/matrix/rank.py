"""Rank transform and quantile normalisation of matrix rows."""

from pathlib import Path

import numpy as np
import structlog

from soft2matrix.matrix.directory import MatrixDirectory, iter_rows
from soft2matrix.matrix.writer import VALUE_DTYPE

logger = structlog.get_logger()


def _finite_order(values: np.ndarray) -> tuple[np.ndarray, int]:
    """Indices of the finite values in ascending order, and their count.

    Ties keep their column order.
    """
    finite = np.isfinite(values)
    keys = np.where(finite, values, np.inf)
    order = np.argsort(keys, kind="stable")
    n_finite = int(finite.sum())
    return order[:n_finite], n_finite


def rank_row(values: np.ndarray, rank_values: np.ndarray | None = None) -> np.ndarray:
    """Replace each finite value by its rank; non-finite values become NaN.

    Ranks are 0-based and scaled by ``n / n_finite`` so rows with missing
    values span the same range as complete rows. With ``rank_values`` the
    value at rank i is ``rank_values[i]`` instead (quantile normalisation).

    Args:
        values: One matrix row
        rank_values: Optional per-rank replacement values

    Returns:
        New array of the same length
    """
    n = values.size
    order, n_finite = _finite_order(values)

    ranks = np.full(n, np.nan, dtype=VALUE_DTYPE)
    if n_finite == 0:
        return ranks

    if rank_values is None:
        ranks[order] = np.arange(n_finite, dtype=VALUE_DTYPE) * (n / n_finite)
    else:
        ranks[order] = rank_values[:n_finite]
    return ranks


def rank_averages(rows, width: int) -> np.ndarray:
    """Mean of the i-th smallest finite value over all rows, per rank i.

    Ranks no row reaches are NaN.
    """
    sums = np.zeros(width, dtype=VALUE_DTYPE)
    counts = np.zeros(width, dtype=np.int64)

    for values in rows:
        order, n_finite = _finite_order(values)
        sums[:n_finite] += values[order]
        counts[:n_finite] += 1

    averages = np.full(width, np.nan, dtype=VALUE_DTYPE)
    np.divide(sums, counts, out=averages, where=counts > 0)
    return averages


def rank_transform(
    matrix_dir: Path,
    output_path: Path,
    quantile_normalise: bool = False,
    use_inverse: bool = False,
) -> int:
    """Rank-transform every row of a matrix into a raw float64 file.

    By default each array (row of ``data``) is ranked across genes. With
    ``use_inverse`` the rows of ``inverse_data`` are ranked instead, i.e.
    each gene across arrays. With ``quantile_normalise`` a first pass
    averages the sorted values per rank over all rows and the second pass
    writes those averages in place of the ranks.

    Args:
        matrix_dir: Matrix directory
        output_path: Destination file (same shape as the input)
        quantile_normalise: Apply quantile normalisation
        use_inverse: Rank rows of inverse_data

    Returns:
        Number of rows written

    Raises:
        TruncatedMatrixError: If the source file is shorter than its index files declare
    """
    directory = MatrixDirectory(matrix_dir)
    data_path = directory.data_path(inverse=use_inverse)
    directory.validate(inverse=use_inverse)
    _, width = directory.data_shape(inverse=use_inverse)

    logger.info(
        "rank_transform_start",
        source=data_path.name,
        width=width,
        quantile_normalise=quantile_normalise,
    )

    averages = None
    if quantile_normalise:
        averages = rank_averages(iter_rows(data_path, width), width)

    written = 0
    with open(output_path, "wb") as out:
        for values in iter_rows(data_path, width):
            out.write(rank_row(values, averages).tobytes())
            written += 1

    logger.info("rank_transform_complete", rows=written, output=str(output_path))
    return written
