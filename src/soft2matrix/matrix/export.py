"""Dual-format TSV+Parquet export of a matrix directory with YAML sidecar."""

from datetime import datetime, timezone
from pathlib import Path

import polars as pl
import structlog
import yaml

from soft2matrix.matrix.directory import MatrixDirectory

logger = structlog.get_logger()


def matrix_to_frame(directory: MatrixDirectory) -> pl.DataFrame:
    """Gene x array table: ``gene_symbol`` followed by one column per array.

    Raises:
        ValueError: If array ids are not unique or one is named ``gene_symbol``
            (they become column names)
    """
    names = ["gene_symbol", *directory.arrays]
    if len(set(names)) != len(names):
        raise ValueError("array ids must be unique and differ from gene_symbol to become table columns")

    data = directory.read_data()
    columns = {"gene_symbol": directory.genes}
    for j, array_id in enumerate(directory.arrays):
        columns[array_id] = data[j]
    return pl.DataFrame(columns, schema_overrides={"gene_symbol": pl.Utf8})


def write_matrix_table(
    matrix_dir: Path,
    output_dir: Path,
    filename_base: str = "matrix",
) -> dict:
    """
    Write a matrix directory as TSV and Parquet with a provenance sidecar.

    Produces identical data in both formats for tools that cannot read the
    raw binary layout. Missing values stay NaN in both formats.

    Args:
        matrix_dir: Matrix directory to export
        output_dir: Directory to write output files (created if doesn't exist)
        filename_base: Base filename without extension (default: "matrix")

    Returns:
        Dictionary with output file paths:
        {
            "tsv": Path to TSV file,
            "parquet": Path to Parquet file,
            "provenance": Path to YAML provenance sidecar
        }
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    directory = MatrixDirectory(matrix_dir)
    df = matrix_to_frame(directory)

    tsv_path = output_dir / f"{filename_base}.tsv"
    parquet_path = output_dir / f"{filename_base}.parquet"
    provenance_path = output_dir / f"{filename_base}.provenance.yaml"

    df.write_csv(tsv_path, separator="\t", include_header=True)
    df.write_parquet(parquet_path, compression="snappy")

    value_columns = df.columns[1:]
    nan_count = int(
        sum(df.select(pl.col(c).is_nan().sum()).item() for c in value_columns)
    )

    provenance = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "source": str(directory.path),
        "output_files": [tsv_path.name, parquet_path.name],
        "statistics": {
            "genes": df.height,
            "arrays": len(value_columns),
            "values": df.height * len(value_columns),
            "nan_values": nan_count,
        },
    }

    with open(provenance_path, "w") as f:
        yaml.dump(provenance, f, default_flow_style=False, sort_keys=False)

    logger.info("matrix_export_complete", tsv=str(tsv_path), genes=df.height)

    return {
        "tsv": tsv_path,
        "parquet": parquet_path,
        "provenance": provenance_path,
    }
