"""HGNC reference table: download and tab-separated parsing."""

import logging
from collections.abc import Iterator
from pathlib import Path

import polars as pl

from soft2matrix.config.schema import HGNC_CUSTOM_DOWNLOAD_URL
from soft2matrix.download import stream_download
from soft2matrix.gene_mapping.resolver import REFERENCE_FIELD_COUNT

logger = logging.getLogger(__name__)


def read_reference_table(path: Path) -> Iterator[tuple[str, ...]]:
    """Read HGNC reference rows from a tab-separated file.

    The first line is a header. Only the first six columns are used:
    HGNC ID, Approved symbol, Approved name, Status, Alias symbols,
    Previous symbols. Every field is read as text; missing fields become
    empty strings.

    Args:
        path: Path to the reference TSV

    Yields:
        Six-field tuples of strings

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file has fewer than six columns
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"HGNC reference not found: {path}")

    df = pl.read_csv(
        path,
        separator="\t",
        has_header=True,
        infer_schema_length=0,
        quote_char=None,
        truncate_ragged_lines=True,
        missing_utf8_is_empty_string=True,
    )

    if df.width < REFERENCE_FIELD_COUNT:
        raise ValueError(
            f"HGNC reference {path} has {df.width} columns, "
            f"expected at least {REFERENCE_FIELD_COUNT}"
        )

    df = df.select(df.columns[:REFERENCE_FIELD_COUNT]).fill_null("")
    logger.info(f"Read {df.height} HGNC reference rows from {path}")

    yield from df.iter_rows()


def download_hgnc_reference(
    output_path: Path,
    url: str = HGNC_CUSTOM_DOWNLOAD_URL,
    force: bool = False,
    timeout: float = 120.0,
    max_retries: int = 5,
) -> Path:
    """Download the six-column HGNC custom export.

    Args:
        output_path: Where to save the TSV file
        url: HGNC custom download URL
        force: If True, re-download even if file exists
        timeout: Request timeout in seconds
        max_retries: Attempts before giving up

    Returns:
        Path to the downloaded TSV file
    """
    return stream_download(
        url,
        output_path,
        force=force,
        timeout=timeout,
        max_retries=max_retries,
        label="hgnc_reference",
    )
