"""Download GEO series SOFT family files."""

import re
from pathlib import Path

import structlog

from soft2matrix.config.schema import GEO_SERIES_BASE_URL
from soft2matrix.download import stream_download

logger = structlog.get_logger()

GSE_ID_RE = re.compile(r"^GSE(\d+)$")


def soft_family_url(gse_id: str, base_url: str = GEO_SERIES_BASE_URL) -> str:
    """URL of a series' ``_family.soft.gz`` file.

    GEO groups series in directories named after the accession with its
    last three digits replaced by "nnn" (GSE12345 -> GSE12nnn, GSE123 -> GSEnnn).

    Raises:
        ValueError: If gse_id is not a GSE accession
    """
    match = GSE_ID_RE.match(gse_id.strip().upper())
    if match is None:
        raise ValueError(f"Not a GEO series accession: {gse_id!r}")

    number = match.group(1)
    accession = f"GSE{number}"
    stub = f"GSE{number[:-3]}nnn"
    return f"{base_url.rstrip('/')}/{stub}/{accession}/soft/{accession}_family.soft.gz"


def download_soft_family(
    gse_id: str,
    output_dir: Path,
    base_url: str = GEO_SERIES_BASE_URL,
    force: bool = False,
    timeout: float = 120.0,
    max_retries: int = 5,
) -> Path:
    """Download a series' SOFT family file, kept gzip-compressed.

    Args:
        gse_id: Series accession (GSE...)
        output_dir: Directory to store the file in
        base_url: GEO series base URL
        force: If True, re-download even if file exists

    Returns:
        Path to the downloaded ``GSE..._family.soft.gz``
    """
    url = soft_family_url(gse_id, base_url)
    output_path = Path(output_dir) / url.rsplit("/", 1)[1]
    logger.info("soft_family_fetch", gse_id=gse_id, url=url)
    return stream_download(
        url,
        output_path,
        force=force,
        timeout=timeout,
        max_retries=max_retries,
        label="soft_family",
    )
