"""Streaming HTTP download with retry and checkpoint-skip."""

from pathlib import Path

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger()

RETRYABLE_ERRORS = (httpx.HTTPStatusError, httpx.ConnectError, httpx.TimeoutException)


def _create_retry_decorator(max_retries: int):
    """Create retry decorator with exponential backoff."""
    return retry(
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=1, min=4, max=60),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        reraise=True,
    )


def stream_download(
    url: str,
    output_path: Path,
    force: bool = False,
    timeout: float = 120.0,
    max_retries: int = 5,
    label: str = "download",
) -> Path:
    """Stream a URL to disk, skipping the request when the file already exists.

    The body is written to a ``.tmp`` sibling first and renamed on success,
    so an interrupted download never leaves a partial file at output_path.

    Args:
        url: Source URL
        output_path: Destination file
        force: If True, re-download even if file exists
        timeout: Request timeout in seconds
        max_retries: Attempts before the last error is re-raised
        label: Prefix for log event names

    Returns:
        Path to the downloaded file

    Raises:
        httpx.HTTPStatusError: On HTTP errors (after retries)
        httpx.ConnectError: On connection errors (after retries)
        httpx.TimeoutException: On timeout (after retries)
    """
    output_path = Path(output_path)

    # Checkpoint pattern: skip if already downloaded
    if output_path.exists() and not force:
        logger.info(
            f"{label}_exists",
            path=str(output_path),
            size_mb=round(output_path.stat().st_size / 1024 / 1024, 2),
        )
        return output_path

    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.with_suffix(output_path.suffix + ".tmp")

    @_create_retry_decorator(max_retries)
    def _download():
        logger.info(f"{label}_start", url=url)
        with httpx.stream("GET", url, timeout=timeout, follow_redirects=True) as response:
            response.raise_for_status()

            total_bytes = int(response.headers.get("content-length", 0))
            downloaded = 0

            with open(temp_path, "wb") as f:
                for chunk in response.iter_bytes(chunk_size=8192):
                    f.write(chunk)
                    downloaded += len(chunk)

                    # Log progress every 10MB
                    if total_bytes > 0 and downloaded % (10 * 1024 * 1024) < 8192:
                        logger.info(
                            f"{label}_progress",
                            downloaded_mb=round(downloaded / 1024 / 1024, 2),
                            total_mb=round(total_bytes / 1024 / 1024, 2),
                            percent=round(downloaded / total_bytes * 100, 1),
                        )

    _download()
    temp_path.replace(output_path)

    logger.info(
        f"{label}_complete",
        path=str(output_path),
        size_mb=round(output_path.stat().st_size / 1024 / 1024, 2),
    )
    return output_path
