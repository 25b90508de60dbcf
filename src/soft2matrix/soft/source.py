"""Line source over plain or gzip-compressed SOFT files."""

import gzip
import io
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

import structlog

logger = structlog.get_logger()

GZIP_MAGIC = b"\x1f\x8b"


def is_gzip(stream: BinaryIO) -> bool:
    """Check a seekable binary stream for the gzip magic number.

    The stream position is restored afterwards.
    """
    position = stream.tell()
    magic = stream.read(2)
    stream.seek(position)
    return magic == GZIP_MAGIC


def iter_lines(stream: BinaryIO, encoding: str = "utf-8") -> Iterator[str]:
    """Yield text lines without terminators from an open binary stream.

    Undecodable bytes are replaced instead of raising, so a stray Latin-1
    byte in a free-text header cannot abort a conversion.

    Args:
        stream: Binary stream (already decompressed if needed)
        encoding: Text encoding of the stream

    Yields:
        Lines with trailing "\\n" / "\\r\\n" removed
    """
    text = io.TextIOWrapper(stream, encoding=encoding, errors="replace", newline=None)
    try:
        for line in text:
            yield line.rstrip("\r\n")
    finally:
        text.detach()


def open_soft_lines(path: Path, encoding: str = "utf-8") -> Iterator[str]:
    """Lazily yield the lines of a SOFT file, decompressing gzip input.

    Compression is detected from the file content, not its suffix. The
    sequence can only be restarted by calling this function again.

    Args:
        path: Path to a .soft or .soft.gz file

    Yields:
        Lines with trailing terminators removed
    """
    path = Path(path)
    with open(path, "rb") as raw:
        compressed = is_gzip(raw)
        logger.info("soft_open", path=str(path), compressed=compressed)

        if compressed:
            with gzip.GzipFile(fileobj=raw, mode="rb") as stream:
                yield from iter_lines(stream, encoding=encoding)
        else:
            yield from iter_lines(raw, encoding=encoding)
