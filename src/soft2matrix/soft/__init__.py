"""SOFT series ingestion.

Line source over (optionally gzip-compressed) SOFT files, the streaming
parser state machine, per-gene aggregation of probe values, and GEO
family file downloads.
"""

from soft2matrix.soft.aggregator import GeneAggregator
from soft2matrix.soft.fetch import download_soft_family, soft_family_url
from soft2matrix.soft.parser import (
    ConversionSummary,
    SoftFormatError,
    SoftParser,
    convert_soft,
    parse_value,
)
from soft2matrix.soft.source import iter_lines, open_soft_lines

__all__ = [
    "GeneAggregator",
    "download_soft_family",
    "soft_family_url",
    "ConversionSummary",
    "SoftFormatError",
    "SoftParser",
    "convert_soft",
    "parse_value",
    "iter_lines",
    "open_soft_lines",
]
