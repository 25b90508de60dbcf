"""Gene identity module.

Provides the HGNC reference table reader/downloader, the fuzzy
symbol-to-HGNC resolver, and resolution quality reporting.
"""

from soft2matrix.gene_mapping.reference import (
    download_hgnc_reference,
    read_reference_table,
)
from soft2matrix.gene_mapping.resolver import (
    HgncResolver,
    normalize_symbol,
    parse_hgnc_id,
)
from soft2matrix.gene_mapping.validator import (
    ResolutionReport,
    ResolutionValidator,
    ValidationResult,
)

__all__ = [
    "download_hgnc_reference",
    "read_reference_table",
    "HgncResolver",
    "normalize_symbol",
    "parse_hgnc_id",
    "ResolutionReport",
    "ResolutionValidator",
    "ValidationResult",
]
