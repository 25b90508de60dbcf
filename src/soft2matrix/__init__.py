"""soft2matrix: GEO SOFT series to binary gene-by-sample matrices."""

__version__ = "0.1.0"
