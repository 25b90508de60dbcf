"""Pydantic models for converter configuration."""

import hashlib
import json
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

# HGNC custom download restricted to the six columns the resolver consumes:
# HGNC ID, Approved symbol, Approved name, Status, Alias symbols, Previous symbols
HGNC_CUSTOM_DOWNLOAD_URL = (
    "https://www.genenames.org/cgi-bin/download/custom?"
    "col=gd_hgnc_id&col=gd_app_sym&col=gd_app_name&col=gd_status"
    "&col=gd_aliases&col=gd_prev_sym&status=Approved"
    "&hgnc_dbtag=on&order_by=gd_app_sym_sort&format=text&submit=submit"
)

GEO_SERIES_BASE_URL = "https://ftp.ncbi.nlm.nih.gov/geo/series"


class SourceURLs(BaseModel):
    """Download locations for external reference data."""

    hgnc_url: str = Field(
        default=HGNC_CUSTOM_DOWNLOAD_URL,
        description="HGNC custom download URL (six-column text export)",
    )
    geo_base_url: str = Field(
        default=GEO_SERIES_BASE_URL,
        description="Base URL of the GEO series directory tree",
    )


class ParsingOptions(BaseModel):
    """Column names and separators of the SOFT table profile."""

    platform_id_column: str = Field(
        default="ID",
        description="Platform table column holding the probeset identifier",
    )
    gene_symbol_column: str = Field(
        default="Gene Symbol",
        description="Platform table column holding gene symbol annotations",
    )
    symbol_separator: str = Field(
        default=" // ",
        min_length=1,
        description="Separator between gene symbols in one annotation",
    )
    sample_id_column: str = Field(
        default="ID_REF",
        description="Sample table column referencing the probeset identifier",
    )
    value_column: str = Field(
        default="VALUE",
        description="Sample table column holding the expression value",
    )


class ResolutionThresholds(BaseModel):
    """Thresholds for reporting on gene symbol resolution quality."""

    min_success_rate: float = Field(
        default=0.70,
        ge=0.0,
        le=1.0,
        description="Resolution rate below this is reported as FAILED",
    )
    warn_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Resolution rate below this is reported as WARNING",
    )

    @model_validator(mode="after")
    def check_order(self) -> "ResolutionThresholds":
        if self.warn_threshold < self.min_success_rate:
            raise ValueError(
                f"warn_threshold ({self.warn_threshold}) must be >= "
                f"min_success_rate ({self.min_success_rate})"
            )
        return self


class APIConfig(BaseModel):
    """Configuration for HTTP downloads."""

    max_retries: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum retry attempts for failed downloads",
    )
    timeout_seconds: int = Field(
        default=120,
        ge=1,
        description="Request timeout in seconds",
    )


class ConverterConfig(BaseModel):
    """Main converter configuration."""

    data_dir: Path = Field(
        ...,
        description="Directory for storing downloaded reference data",
    )
    cache_dir: Path = Field(
        ...,
        description="Directory for downloaded SOFT families",
    )
    duckdb_path: Path | None = Field(
        default=None,
        description="Path to DuckDB database file (None disables the store)",
    )
    sources: SourceURLs = Field(
        default_factory=SourceURLs,
        description="External data source locations",
    )
    parsing: ParsingOptions = Field(
        default_factory=ParsingOptions,
        description="SOFT table profile",
    )
    resolution: ResolutionThresholds = Field(
        default_factory=ResolutionThresholds,
        description="Gene symbol resolution reporting thresholds",
    )
    api: APIConfig = Field(
        default_factory=APIConfig,
        description="HTTP download configuration",
    )

    @field_validator("data_dir", "cache_dir")
    @classmethod
    def create_directory(cls, v: Path) -> Path:
        """Create directory if it doesn't exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def hgnc_reference_path(self) -> Path:
        """Default location of the downloaded HGNC reference table."""
        return self.data_dir / "hgnc_reference.tsv"

    def config_hash(self) -> str:
        """
        Compute SHA-256 hash of the configuration.

        Returns a deterministic hash based on all config values,
        useful for tracking config changes in provenance sidecars.
        """
        config_dict = self.model_dump(mode="python")
        config_json = json.dumps(
            config_dict,
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(config_json.encode()).hexdigest()
