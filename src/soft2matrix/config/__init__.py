from .loader import load_config, load_config_with_overrides
from .schema import (
    APIConfig,
    ConverterConfig,
    ParsingOptions,
    ResolutionThresholds,
    SourceURLs,
)

__all__ = [
    "load_config",
    "load_config_with_overrides",
    "ConverterConfig",
    "SourceURLs",
    "ParsingOptions",
    "ResolutionThresholds",
    "APIConfig",
]
