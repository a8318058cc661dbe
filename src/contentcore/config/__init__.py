from .config import (
    BatchConfig,
    CacheOptions,
    CleaningOptions,
    Config,
    CustomSelectors,
    ExtractionOptions,
    FetchConfig,
    MonitoringConfig,
    RateLimiterConfig,
    find_config_file,
)

__all__ = [
    "BatchConfig",
    "CacheOptions",
    "CleaningOptions",
    "Config",
    "CustomSelectors",
    "ExtractionOptions",
    "FetchConfig",
    "MonitoringConfig",
    "RateLimiterConfig",
    "find_config_file",
]
