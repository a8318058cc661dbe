"""
ContentCore - main-content extraction for web pages.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .adapters import AdapterRegistry, BaseSiteAdapter
from .config import CleaningOptions, Config, ExtractionOptions
from .exceptions import (
    AdapterNotFoundError,
    ContentCoreError,
    FetchTimeout,
    NetworkError,
    PluginError,
    RateLimitExceeded,
    UnsupportedFormatError,
)
from .plugins import ContentExtractorPlugin
from .protocols import ExtractedContent, ExtractionEvents, ExtractionResult, Paragraph
from .service import ContentExtractorService

__all__ = [
    "__version__",
    "AdapterNotFoundError",
    "AdapterRegistry",
    "BaseSiteAdapter",
    "CleaningOptions",
    "Config",
    "ContentCoreError",
    "ContentExtractorPlugin",
    "ContentExtractorService",
    "ExtractedContent",
    "ExtractionEvents",
    "ExtractionOptions",
    "ExtractionResult",
    "FetchTimeout",
    "NetworkError",
    "Paragraph",
    "PluginError",
    "RateLimitExceeded",
    "UnsupportedFormatError",
]
