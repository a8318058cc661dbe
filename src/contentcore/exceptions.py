"""
Exception taxonomy for ContentCore.

Expected failures (rate limiting, timeouts, transport errors) are carried
inside a failed ``ExtractionResult``. ``PluginError`` is the one error that
escapes ``extract()``.
"""

from __future__ import annotations

from typing import Optional


class ContentCoreError(Exception):
    """Base class for all ContentCore errors."""


class RateLimitExceeded(ContentCoreError):
    """The origin has used up its request quota for the current window."""

    def __init__(self, key: str, retry_after: float, reset_at: float) -> None:
        self.key = key
        self.retry_after = retry_after
        self.reset_at = reset_at
        super().__init__(f"Rate limit exceeded for {key}. Retry in {retry_after:.1f}s.")


class FetchTimeout(ContentCoreError):
    """Fetching the page took longer than the configured timeout."""

    def __init__(self, url: str, timeout: float) -> None:
        self.url = url
        self.timeout = timeout
        super().__init__(f"Request timeout after {timeout:g}s: {url}")


class NetworkError(ContentCoreError):
    """Transport failure or non-success HTTP status."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class InvalidURLError(ContentCoreError, ValueError):
    """The URL has no scheme or host."""


class AdapterNotFoundError(ContentCoreError, LookupError):
    """An adapter override named an adapter that is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No adapter registered under name '{name}'")


class PluginError(ContentCoreError):
    """A plugin hook raised. Aborts the extraction it happened in."""

    def __init__(self, plugin_name: str, hook: str, cause: BaseException) -> None:
        self.plugin_name = plugin_name
        self.hook = hook
        self.cause = cause
        super().__init__(f"Plugin '{plugin_name}' failed in {hook}: {cause}")


class UnsupportedFormatError(ContentCoreError, ValueError):
    """Export or import format is not supported."""

    def __init__(self, fmt: str, operation: str = "export") -> None:
        self.format = fmt
        self.operation = operation
        super().__init__(f"Unsupported {operation} format: {fmt}")
