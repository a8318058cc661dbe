"""
Network-facing collaborators: the HTTP fetcher and per-origin rate limiting.
"""

from .http_client import HttpFetcher
from .rate_limiter import SlidingWindowRateLimiter

__all__ = ["HttpFetcher", "SlidingWindowRateLimiter"]
