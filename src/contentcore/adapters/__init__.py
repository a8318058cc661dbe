"""
Site adapters and the registry that dispatches URLs to them.
"""

from .base import BaseSiteAdapter, adapter_matches, compile_matcher
from .reddit import RedditAdapter
from .registry import AdapterRegistry
from .substack import SubstackAdapter
from .wikipedia import WikipediaAdapter

__all__ = [
    "AdapterRegistry",
    "BaseSiteAdapter",
    "RedditAdapter",
    "SubstackAdapter",
    "WikipediaAdapter",
    "adapter_matches",
    "compile_matcher",
]
