"""
Ordered catalogue of site adapters.
"""

from __future__ import annotations

from typing import Iterator, List, Optional

import structlog

from ..protocols import SiteAdapter
from .base import adapter_matches

logger = structlog.get_logger(__name__)


class AdapterRegistry:
    """
    Holds adapters in registration order and dispatches URLs to them.

    Names are unique. Dispatch picks the highest-priority adapter whose
    patterns match; equal priorities resolve in registration order.
    """

    def __init__(self, adapters: Optional[List[SiteAdapter]] = None) -> None:
        self._adapters: List[SiteAdapter] = []
        for adapter in adapters or []:
            self.register(adapter)

    @classmethod
    def with_defaults(cls) -> AdapterRegistry:
        """A registry pre-loaded with the built-in adapters."""
        from .reddit import RedditAdapter
        from .substack import SubstackAdapter
        from .wikipedia import WikipediaAdapter

        return cls([SubstackAdapter(), WikipediaAdapter(), RedditAdapter()])

    def register(self, adapter: SiteAdapter) -> None:
        """Add ``adapter``, replacing in place any adapter with the same name."""
        if not getattr(adapter, "name", None):
            raise ValueError("Adapter must have a non-empty name")
        for i, existing in enumerate(self._adapters):
            if existing.name == adapter.name:
                self._adapters[i] = adapter
                logger.debug("Adapter replaced", adapter=adapter.name)
                return
        self._adapters.append(adapter)
        logger.debug("Adapter registered", adapter=adapter.name, priority=self._priority(adapter))

    def unregister(self, name: str) -> bool:
        for i, existing in enumerate(self._adapters):
            if existing.name == name:
                del self._adapters[i]
                return True
        return False

    def get(self, name: str) -> Optional[SiteAdapter]:
        return next((a for a in self._adapters if a.name == name), None)

    def list_adapters(self) -> List[SiteAdapter]:
        return list(self._adapters)

    def clear(self) -> None:
        self._adapters.clear()

    @staticmethod
    def _priority(adapter: SiteAdapter) -> int:
        return getattr(adapter, "priority", 0) or 0

    def dispatch(self, url: str) -> Optional[SiteAdapter]:
        """Return the adapter responsible for ``url``, or ``None``."""
        # sorted() is stable, so equal priorities keep registration order
        for adapter in sorted(self._adapters, key=self._priority, reverse=True):
            if adapter_matches(adapter, url):
                return adapter
        return None

    def __len__(self) -> int:
        return len(self._adapters)

    def __iter__(self) -> Iterator[SiteAdapter]:
        return iter(list(self._adapters))

    def __contains__(self, name: object) -> bool:
        return any(a.name == name for a in self._adapters)
