"""
LRU cache for extraction results.

The primary store is bounded twice: by entry count and by the total size
of the serialized entries. Whichever bound is reached first evicts the
least recently used entries. An optional persistent store keeps every
written entry without bounds and refills the primary store on a miss.
"""

from __future__ import annotations

import hashlib
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import structlog

from ..config.config import CacheOptions, ExtractionOptions
from ..protocols import ExtractedContent

logger = structlog.get_logger(__name__)

BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class CacheEntry:
    content: ExtractedContent
    timestamp: float
    size: int


def make_cache_key(url: str, options: Optional[ExtractionOptions] = None) -> str:
    """Deterministic key for a URL and its extraction options."""
    serialized = options.model_dump_json() if options is not None else "default"
    return hashlib.sha256(f"{url}\x00{serialized}".encode("utf-8")).hexdigest()


class ResultCache:
    """
    TTL-aware LRU cache of ``ExtractedContent`` keyed by request key.

    ``lfu`` and ``fifo`` strategies are accepted for configuration
    compatibility and behave as ``lru``.
    """

    def __init__(self, options: Optional[CacheOptions] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.options = options or CacheOptions()
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._persistent: Optional[Dict[str, CacheEntry]] = {} if self.options.persistent else None
        self._total_size = 0
        self._max_bytes = int(self.options.max_size * BYTES_PER_MB)
        self.hits = 0
        self.misses = 0

        if self.options.strategy != "lru":
            logger.warning("Cache strategy not implemented, using lru", strategy=self.options.strategy)

    @property
    def enabled(self) -> bool:
        return self.options.enabled

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp < self.options.ttl

    def get(self, key: str) -> Optional[ExtractedContent]:
        """Return the cached content for ``key``, or ``None`` on a miss.

        Hit and miss counters are updated. Stale entries count as misses and
        are evicted.
        """
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None:
            if self._is_fresh(entry, now):
                self._entries.move_to_end(key)
                self.hits += 1
                return entry.content.model_copy(deep=True)
            self._evict(key)

        if self._persistent is not None:
            stored = self._persistent.get(key)
            if stored is not None:
                if self._is_fresh(stored, now):
                    self._store(key, stored)
                    self.hits += 1
                    logger.debug("Cache entry promoted from persistent store", cache_key=key)
                    return stored.content.model_copy(deep=True)
                del self._persistent[key]

        self.misses += 1
        return None

    def set(self, key: str, content: ExtractedContent) -> None:
        entry = CacheEntry(content=content.model_copy(deep=True), timestamp=self._clock(), size=len(content.model_dump_json()))
        self._store(key, entry)
        if self._persistent is not None:
            self._persistent[key] = entry

    def _store(self, key: str, entry: CacheEntry) -> None:
        if key in self._entries:
            self._evict(key)
        if entry.size > self._max_bytes:
            logger.debug("Entry larger than cache, not stored", cache_key=key, size=entry.size)
            return
        self._entries[key] = entry
        self._total_size += entry.size
        while len(self._entries) > self.options.max_entries or self._total_size > self._max_bytes:
            oldest = next(iter(self._entries))
            self._evict(oldest)
            logger.debug("Cache entry evicted", cache_key=oldest)

    def _evict(self, key: str) -> None:
        entry = self._entries.pop(key)
        self._total_size -= entry.size

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._is_fresh(entry, self._clock())

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def total_size(self) -> int:
        return self._total_size

    def clear(self) -> None:
        self._entries.clear()
        self._total_size = 0
        self.hits = 0
        self.misses = 0
        if self._persistent is not None:
            self._persistent.clear()

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "size": self._total_size,
            "item_count": len(self._entries),
            "persistent_count": len(self._persistent) if self._persistent is not None else 0,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
        }
