"""
Content cache for read results.

Bounded, time-expiring cache keyed by absolute file path. Entries are evicted
oldest-inserted-first once the cache is full, and an entry older than the TTL
is treated as a miss and dropped on the lookup that finds it.
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100
DEFAULT_TTL_SECONDS = 30.0


@dataclass
class CacheEntry:
    """A cached read result and when it was stored."""

    value: Any
    inserted_at: float


class ContentCache:
    """FIFO cache of read results with TTL support."""

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def _make_key(path: str | Path) -> str:
        return str(Path(path).expanduser().resolve())

    def get(self, path: str | Path) -> Any | None:
        """Get cached result if present and still fresh."""
        key = self._make_key(path)

        entry = self._cache.get(key)
        if entry is not None:
            if self._clock() - entry.inserted_at <= self.ttl_seconds:
                self._hits += 1
                logger.debug("Cache hit: %s", key)
                return entry.value
            # Stale, purge it now
            del self._cache[key]

        self._misses += 1
        return None

    def set(self, path: str | Path, value: Any) -> None:
        """Cache a result, replacing any existing entry for the path."""
        key = self._make_key(path)

        if key in self._cache:
            # A replacement counts as a fresh insertion
            del self._cache[key]

        while len(self._cache) >= self.max_entries:
            evicted, _ = self._cache.popitem(last=False)
            self._evictions += 1
            logger.debug("Cache evicted oldest entry: %s", evicted)

        self._cache[key] = CacheEntry(value=value, inserted_at=self._clock())

    def invalidate(self, path: str | Path) -> bool:
        """Drop the entry for a path. Returns True if one existed."""
        return self._cache.pop(self._make_key(path), None) is not None

    def clear(self) -> None:
        """Clear the cache."""
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self._make_key(path) in self._cache

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total > 0 else 0,
            "evictions": self._evictions,
            "size": len(self._cache),
            "max_size": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
        }
