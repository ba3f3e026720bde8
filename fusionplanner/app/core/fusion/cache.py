# File: fusionplanner/app/core/fusion/cache.py
# Version: v0.1.0
"""
Bounded, thread-safe memo caches shared across optimization requests.

- LRU eviction once `maxsize` entries are stored.
- A single lock guards the table; values are computed outside the lock, so two
  threads may compute the same key concurrently. Stored values are immutable and
  the computation is pure, so the last write wins with an identical value.
- `bind_enzyme` drops every entry when a different enzyme is seen.
- `NullCache` has the same interface and stores nothing (caching disabled).
"""

from __future__ import annotations

__all__ = ["BoundedCache", "NullCache", "CacheStats"]

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    invalidations: int = 0


class BoundedCache:
    def __init__(self, maxsize: int = 50_000, name: str = "cache"):
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self.maxsize = maxsize
        self.name = name
        self.stats = CacheStats()
        self._data: "OrderedDict[Hashable, object]" = OrderedDict()
        self._lock = threading.Lock()
        self._enzyme: Optional[str] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def get(self, key: Hashable, default=None):
        with self._lock:
            if key in self._data:
                self._data.move_to_end(key)
                self.stats.hits += 1
                return self._data[key]
            self.stats.misses += 1
            return default

    def put(self, key: Hashable, value: object) -> None:
        with self._lock:
            self._data[key] = value
            self._data.move_to_end(key)
            while len(self._data) > self.maxsize:
                self._data.popitem(last=False)
                self.stats.evictions += 1

    def get_or_compute(self, key: Hashable, compute: Callable[[], V]) -> V:
        sentinel = _MISSING
        val = self.get(key, sentinel)
        if val is not sentinel:
            return val  # type: ignore[return-value]
        val = compute()
        self.put(key, val)
        return val

    def bind_enzyme(self, enzyme: str) -> None:
        """Invalidate everything when the cache is used with a different enzyme."""
        with self._lock:
            if self._enzyme is not None and self._enzyme != enzyme:
                self._data.clear()
                self.stats.invalidations += 1
                logger.debug("%s invalidated: enzyme %s -> %s", self.name, self._enzyme, enzyme)
            self._enzyme = enzyme

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self.stats.invalidations += 1


class NullCache:
    """Drop-in replacement that never stores anything."""
    name = "null"

    def __init__(self) -> None:
        self.stats = CacheStats()

    def __len__(self) -> int:
        return 0

    def get(self, key: Hashable, default=None):
        self.stats.misses += 1
        return default

    def put(self, key: Hashable, value: object) -> None:
        return None

    def get_or_compute(self, key: Hashable, compute: Callable[[], V]) -> V:
        self.stats.misses += 1
        return compute()

    def bind_enzyme(self, enzyme: str) -> None:
        return None

    def clear(self) -> None:
        return None


_MISSING = object()
