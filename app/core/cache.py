# app/core/cache.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Iterator, TypeVar

from cachetools import FIFOCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    key: Hashable
    value: T
    inserted_at: float


class _InsertionOrderStore(FIFOCache):
    # FIFOCache moves a key to the back on overwrite; popitem takes the front
    def __init__(self, maxsize: int, name: str):
        super().__init__(maxsize=maxsize)
        self.name = name

    def popitem(self):
        key, entry = super().popitem()
        logger.debug("[%s] evicting %r", self.name, key)
        return key, entry


class TTLCache(Generic[T]):
    """
    Bounded in-memory cache with per-entry expiry.

    Eviction follows insertion order (oldest inserted goes first), not access
    order, so a hot key still ages out. Overwriting a key counts as a fresh
    insertion. Expired entries are dropped lazily on ``get``.

    ``ttl`` and the values returned by ``timer`` share a unit (seconds with
    the default ``time.monotonic``).
    """

    def __init__(
        self,
        maxsize: int,
        ttl: float,
        timer: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ):
        if maxsize < 1:
            raise ValueError(f"maxsize must be >= 1, got {maxsize}")
        if ttl <= 0:
            raise ValueError(f"ttl must be > 0, got {ttl}")
        self.maxsize = maxsize
        self.ttl = ttl
        self.name = name
        self._timer = timer
        self._entries = _InsertionOrderStore(maxsize, name)
        self.hits = 0
        self.misses = 0

    def _expired(self, entry: CacheEntry) -> bool:
        return self._timer() - entry.inserted_at > self.ttl

    def set(self, key: Hashable, value: T) -> None:
        self._entries[key] = CacheEntry(key=key, value=value, inserted_at=self._timer())

    def get(self, key: Hashable, default: Any = None) -> T | Any:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return default
        if self._expired(entry):
            del self._entries[key]
            self.misses += 1
            logger.debug("[%s] expired %r", self.name, key)
            return default
        self.hits += 1
        return entry.value

    def entry(self, key: Hashable) -> CacheEntry | None:
        """Raw entry lookup for inspection; does not expire or count."""
        return self._entries.get(key)

    def delete(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list:
        return list(self._entries.keys())

    def stats(self) -> dict:
        return {
            "name": self.name,
            "size": len(self._entries),
            "maxsize": self.maxsize,
            "ttl": self.ttl,
            "hits": self.hits,
            "misses": self.misses,
        }

    def __contains__(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not self._expired(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator:
        return iter(self.keys())

    def __repr__(self) -> str:
        return f"TTLCache({self.name!r}, size={len(self)}, maxsize={self.maxsize}, ttl={self.ttl})"
