"""TTL cache for enrichment lookups."""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Hashable, Iterable, Optional, Tuple, TypeVar

T = TypeVar("T")

Clock = Callable[[], float]
LookupKey = Tuple[str, Tuple[int, ...]]


def lookup_key(kind: str, ids: Iterable[int]) -> LookupKey:
    """Cache key for a lookup: the kind plus the sorted unique ids."""
    return (kind, tuple(sorted({int(i) for i in ids})))


@dataclass
class CacheEntry(Generic[T]):
    """A cached value with expiration time."""

    value: T
    expires_at: float


class LookupCache(Generic[T]):
    """TTL cache with an injectable clock.

    Entries expire ``ttl_seconds`` after they were stored; the oldest entry
    is evicted once ``maxsize`` is exceeded.

    Example:
        cache = LookupCache(ttl_seconds=60)
        users = await cache.get_or_set(lookup_key("user", ids), fetch_users)
    """

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        maxsize: int = 1024,
        clock: Optional[Clock] = None,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.maxsize = max(1, int(maxsize))
        self.clock: Clock = clock or time.monotonic
        self._cache: "OrderedDict[Hashable, CacheEntry[T]]" = OrderedDict()
        self._locks: Dict[Hashable, asyncio.Lock] = {}

    def get(self, key: Hashable) -> Optional[T]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self.clock() >= entry.expires_at:
            del self._cache[key]
            self._locks.pop(key, None)
            return None
        self._cache.move_to_end(key)
        return entry.value

    def set(self, key: Hashable, value: T, ttl: Optional[float] = None) -> None:
        ttl_seconds = ttl if ttl is not None else self.ttl_seconds
        self._cache[key] = CacheEntry(value=value, expires_at=self.clock() + ttl_seconds)
        self._cache.move_to_end(key)
        while len(self._cache) > self.maxsize:
            evicted, _ = self._cache.popitem(last=False)
            self._locks.pop(evicted, None)

    async def get_or_set(
        self,
        key: Hashable,
        fetch_fn: Callable[[], Awaitable[T]],
        ttl: Optional[float] = None,
    ) -> T:
        """Return the cached value or fetch, store and return it.

        Concurrent callers for the same key share one fetch. Fetch errors
        propagate and nothing is cached.
        """
        value = self.get(key)
        if value is not None:
            return value

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            value = self.get(key)
            if value is not None:
                return value
            try:
                value = await fetch_fn()
            except Exception:
                self._locks.pop(key, None)
                raise
            self.set(key, value, ttl)
            return value

    def invalidate(self, key: Hashable) -> bool:
        self._locks.pop(key, None)
        if key in self._cache:
            del self._cache[key]
            return True
        return False

    def invalidate_kind(self, kind: str) -> int:
        """Drop every entry of one lookup kind (e.g. after a user rename)."""
        keys = [k for k in self._cache if isinstance(k, tuple) and k and k[0] == kind]
        for k in keys:
            self.invalidate(k)
        return len(keys)

    def clear(self) -> int:
        count = len(self._cache)
        self._cache.clear()
        self._locks.clear()
        return count

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: Any) -> bool:
        return self.get(key) is not None


__all__ = ["LookupCache", "CacheEntry", "lookup_key"]
