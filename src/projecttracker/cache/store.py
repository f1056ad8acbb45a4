"""Entity cache implementations.

The cache holds immutable read projections keyed by CacheKey. It is
invalidate-on-write: services evict the affected keys after their primary
transaction commits and before returning, and the next read reloads from the
primary store. There is no expiry and no write-through.

A reader that misses and a writer that evicts the same key can interleave at
every await point. InMemoryEntityCache therefore counts evictions of keys that
have a load in flight, and get_or_load drops its loaded value when the key was
evicted after the load began, since that value may predate the write.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar

import structlog
from pydantic import BaseModel

from projecttracker.cache.keys import CacheKey

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CacheStats(BaseModel):
    """Counters describing cache activity.

    Attributes:
        enabled: False for the no-op cache.
        size: Number of entries currently held.
        max_entries: Capacity before least-recently-used entries are dropped.
        hits: Lookups served from the cache.
        misses: Lookups that fell through to the loader.
        evictions: Keys removed by explicit eviction.
        discarded_loads: Loaded values not stored because of a racing eviction.
    """

    enabled: bool
    size: int = 0
    max_entries: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    discarded_loads: int = 0


class EntityCache(Protocol):
    """Capability injected into services for cached reads."""

    async def get(self, key: CacheKey) -> Any | None: ...

    async def put(self, key: CacheKey, value: Any) -> None: ...

    async def evict(self, *keys: CacheKey) -> None: ...

    async def get_or_load(self, key: CacheKey, loader: Callable[[], Awaitable[T]]) -> T: ...

    async def clear(self) -> None: ...

    def stats(self) -> CacheStats: ...


class InMemoryEntityCache:
    """LRU-bounded in-process cache guarded by an asyncio.Lock.

    Args:
        max_entries: Maximum number of cached projections.
    """

    def __init__(self, max_entries: int = 10000) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[CacheKey, Any] = OrderedDict()
        self._lock = asyncio.Lock()
        # Only keys with a load in flight are tracked
        self._pending_loads: dict[CacheKey, int] = {}
        self._generations: dict[CacheKey, int] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._discarded_loads = 0

    async def get(self, key: CacheKey) -> Any | None:
        async with self._lock:
            return self._lookup(key)

    async def put(self, key: CacheKey, value: Any) -> None:
        async with self._lock:
            self._store(key, value)

    async def evict(self, *keys: CacheKey) -> None:
        """Remove keys; missing keys are ignored."""
        if not keys:
            return
        async with self._lock:
            for key in keys:
                if key in self._pending_loads:
                    self._generations[key] = self._generations.get(key, 0) + 1
                if self._entries.pop(key, None) is not None:
                    self._evictions += 1

        logger.debug("cache_evicted", keys=sorted({str(key) for key in keys}))

    async def get_or_load(self, key: CacheKey, loader: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value for key, loading and storing it on a miss.

        The loader runs outside the lock. Its result is stored only if key
        was not evicted while it ran; it is returned to the caller either way.
        Exceptions from the loader propagate and nothing is stored.
        """
        async with self._lock:
            cached = self._lookup(key)
            if cached is not None:
                return cached
            generation = self._generations.get(key, 0)
            self._pending_loads[key] = self._pending_loads.get(key, 0) + 1

        try:
            value = await loader()
        except BaseException:
            async with self._lock:
                self._finish_load(key)
            raise

        async with self._lock:
            stale = self._generations.get(key, 0) != generation
            self._finish_load(key)
            if stale:
                self._discarded_loads += 1
                logger.debug("cache_load_discarded", key=str(key))
            elif value is not None:
                self._store(key, value)

        return value

    async def clear(self) -> None:
        async with self._lock:
            for key in self._pending_loads:
                self._generations[key] = self._generations.get(key, 0) + 1
            self._entries.clear()
        logger.info("cache_cleared")

    def stats(self) -> CacheStats:
        return CacheStats(
            enabled=True,
            size=len(self._entries),
            max_entries=self.max_entries,
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
            discarded_loads=self._discarded_loads,
        )

    def _lookup(self, key: CacheKey) -> Any | None:
        value = self._entries.get(key)
        if value is None:
            self._misses += 1
            return None
        self._entries.move_to_end(key)
        self._hits += 1
        return value

    def _finish_load(self, key: CacheKey) -> None:
        remaining = self._pending_loads[key] - 1
        if remaining:
            self._pending_loads[key] = remaining
        else:
            del self._pending_loads[key]
            self._generations.pop(key, None)

    def _store(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)


class NullEntityCache:
    """Cache that never stores anything; every read goes to the loader."""

    async def get(self, key: CacheKey) -> Any | None:
        return None

    async def put(self, key: CacheKey, value: Any) -> None:
        return None

    async def evict(self, *keys: CacheKey) -> None:
        return None

    async def get_or_load(self, key: CacheKey, loader: Callable[[], Awaitable[T]]) -> T:
        return await loader()

    async def clear(self) -> None:
        return None

    def stats(self) -> CacheStats:
        return CacheStats(enabled=False)
