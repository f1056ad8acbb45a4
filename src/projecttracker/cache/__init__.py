"""Read cache for Project Tracker entity projections.

Public API:
    CacheKey / CacheNamespace: Identity of a cached projection.
    EntityCache: Protocol injected into services.
    InMemoryEntityCache: LRU cache guarded by an asyncio.Lock.
    NullEntityCache: Always-miss cache used when caching is disabled.
    build_cache: Create the cache described by CacheConfig.
"""

from __future__ import annotations

from projecttracker.cache.keys import (
    CacheKey,
    CacheNamespace,
    developer_detail_key,
    developer_detail_keys,
    developer_key,
    developer_keys,
    developers_keys,
    project_detail_key,
    project_detail_keys,
    project_key,
    project_keys,
    task_key,
    task_keys,
)
from projecttracker.cache.store import CacheStats, EntityCache, InMemoryEntityCache, NullEntityCache
from projecttracker.config import CacheConfig


def build_cache(config: CacheConfig) -> EntityCache:
    """Create the entity cache for the given configuration."""
    if not config.enabled:
        return NullEntityCache()
    return InMemoryEntityCache(max_entries=config.max_entries)


__all__ = [
    "CacheKey",
    "CacheNamespace",
    "CacheStats",
    "EntityCache",
    "InMemoryEntityCache",
    "NullEntityCache",
    "build_cache",
    "project_key",
    "project_detail_key",
    "project_detail_keys",
    "project_keys",
    "developer_key",
    "developer_detail_key",
    "developer_detail_keys",
    "developer_keys",
    "developers_keys",
    "task_key",
    "task_keys",
]
