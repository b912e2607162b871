"""
Tiercache — two-tier object cache with tenant-aware keys.

A fast, process-local ephemeral tier in front of a shared persistent
tier, with read-through / write-through semantics, site / network /
global key namespacing, and per-group persistence routing.

Usage::

    from tiercache import ObjectCache, MemoryStore, RedisStore, MISS

    cache = ObjectCache(RedisStore(), MemoryStore())
    await cache.initialize()

    await cache.set("alloptions", options, group="options")
    value = await cache.get("alloptions", group="options")
"""

__version__ = "0.1.0"

from .cache import (
    DEFAULT_GROUP,
    MISS,
    CacheConfig,
    CacheLookup,
    CacheRouter,
    ConsistencyLevel,
    KeyGenerator,
    MemoryPool,
    MemoryStore,
    NullStore,
    ObjectCache,
    RedisStore,
    StoreAdapter,
    StoreKind,
    build_cache_config,
    create_adapter,
    create_object_cache,
)
from .cache.faults import CacheConfigFault, CacheFault
from .faults import FaultEngine

__all__ = [
    "__version__",
    "DEFAULT_GROUP",
    "MISS",
    "CacheConfig",
    "CacheLookup",
    "CacheRouter",
    "ConsistencyLevel",
    "KeyGenerator",
    "MemoryPool",
    "MemoryStore",
    "NullStore",
    "ObjectCache",
    "RedisStore",
    "StoreAdapter",
    "StoreKind",
    "build_cache_config",
    "create_adapter",
    "create_object_cache",
    "CacheConfigFault",
    "CacheFault",
    "FaultEngine",
]
