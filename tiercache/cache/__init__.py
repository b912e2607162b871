"""
Tiercache cache — two-tier object cache with tenant-aware keys.

Provides:
- **ObjectCache**: read-through / write-through facade over an ephemeral
  and a persistent tier
- **KeyGenerator**: ``global.`` / ``network.<id>.`` / ``site.<id>.`` keys
- **CacheRouter**: non-persistent groups and per-group store overrides
- **Store adapters**: simple key/value and item-pool protocols
- **Stores**: memory (LRU/FIFO + TTL), Redis, item pool, null
- **Fault domain**: typed cache faults

Usage::

    from tiercache.cache import ObjectCache, MemoryStore, RedisStore, MISS

    cache = ObjectCache(RedisStore("redis://localhost:6379/0"), MemoryStore())
    await cache.initialize()

    cache.add_network_groups(["site-options"])
    await cache.set("alloptions", {"blogname": "x"}, group="site-options")
"""

from .core import (
    DEFAULT_GROUP,
    MISS,
    CacheConfig,
    CacheLookup,
    CacheStats,
    ConsistencyLevel,
    EvictionPolicy,
    StoreAdapter,
)
from .adapters import (
    PoolStoreAdapter,
    SimpleStoreAdapter,
    StoreKind,
    create_adapter,
    detect_kind,
)
from .key_builder import KeyGenerator, TenantContext, sanitize
from .router import CacheRouter
from .service import ObjectCache, align_groups
from .stores import CacheItem, MemoryPool, MemoryStore, NullStore, RedisStore
from .serializers import (
    JsonCacheSerializer,
    MsgpackCacheSerializer,
    PickleCacheSerializer,
    get_serializer,
)
from .faults import (
    CacheBackendFault,
    CacheConfigFault,
    CacheConnectionFault,
    CacheFault,
    CacheSerializationFault,
)
from .providers import build_cache_config, create_object_cache, create_store

__all__ = [
    # Core
    "DEFAULT_GROUP",
    "MISS",
    "CacheConfig",
    "CacheLookup",
    "CacheStats",
    "ConsistencyLevel",
    "EvictionPolicy",
    "StoreAdapter",
    # Adapters
    "StoreKind",
    "SimpleStoreAdapter",
    "PoolStoreAdapter",
    "create_adapter",
    "detect_kind",
    # Keys and routing
    "KeyGenerator",
    "TenantContext",
    "sanitize",
    "CacheRouter",
    # Facade
    "ObjectCache",
    "align_groups",
    # Stores
    "MemoryStore",
    "RedisStore",
    "NullStore",
    "MemoryPool",
    "CacheItem",
    # Serializers
    "JsonCacheSerializer",
    "PickleCacheSerializer",
    "MsgpackCacheSerializer",
    "get_serializer",
    # Faults
    "CacheFault",
    "CacheBackendFault",
    "CacheConfigFault",
    "CacheConnectionFault",
    "CacheSerializationFault",
    # Factories
    "build_cache_config",
    "create_object_cache",
    "create_store",
]
