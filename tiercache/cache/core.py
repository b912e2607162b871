"""
Tiercache — Core types, protocols, and data structures.

Defines the store adapter contract, the MISS sentinel, statistics and
configuration shared by the cache subsystem.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

from .faults import CacheConfigFault


DEFAULT_GROUP = "default"


# ============================================================================
# MISS sentinel
# ============================================================================

class _Miss:
    """
    Result of a lookup that found nothing.

    Falsy, so ``if not value`` keeps working for callers that do not care,
    while ``value is MISS`` separates a miss from a stored ``None``,
    ``False``, ``0`` or ``""``.
    """

    __slots__ = ()
    _instance: Optional["_Miss"] = None

    def __new__(cls) -> "_Miss":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISS"

    def __reduce__(self):
        return (_Miss, ())


MISS = _Miss()


class CacheLookup(NamedTuple):
    """Value plus explicit found flag, returned by ``ObjectCache.lookup``."""
    value: Any
    found: bool


# ============================================================================
# Enums
# ============================================================================

class ConsistencyLevel(str, Enum):
    """How ``add``/``replace`` check and write the tier of record."""
    RELAXED = "relaxed"   # has() then set(): two store calls, racy
    ATOMIC = "atomic"     # adapter's atomic add/replace primitive


class EvictionPolicy(str, Enum):
    """Eviction strategies of the in-process memory store."""
    LRU = "lru"       # Least Recently Used
    FIFO = "fifo"     # First In First Out


# ============================================================================
# Cache Stats
# ============================================================================

@dataclass
class CacheStats:
    """Aggregate cache statistics for observability."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    errors: int = 0
    size: int = 0
    max_size: int = 0
    backend: str = "unknown"
    uptime_seconds: float = 0.0

    @property
    def hit_rate(self) -> float:
        """Cache hit rate as a percentage."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return (self.hits / total) * 100.0

    @property
    def total_operations(self) -> int:
        return self.hits + self.misses + self.sets + self.deletes

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for diagnostics."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "evictions": self.evictions,
            "errors": self.errors,
            "hit_rate": round(self.hit_rate, 2),
            "size": self.size,
            "max_size": self.max_size,
            "backend": self.backend,
            "uptime_seconds": round(self.uptime_seconds, 2),
            "total_operations": self.total_operations,
        }


# ============================================================================
# Cache Configuration
# ============================================================================

PERSISTENT_BACKENDS = ("redis", "memory", "null")
EPHEMERAL_BACKENDS = ("memory", "null")
SERIALIZERS = ("json", "pickle", "msgpack")


@dataclass
class CacheConfig:
    """
    Cache subsystem configuration.

    Loaded from workspace config via ``ConfigLoader.get_cache_config()``
    and ``build_cache_config()``.
    """
    persistent_backend: str = "memory"    # "redis", "memory", "null"
    ephemeral_backend: str = "memory"     # "memory", "null"

    # Initial tenant context
    site_id: int = 1
    network_id: int = 1

    # Group registries applied at construction
    global_groups: Tuple[str, ...] = ()
    network_groups: Tuple[str, ...] = ()
    non_persistent_groups: Tuple[str, ...] = ()

    consistency: str = "relaxed"          # "relaxed", "atomic"

    # Memory store
    max_size: int = 10000
    eviction_policy: str = "lru"          # "lru", "fifo"
    sweep_interval: float = 30.0

    # Redis store
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 10
    redis_socket_timeout: float = 5.0
    redis_socket_connect_timeout: float = 5.0
    redis_retry_on_timeout: bool = True
    key_prefix: str = "tc:"
    serializer: str = "json"              # "json", "pickle", "msgpack"

    def validate(self) -> None:
        """Raise CacheConfigFault on values no store can be built from."""
        if self.persistent_backend not in PERSISTENT_BACKENDS:
            raise CacheConfigFault(f"unknown persistent backend {self.persistent_backend!r}")
        if self.ephemeral_backend not in EPHEMERAL_BACKENDS:
            raise CacheConfigFault(f"unknown ephemeral backend {self.ephemeral_backend!r}")
        if self.serializer not in SERIALIZERS:
            raise CacheConfigFault(f"unknown serializer {self.serializer!r}")
        try:
            ConsistencyLevel(self.consistency)
        except ValueError:
            raise CacheConfigFault(f"unknown consistency level {self.consistency!r}")
        try:
            EvictionPolicy(self.eviction_policy)
        except ValueError:
            raise CacheConfigFault(f"unknown eviction policy {self.eviction_policy!r}")
        if self.max_size <= 0:
            raise CacheConfigFault("max_size must be positive")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "persistent_backend": self.persistent_backend,
            "ephemeral_backend": self.ephemeral_backend,
            "site_id": self.site_id,
            "network_id": self.network_id,
            "global_groups": list(self.global_groups),
            "network_groups": list(self.network_groups),
            "non_persistent_groups": list(self.non_persistent_groups),
            "consistency": self.consistency,
            "max_size": self.max_size,
            "eviction_policy": self.eviction_policy,
            "sweep_interval": self.sweep_interval,
            "redis_url": self.redis_url,
            "redis_max_connections": self.redis_max_connections,
            "redis_socket_timeout": self.redis_socket_timeout,
            "redis_socket_connect_timeout": self.redis_socket_connect_timeout,
            "redis_retry_on_timeout": self.redis_retry_on_timeout,
            "key_prefix": self.key_prefix,
            "serializer": self.serializer,
        }


# ============================================================================
# Store Adapter (abstract base)
# ============================================================================

class StoreAdapter(ABC):
    """
    Uniform contract between the cache facade and one backing store.

    Keys are always fully-qualified; namespacing happens upstream in the
    key generator. A miss is reported as ``MISS``, never as ``None``, so a
    stored ``None``/``False``/``0`` round-trips. ``ttl == 0`` means no
    expiration.

    Implementations must not raise for store errors: they report ``MISS``
    or ``False`` instead. Batch calls report a single boolean even when the
    underlying store applied only part of the batch.
    """

    #: Whether ``add``/``replace`` are atomic at the store.
    supports_atomic: bool = False

    @abstractmethod
    async def get(self, key: str) -> Any:
        """Return the stored value or ``MISS``."""
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int = 0) -> bool:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """True if removed or already absent."""
        ...

    @abstractmethod
    async def has(self, key: str) -> bool:
        ...

    @abstractmethod
    async def get_many(self, keys: List[str]) -> Dict[str, Any]:
        """Map every requested key to its value or ``MISS``."""
        ...

    @abstractmethod
    async def set_many(self, values: Mapping[str, Any], ttl: int = 0) -> bool:
        ...

    @abstractmethod
    async def delete_many(self, keys: Iterable[str]) -> bool:
        ...

    @abstractmethod
    async def clear(self) -> bool:
        """Remove everything in this store."""
        ...

    async def add(self, key: str, value: Any, ttl: int = 0) -> bool:
        """
        Write only if the key is absent.

        Default implementation is non-atomic: two store calls.
        """
        if await self.has(key):
            return False
        return await self.set(key, value, ttl)

    async def replace(self, key: str, value: Any, ttl: int = 0) -> bool:
        """
        Write only if the key is present.

        Default implementation is non-atomic: two store calls.
        """
        if not await self.has(key):
            return False
        return await self.set(key, value, ttl)

    async def initialize(self) -> None:
        """Open connections / start background tasks of the wrapped store."""

    async def shutdown(self) -> None:
        """Release resources of the wrapped store."""

    @property
    @abstractmethod
    def client(self) -> Any:
        """The wrapped native store."""
        ...

    @property
    def name(self) -> str:
        """Adapter name for diagnostics."""
        store_name = getattr(self.client, "name", type(self.client).__name__)
        return f"{type(self).__name__}({store_name})"


def normalize_ttl(ttl: Optional[int]) -> Optional[int]:
    """Map the adapter TTL convention (0 = forever) to native ``None``."""
    if ttl is None or ttl <= 0:
        return None
    return int(ttl)


def monotonic_deadline(ttl: Optional[int]) -> Optional[float]:
    """Absolute expiry on the monotonic clock, or None for no expiry."""
    if ttl is None or ttl <= 0:
        return None
    return time.monotonic() + ttl
