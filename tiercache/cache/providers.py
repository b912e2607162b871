"""
Tiercache — Factories wiring stores and the facade from configuration.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .core import CacheConfig
from .faults import CacheConfigFault
from .serializers import get_serializer
from .service import ObjectCache
from .stores import MemoryStore, NullStore, RedisStore

logger = logging.getLogger("tiercache.cache.providers")


def create_store(kind: str, config: CacheConfig) -> Any:
    """
    Factory: create a native store from configuration.

    Args:
        kind: "memory", "redis" or "null"
        config: CacheConfig instance

    Raises:
        CacheConfigFault: unknown kind
    """
    backend_type = kind.lower()

    if backend_type == "memory":
        return MemoryStore(
            max_size=config.max_size,
            eviction_policy=config.eviction_policy,
            sweep_interval=config.sweep_interval,
        )

    elif backend_type == "redis":
        return RedisStore(
            url=config.redis_url,
            max_connections=config.redis_max_connections,
            socket_timeout=config.redis_socket_timeout,
            connect_timeout=config.redis_socket_connect_timeout,
            retry_on_timeout=config.redis_retry_on_timeout,
            key_prefix=config.key_prefix,
            serializer=get_serializer(config.serializer),
        )

    elif backend_type == "null":
        return NullStore()

    else:
        raise CacheConfigFault(f"unknown cache backend {kind!r}", backend=kind)


def create_object_cache(config: Optional[CacheConfig] = None, fault_engine: Optional[Any] = None) -> ObjectCache:
    """
    Factory: create an ObjectCache with both tiers built from configuration.

    The cache is returned uninitialized; await ``initialize()`` before use.
    """
    config = config or CacheConfig()
    config.validate()
    cache = ObjectCache(
        create_store(config.persistent_backend, config),
        create_store(config.ephemeral_backend, config),
        config=config,
        fault_engine=fault_engine,
    )
    logger.info(
        f"Object cache created (persistent={config.persistent_backend}, "
        f"ephemeral={config.ephemeral_backend}, consistency={config.consistency})"
    )
    return cache


def _groups(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(g.strip() for g in value.split(",") if g.strip())
    return tuple(value)


def build_cache_config(config_dict: Dict[str, Any]) -> CacheConfig:
    """
    Build CacheConfig from dictionary (e.g., from ConfigLoader).

    Group lists may be given as sequences or comma-separated strings,
    which is what environment variables produce.

    Raises:
        CacheConfigFault: invalid values
    """
    config = CacheConfig(
        persistent_backend=config_dict.get("persistent_backend", "memory"),
        ephemeral_backend=config_dict.get("ephemeral_backend", "memory"),
        site_id=int(config_dict.get("site_id", 1)),
        network_id=int(config_dict.get("network_id", 1)),
        global_groups=_groups(config_dict.get("global_groups")),
        network_groups=_groups(config_dict.get("network_groups")),
        non_persistent_groups=_groups(config_dict.get("non_persistent_groups")),
        consistency=config_dict.get("consistency", "relaxed"),
        max_size=int(config_dict.get("max_size", 10000)),
        eviction_policy=config_dict.get("eviction_policy", "lru"),
        sweep_interval=float(config_dict.get("sweep_interval", 30.0)),
        redis_url=config_dict.get("redis_url", "redis://localhost:6379/0"),
        redis_max_connections=int(config_dict.get("redis_max_connections", 10)),
        redis_socket_timeout=float(config_dict.get("redis_socket_timeout", 5.0)),
        redis_socket_connect_timeout=float(config_dict.get("redis_socket_connect_timeout", 5.0)),
        redis_retry_on_timeout=bool(config_dict.get("redis_retry_on_timeout", True)),
        key_prefix=config_dict.get("key_prefix", "tc:"),
        serializer=config_dict.get("serializer", "json"),
    )
    config.validate()
    return config


__all__ = ["create_store", "create_object_cache", "build_cache_config"]
