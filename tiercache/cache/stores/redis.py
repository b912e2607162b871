"""
Tiercache — Redis store for the shared persistent tier.

Simple key/value store on redis-py's asyncio client:
- Connection pool with configurable size
- MGET / pipelines for batch reads and writes
- ``SET NX`` / ``SET XX`` for atomic add/replace
- Prefix-scoped clear via SCAN
- Values encoded with a pluggable serializer

Errors are raised to the caller; the store adapter turns them into
``False`` / ``MISS`` plus a fault.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, Mapping, Optional

import redis.asyncio as aioredis

from ..core import CacheStats
from ..faults import CacheConnectionFault, CacheSerializationFault
from ..serializers import JsonCacheSerializer

logger = logging.getLogger("tiercache.cache.redis")


class RedisStore:
    """
    Redis-backed store using redis-py async.

    Every key is stored under ``key_prefix``, so ``clear()`` removes only
    this store's keys from a shared database.
    """

    __slots__ = (
        "_url",
        "_max_connections",
        "_socket_timeout",
        "_connect_timeout",
        "_retry_on_timeout",
        "_key_prefix",
        "_serializer",
        "_redis",
        "_stats",
        "_start_time",
        "_initialized",
    )

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        max_connections: int = 10,
        socket_timeout: float = 5.0,
        connect_timeout: float = 5.0,
        retry_on_timeout: bool = True,
        key_prefix: str = "tc:",
        serializer: Optional[Any] = None,
        client: Optional[Any] = None,
    ):
        """
        Args:
            client: Ready-made ``redis.asyncio.Redis`` client; skips
                ``from_url`` on initialize.
        """
        self._url = url
        self._max_connections = max_connections
        self._socket_timeout = socket_timeout
        self._connect_timeout = connect_timeout
        self._retry_on_timeout = retry_on_timeout
        self._key_prefix = key_prefix
        self._serializer = serializer or JsonCacheSerializer()
        self._redis = client
        self._stats = CacheStats(backend="redis")
        self._start_time = time.monotonic()
        self._initialized = False

    @property
    def name(self) -> str:
        return "redis"

    @property
    def key_prefix(self) -> str:
        return self._key_prefix

    async def initialize(self) -> None:
        """Connect to Redis and verify the connection."""
        if self._initialized:
            return
        try:
            if self._redis is None:
                self._redis = aioredis.from_url(
                    self._url,
                    max_connections=self._max_connections,
                    socket_timeout=self._socket_timeout,
                    socket_connect_timeout=self._connect_timeout,
                    retry_on_timeout=self._retry_on_timeout,
                    decode_responses=False,  # We handle serialization
                )
            await self._redis.ping()
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise CacheConnectionFault("redis", str(e)) from e
        self._start_time = time.monotonic()
        self._initialized = True
        logger.info(f"Redis cache connected: {self._url}")

    async def shutdown(self) -> None:
        """Close the connection pool."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        self._initialized = False

    # ── Reads ────────────────────────────────────────────────────────

    async def get(self, key: str, default: Any = None) -> Any:
        raw = await self._client().get(self._full_key(key))
        if raw is None:
            self._stats.misses += 1
            return default
        self._stats.hits += 1
        return self._decode(key, raw)

    async def has(self, key: str) -> bool:
        return bool(await self._client().exists(self._full_key(key)))

    async def get_many(self, keys: Iterable[str], default: Any = None) -> Dict[str, Any]:
        """Single MGET round trip."""
        keys = list(keys)
        if not keys:
            return {}
        raws = await self._client().mget([self._full_key(k) for k in keys])
        results = {}
        for key, raw in zip(keys, raws):
            if raw is None:
                self._stats.misses += 1
                results[key] = default
            else:
                self._stats.hits += 1
                results[key] = self._decode(key, raw)
        return results

    # ── Writes ───────────────────────────────────────────────────────

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        result = await self._client().set(self._full_key(key), self._encode(key, value), ex=ttl or None)
        self._stats.sets += 1
        return bool(result)

    async def add(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """SET NX: written only if absent, atomically at the server."""
        result = await self._client().set(
            self._full_key(key), self._encode(key, value), ex=ttl or None, nx=True,
        )
        if result:
            self._stats.sets += 1
        return bool(result)

    async def replace(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """SET XX: written only if present, atomically at the server."""
        result = await self._client().set(
            self._full_key(key), self._encode(key, value), ex=ttl or None, xx=True,
        )
        if result:
            self._stats.sets += 1
        return bool(result)

    async def set_many(self, values: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        """Pipelined batch set."""
        if not values:
            return True
        pipe = self._client().pipeline()
        for key, value in values.items():
            pipe.set(self._full_key(key), self._encode(key, value), ex=ttl or None)
        results = await pipe.execute()
        self._stats.sets += len(values)
        return all(results)

    async def delete(self, key: str) -> bool:
        """True whether or not the key existed."""
        removed = await self._client().delete(self._full_key(key))
        self._stats.deletes += removed
        return True

    async def delete_many(self, keys: Iterable[str]) -> bool:
        full_keys = [self._full_key(k) for k in keys]
        if full_keys:
            self._stats.deletes += await self._client().delete(*full_keys)
        return True

    async def clear(self) -> bool:
        """Delete every key under this store's prefix."""
        client = self._client()
        cursor = 0
        while True:
            cursor, keys = await client.scan(
                cursor=cursor,
                match=f"{self._key_prefix}*",
                count=1000,
            )
            if keys:
                await client.delete(*keys)
            if cursor == 0:
                break
        return True

    # ── Introspection ────────────────────────────────────────────────

    async def health_check(self) -> bool:
        """Check if Redis is reachable."""
        if self._redis is None:
            return False
        try:
            await self._redis.ping()
            return True
        except Exception as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def stats(self) -> CacheStats:
        self._stats.uptime_seconds = time.monotonic() - self._start_time
        return self._stats

    # ── Private helpers ──────────────────────────────────────────────

    def _client(self):
        if self._redis is None:
            raise CacheConnectionFault("redis", "store not initialized")
        return self._redis

    def _full_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def _encode(self, key: str, value: Any) -> bytes:
        try:
            return self._serializer.serialize(value)
        except Exception as e:
            self._stats.errors += 1
            raise CacheSerializationFault(key, "serialize", str(e)) from e

    def _decode(self, key: str, raw: bytes) -> Any:
        try:
            return self._serializer.deserialize(raw)
        except Exception as e:
            self._stats.errors += 1
            raise CacheSerializationFault(key, "deserialize", str(e)) from e
