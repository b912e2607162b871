"""
Tiercache — In-process memory store.

Simple key/value store used as the ephemeral tier (and as a persistent
tier for single-process deployments and tests):

- **LRU**: OrderedDict with O(1) access/eviction
- **FIFO**: insertion order, O(1) eviction
- **TTL**: lazy expiry on access plus a heap-driven background sweeper

Every operation runs under one asyncio.Lock, which makes ``add`` and
``replace`` atomic for callers sharing the store.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import time
from collections import OrderedDict
from heapq import heapify, heappop, heappush
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..core import CacheStats, EvictionPolicy, monotonic_deadline

logger = logging.getLogger("tiercache.cache.memory")


class _Entry:
    __slots__ = ("value", "expires_at")

    def __init__(self, value: Any, expires_at: Optional[float]):
        self.value = value
        self.expires_at = expires_at

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() >= self.expires_at


class MemoryStore:
    """
    In-memory store with bounded size and per-entry TTL.

    ``ttl`` arguments are seconds; ``None`` or ``0`` stores without expiry.
    """

    __slots__ = (
        "_max_size",
        "_eviction_policy",
        "_store",
        "_lock",
        "_stats",
        "_start_time",
        "_ttl_heap",
        "_sweeper_task",
        "_sweep_interval",
        "_initialized",
    )

    def __init__(
        self,
        max_size: int = 10000,
        eviction_policy: str = "lru",
        sweep_interval: float = 30.0,
    ):
        """
        Args:
            max_size: Maximum number of entries
            eviction_policy: Eviction strategy ("lru", "fifo")
            sweep_interval: Seconds between TTL sweep cycles
        """
        self._max_size = max_size
        self._eviction_policy = EvictionPolicy(eviction_policy)
        self._sweep_interval = sweep_interval

        self._store: "OrderedDict[str, _Entry]" = OrderedDict()
        self._lock = asyncio.Lock()

        self._stats = CacheStats(max_size=max_size, backend="memory")
        self._start_time = time.monotonic()

        # (expires_at, key)
        self._ttl_heap: List[Tuple[float, str]] = []

        self._sweeper_task: Optional[asyncio.Task] = None
        self._initialized = False

    @property
    def name(self) -> str:
        return f"memory:{self._eviction_policy.value}"

    async def initialize(self) -> None:
        """Start the background TTL sweeper."""
        if self._initialized:
            return
        self._start_time = time.monotonic()
        self._initialized = True
        loop = asyncio.get_running_loop()
        self._sweeper_task = loop.create_task(self._ttl_sweeper())

    async def shutdown(self) -> None:
        """Stop the sweeper. Entries are kept."""
        if self._sweeper_task and not self._sweeper_task.done():
            self._sweeper_task.cancel()
            try:
                await self._sweeper_task
            except asyncio.CancelledError:
                pass
        self._sweeper_task = None
        self._initialized = False

    # ── Reads ────────────────────────────────────────────────────────

    async def get(self, key: str, default: Any = None) -> Any:
        """O(1) lookup with LRU promotion."""
        async with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                self._stats.misses += 1
                return default
            self._stats.hits += 1
            return entry.value

    async def has(self, key: str) -> bool:
        async with self._lock:
            return self._live_entry(key, promote=False) is not None

    async def get_many(self, keys: Iterable[str], default: Any = None) -> Dict[str, Any]:
        """Batch get, single lock acquisition."""
        async with self._lock:
            results = {}
            for key in keys:
                entry = self._live_entry(key)
                if entry is None:
                    self._stats.misses += 1
                    results[key] = default
                else:
                    self._stats.hits += 1
                    results[key] = entry.value
            return results

    # ── Writes ───────────────────────────────────────────────────────

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        async with self._lock:
            self._put(key, value, ttl)
            return True

    async def add(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Write only if absent; check and write happen under one lock."""
        async with self._lock:
            if self._live_entry(key, promote=False) is not None:
                return False
            self._put(key, value, ttl)
            return True

    async def replace(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Write only if present; check and write happen under one lock."""
        async with self._lock:
            if self._live_entry(key, promote=False) is None:
                return False
            self._put(key, value, ttl)
            return True

    async def set_many(self, values: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        """Batch set, single lock acquisition."""
        async with self._lock:
            for key, value in values.items():
                self._put(key, value, ttl)
            return True

    async def delete(self, key: str) -> bool:
        """True whether or not the key existed."""
        async with self._lock:
            if self._store.pop(key, None) is not None:
                self._stats.deletes += 1
            self._stats.size = len(self._store)
            return True

    async def delete_many(self, keys: Iterable[str]) -> bool:
        async with self._lock:
            for key in keys:
                if self._store.pop(key, None) is not None:
                    self._stats.deletes += 1
            self._stats.size = len(self._store)
            return True

    async def clear(self) -> bool:
        async with self._lock:
            self._store.clear()
            self._ttl_heap.clear()
            self._stats.size = 0
            return True

    # ── Introspection ────────────────────────────────────────────────

    async def keys(self, pattern: str = "*") -> List[str]:
        """List live keys matching a glob pattern."""
        async with self._lock:
            candidates = [k for k, e in self._store.items() if not e.is_expired]
        if pattern == "*":
            return candidates
        return [k for k in candidates if fnmatch.fnmatch(k, pattern)]

    async def stats(self) -> CacheStats:
        self._stats.size = len(self._store)
        self._stats.uptime_seconds = time.monotonic() - self._start_time
        return self._stats

    def __len__(self) -> int:
        return len(self._store)

    # ── Private helpers ──────────────────────────────────────────────

    def _live_entry(self, key: str, promote: bool = True) -> Optional[_Entry]:
        """Entry for key unless absent or expired. Caller must hold lock."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.is_expired:
            del self._store[key]
            self._stats.evictions += 1
            self._stats.size = len(self._store)
            return None
        if promote and self._eviction_policy == EvictionPolicy.LRU:
            self._store.move_to_end(key)
        return entry

    def _put(self, key: str, value: Any, ttl: Optional[int]) -> None:
        """Insert or overwrite, evicting at capacity. Caller must hold lock."""
        self._store.pop(key, None)
        while len(self._store) >= self._max_size:
            self._evict_one()

        expires_at = monotonic_deadline(ttl)
        self._store[key] = _Entry(value, expires_at)
        if expires_at is not None:
            heappush(self._ttl_heap, (expires_at, key))
            if len(self._ttl_heap) > 2 * len(self._store) + 64:
                self._compact_ttl_heap()

        self._stats.sets += 1
        self._stats.size = len(self._store)

    def _compact_ttl_heap(self) -> None:
        """Rebuild the heap from live entries, dropping rows of overwritten keys. Caller must hold lock."""
        self._ttl_heap = [
            (e.expires_at, k) for k, e in self._store.items() if e.expires_at is not None
        ]
        heapify(self._ttl_heap)

    def _evict_one(self) -> None:
        """Evict the oldest entry. Caller must hold lock."""
        if not self._store:
            return
        # LRU keeps recency order via move_to_end, FIFO keeps insertion order
        self._store.popitem(last=False)
        self._stats.evictions += 1

    async def _ttl_sweeper(self) -> None:
        """Background task removing expired entries."""
        while True:
            try:
                await asyncio.sleep(self._sweep_interval)
                swept = await self._sweep_expired()
                if swept:
                    logger.debug(f"TTL sweeper removed {swept} expired entries")
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"TTL sweep failed: {e}")

    async def _sweep_expired(self) -> int:
        async with self._lock:
            now = time.monotonic()
            swept = 0
            while self._ttl_heap:
                expires_at, key = self._ttl_heap[0]
                if expires_at > now:
                    break
                heappop(self._ttl_heap)
                entry = self._store.get(key)
                # Heap rows of overwritten entries are stale
                if entry is not None and entry.is_expired:
                    del self._store[key]
                    self._stats.evictions += 1
                    swept += 1
            self._stats.size = len(self._store)
            return swept
