"""
Tiercache — Item-pool memory store.

An in-process store speaking the item-pool protocol: callers fetch
``CacheItem`` objects, mutate them, and hand them back through ``save``
or ``save_deferred`` + ``commit``. Used where an ephemeral tier is
wanted behind the pool adapter.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from ..core import MISS, monotonic_deadline

logger = logging.getLogger("tiercache.cache.pool")


class CacheItem:
    """One key of a ``MemoryPool``, detached from the pool until saved."""

    __slots__ = ("_key", "_value", "_hit", "_expires_at")

    def __init__(self, key: str, value: Any = MISS, hit: bool = False, expires_at: Optional[float] = None):
        self._key = key
        self._value = value
        self._hit = hit
        self._expires_at = expires_at

    @property
    def key(self) -> str:
        return self._key

    def get(self) -> Any:
        """The cached value; ``None`` when the item is not a hit."""
        return self._value if self._hit else None

    def is_hit(self) -> bool:
        return self._hit

    def set(self, value: Any) -> "CacheItem":
        self._value = value
        return self

    def expires_after(self, seconds: Optional[int]) -> "CacheItem":
        """``None`` or ``0`` keeps the item forever."""
        self._expires_at = monotonic_deadline(seconds)
        return self

    def __repr__(self) -> str:
        return f"<CacheItem {self._key!r} hit={self._hit}>"


class MemoryPool:
    """Unbounded in-memory item pool."""

    def __init__(self):
        self._items: Dict[str, tuple] = {}
        self._deferred: Dict[str, CacheItem] = {}
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return "pool:memory"

    async def get_item(self, key: str) -> CacheItem:
        async with self._lock:
            return self._load(key)

    async def get_items(self, keys: Iterable[str]) -> Dict[str, CacheItem]:
        async with self._lock:
            return {key: self._load(key) for key in keys}

    async def has_item(self, key: str) -> bool:
        async with self._lock:
            return self._load(key).is_hit()

    async def save(self, item: CacheItem) -> bool:
        async with self._lock:
            self._store(item)
            return True

    async def save_deferred(self, item: CacheItem) -> bool:
        self._deferred[item.key] = item
        return True

    async def commit(self) -> bool:
        async with self._lock:
            pending, self._deferred = self._deferred, {}
            for item in pending.values():
                self._store(item)
            if pending:
                logger.debug(f"Committed {len(pending)} deferred items")
            return True

    async def delete_item(self, key: str) -> bool:
        async with self._lock:
            self._items.pop(key, None)
            return True

    async def delete_items(self, keys: Iterable[str]) -> bool:
        async with self._lock:
            for key in keys:
                self._items.pop(key, None)
            return True

    async def clear(self) -> bool:
        async with self._lock:
            self._items.clear()
            self._deferred.clear()
            return True

    def keys(self) -> List[str]:
        return list(self._items)

    # ── Private helpers ──────────────────────────────────────────────

    def _load(self, key: str) -> CacheItem:
        row = self._items.get(key)
        if row is None:
            return CacheItem(key)
        value, expires_at = row
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._items[key]
            return CacheItem(key)
        return CacheItem(key, value, hit=True, expires_at=expires_at)

    def _store(self, item: CacheItem) -> None:
        self._items[item.key] = (item._value, item._expires_at)
