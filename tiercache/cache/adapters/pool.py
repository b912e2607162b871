"""
Adapter for item-pool stores.

A pool hands out item objects: ``await get_item(key)`` returns an item with
``is_hit()``, ``get()``, ``set(value)`` and ``expires_after(seconds)``;
changed items are written back with ``save`` or ``save_deferred`` +
``commit``. A pool miss (``is_hit() is False``) becomes ``MISS``.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from ..core import MISS, normalize_ttl
from .base import NativeStoreAdapter

POOL_METHODS = (
    "get_item",
    "get_items",
    "has_item",
    "save",
    "save_deferred",
    "commit",
    "delete_item",
    "delete_items",
    "clear",
)


class PoolStoreAdapter(NativeStoreAdapter):
    """Normalizes an item-pool store to the adapter contract."""

    async def get(self, key: str) -> Any:
        try:
            item = await self._store.get_item(key)
        except Exception as e:
            self._failed("get", e)
            return MISS
        return item.get() if item.is_hit() else MISS

    async def set(self, key: str, value: Any, ttl: int = 0) -> bool:
        try:
            item = await self._store.get_item(key)
            item.set(value)
            item.expires_after(normalize_ttl(ttl))
            return bool(await self._store.save(item))
        except Exception as e:
            self._failed("set", e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self._store.delete_item(key))
        except Exception as e:
            self._failed("delete", e)
            return False

    async def has(self, key: str) -> bool:
        try:
            return bool(await self._store.has_item(key))
        except Exception as e:
            self._failed("has", e)
            return False

    async def get_many(self, keys: List[str]) -> Dict[str, Any]:
        keys = list(keys)
        try:
            items = await self._store.get_items(keys)
        except Exception as e:
            self._failed("get_many", e)
            return {key: MISS for key in keys}
        result = {}
        for key in keys:
            item = items.get(key)
            result[key] = item.get() if item is not None and item.is_hit() else MISS
        return result

    async def set_many(self, values: Mapping[str, Any], ttl: int = 0) -> bool:
        if not values:
            return True
        expiry = normalize_ttl(ttl)
        try:
            items = await self._store.get_items(list(values))
            deferred = True
            for key, value in values.items():
                item = items[key]
                item.set(value)
                item.expires_after(expiry)
                if not await self._store.save_deferred(item):
                    deferred = False
            # No item of this batch may stay queued past this call
            committed = bool(await self._store.commit())
            return deferred and committed
        except Exception as e:
            self._failed("set_many", e)
            return False

    async def delete_many(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        if not keys:
            return True
        try:
            return bool(await self._store.delete_items(keys))
        except Exception as e:
            self._failed("delete_many", e)
            return False

    async def clear(self) -> bool:
        try:
            return bool(await self._store.clear())
        except Exception as e:
            self._failed("clear", e)
            return False
