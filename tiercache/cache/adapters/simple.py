"""
Adapter for simple key/value stores.

A simple store exposes awaitable ``get(key, default)``, ``set(key, value,
ttl)``, ``delete(key)``, ``has(key)``, ``clear()``, ``get_many(keys,
default)``, ``set_many(mapping, ttl)`` and ``delete_many(keys)``. Stores
that also expose ``add`` and ``replace`` with the same signature as
``set`` are treated as providing atomic conditional writes.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..core import MISS, normalize_ttl
from .base import NativeStoreAdapter

SIMPLE_METHODS = ("get", "set", "delete", "has", "clear", "get_many", "set_many", "delete_many")
ATOMIC_METHODS = ("add", "replace")


class SimpleStoreAdapter(NativeStoreAdapter):
    """Normalizes a simple key/value store to the adapter contract."""

    def __init__(self, store: Any, fault_engine: Optional[Any] = None):
        super().__init__(store, fault_engine)
        self.supports_atomic = all(callable(getattr(store, m, None)) for m in ATOMIC_METHODS)

    async def get(self, key: str) -> Any:
        try:
            return await self._store.get(key, MISS)
        except Exception as e:
            self._failed("get", e)
            return MISS

    async def set(self, key: str, value: Any, ttl: int = 0) -> bool:
        try:
            return bool(await self._store.set(key, value, normalize_ttl(ttl)))
        except Exception as e:
            self._failed("set", e)
            return False

    async def add(self, key: str, value: Any, ttl: int = 0) -> bool:
        if not self.supports_atomic:
            return await super().add(key, value, ttl)
        try:
            return bool(await self._store.add(key, value, normalize_ttl(ttl)))
        except Exception as e:
            self._failed("add", e)
            return False

    async def replace(self, key: str, value: Any, ttl: int = 0) -> bool:
        if not self.supports_atomic:
            return await super().replace(key, value, ttl)
        try:
            return bool(await self._store.replace(key, value, normalize_ttl(ttl)))
        except Exception as e:
            self._failed("replace", e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self._store.delete(key))
        except Exception as e:
            self._failed("delete", e)
            return False

    async def has(self, key: str) -> bool:
        try:
            return bool(await self._store.has(key))
        except Exception as e:
            self._failed("has", e)
            return False

    async def get_many(self, keys: List[str]) -> Dict[str, Any]:
        keys = list(keys)
        try:
            found = dict(await self._store.get_many(keys, MISS))
        except Exception as e:
            self._failed("get_many", e)
            found = {}
        return {key: found.get(key, MISS) for key in keys}

    async def set_many(self, values: Mapping[str, Any], ttl: int = 0) -> bool:
        if not values:
            return True
        try:
            return bool(await self._store.set_many(dict(values), normalize_ttl(ttl)))
        except Exception as e:
            self._failed("set_many", e)
            return False

    async def delete_many(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        if not keys:
            return True
        try:
            return bool(await self._store.delete_many(keys))
        except Exception as e:
            self._failed("delete_many", e)
            return False

    async def clear(self) -> bool:
        try:
            return bool(await self._store.clear())
        except Exception as e:
            self._failed("clear", e)
            return False
