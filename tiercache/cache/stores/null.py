"""
Tiercache — Null (no-op) store.

Used for testing, or to run with caching disabled without changing the
code that talks to the cache. Writes report success and are dropped;
every read misses.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from ..core import CacheStats


class NullStore:
    """No-op simple store."""

    __slots__ = ("_stats",)

    def __init__(self):
        self._stats = CacheStats(backend="null")

    @property
    def name(self) -> str:
        return "null"

    async def get(self, key: str, default: Any = None) -> Any:
        self._stats.misses += 1
        return default

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        self._stats.sets += 1
        return True

    async def delete(self, key: str) -> bool:
        return True

    async def has(self, key: str) -> bool:
        return False

    async def clear(self) -> bool:
        return True

    async def get_many(self, keys: Iterable[str], default: Any = None) -> Dict[str, Any]:
        keys = list(keys)
        self._stats.misses += len(keys)
        return {key: default for key in keys}

    async def set_many(self, values: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        self._stats.sets += len(values)
        return True

    async def delete_many(self, keys: Iterable[str]) -> bool:
        return True

    async def stats(self) -> CacheStats:
        return self._stats
