"""
Tiercache — Group routing.

Decides, per cache group, whether data may ever leave the ephemeral tier
and which store of each tier serves the group. Groups default to
persistent-eligible and to the tier's default store; both registries
only grow.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Union

from .core import StoreAdapter
from .faults import CacheConfigFault
from .key_builder import as_group_list

logger = logging.getLogger("tiercache.cache.router")


class CacheRouter:
    """
    Lookup tables for group persistence and per-group store overrides.

    Usage::

        router = CacheRouter()
        router.add_non_persistent_groups(["counts", "plugins"])
        router.bind(persistent_adapter, ephemeral_adapter)
        router.register_persistent_store(sessions_adapter, ["sessions"])

        router.is_non_persistent_group("counts")   # True
        router.select_persistent("sessions")       # sessions_adapter
        router.select_persistent("posts")          # persistent_adapter
    """

    __slots__ = (
        "_non_persistent_groups",
        "_persistent",
        "_ephemeral",
        "_persistent_stores",
        "_ephemeral_stores",
    )

    def __init__(
        self,
        persistent: Optional[StoreAdapter] = None,
        ephemeral: Optional[StoreAdapter] = None,
    ):
        self._non_persistent_groups: Dict[str, bool] = {}
        self._persistent = persistent
        self._ephemeral = ephemeral
        self._persistent_stores: Dict[str, StoreAdapter] = {}
        self._ephemeral_stores: Dict[str, StoreAdapter] = {}

    def bind(self, persistent: StoreAdapter, ephemeral: StoreAdapter) -> None:
        """Set the default store of each tier."""
        self._persistent = persistent
        self._ephemeral = ephemeral

    # ── Persistence registry ─────────────────────────────────────────

    def add_non_persistent_groups(self, groups: Union[str, Iterable[str]]) -> None:
        for group in as_group_list(groups):
            self._non_persistent_groups[group] = True

    def is_non_persistent_group(self, group: str) -> bool:
        return group in self._non_persistent_groups

    def non_persistent_groups(self) -> List[str]:
        return list(self._non_persistent_groups)

    # ── Store selection ──────────────────────────────────────────────

    def register_persistent_store(self, store: StoreAdapter, groups: Union[str, Iterable[str]]) -> None:
        """Serve the persistent tier of ``groups`` from ``store``."""
        for group in as_group_list(groups):
            self._persistent_stores[group] = store
            logger.debug(f"Persistent store for group '{group}': {store.name}")

    def register_ephemeral_store(self, store: StoreAdapter, groups: Union[str, Iterable[str]]) -> None:
        """Serve the ephemeral tier of ``groups`` from ``store``."""
        for group in as_group_list(groups):
            self._ephemeral_stores[group] = store
            logger.debug(f"Ephemeral store for group '{group}': {store.name}")

    def select_persistent(self, group: str) -> StoreAdapter:
        store = self._persistent_stores.get(group, self._persistent)
        if store is None:
            raise CacheConfigFault("no persistent store bound")
        return store

    def select_ephemeral(self, group: str) -> StoreAdapter:
        store = self._ephemeral_stores.get(group, self._ephemeral)
        if store is None:
            raise CacheConfigFault("no ephemeral store bound")
        return store

    def persistent_stores(self) -> List[StoreAdapter]:
        """The default persistent store followed by distinct overrides."""
        return _distinct([self._persistent, *self._persistent_stores.values()])

    def ephemeral_stores(self) -> List[StoreAdapter]:
        """The default ephemeral store followed by distinct overrides."""
        return _distinct([self._ephemeral, *self._ephemeral_stores.values()])

    async def clear_persistent(self) -> bool:
        """Clear every store of the persistent tier; True only if all cleared."""
        return await _clear_all(self.persistent_stores())

    async def clear_ephemeral(self) -> bool:
        """Clear every store of the ephemeral tier; True only if all cleared."""
        return await _clear_all(self.ephemeral_stores())

    def __repr__(self) -> str:
        return (
            f"<CacheRouter non_persistent={len(self._non_persistent_groups)} "
            f"overrides={len(self._persistent_stores) + len(self._ephemeral_stores)}>"
        )


def _distinct(stores: Iterable[Optional[StoreAdapter]]) -> List[StoreAdapter]:
    seen: List[StoreAdapter] = []
    for store in stores:
        if store is not None and not any(store is s for s in seen):
            seen.append(store)
    return seen


async def _clear_all(stores: List[StoreAdapter]) -> bool:
    # Every store is attempted even after a failure
    ok = True
    for store in stores:
        if not await store.clear():
            logger.warning(f"Clear failed on {store.name}")
            ok = False
    return ok
