"""
Tiercache — Store adapters.

``create_adapter`` maps a native store onto the one adapter variant that
fits it. The set of variants is closed (``StoreKind``).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional, Union

from ..core import StoreAdapter
from ..faults import CacheConfigFault
from .base import NativeStoreAdapter
from .pool import POOL_METHODS, PoolStoreAdapter
from .simple import SIMPLE_METHODS, SimpleStoreAdapter

logger = logging.getLogger("tiercache.cache.adapters")


class StoreKind(str, Enum):
    """Native store protocols an adapter exists for."""
    SIMPLE = "simple"   # key/value calls
    POOL = "pool"       # item objects + save/commit


_REQUIRED = {
    StoreKind.SIMPLE: SIMPLE_METHODS,
    StoreKind.POOL: POOL_METHODS,
}


def _implements(store: Any, kind: StoreKind) -> bool:
    return all(callable(getattr(store, m, None)) for m in _REQUIRED[kind])


def detect_kind(store: Any) -> Optional[StoreKind]:
    """Probe capabilities, pool first. None if neither protocol fits."""
    if _implements(store, StoreKind.POOL):
        return StoreKind.POOL
    if _implements(store, StoreKind.SIMPLE):
        return StoreKind.SIMPLE
    return None


def create_adapter(
    store: Any,
    kind: Union[StoreKind, str, None] = None,
    *,
    fault_engine: Optional[Any] = None,
) -> StoreAdapter:
    """
    Wrap ``store`` in the adapter matching ``kind`` (probed when omitted).

    An existing ``StoreAdapter`` is returned unchanged.

    Raises:
        CacheConfigFault: store is missing or does not implement the protocol
    """
    if isinstance(store, StoreAdapter):
        return store
    if store is None:
        raise CacheConfigFault("no store supplied")

    if kind is None:
        resolved = detect_kind(store)
        if resolved is None:
            raise CacheConfigFault(
                f"store of type {type(store).__name__} implements neither the "
                f"simple nor the pool protocol",
                store_type=type(store).__name__,
            )
    else:
        try:
            resolved = StoreKind(kind)
        except ValueError:
            raise CacheConfigFault(f"unknown store kind {kind!r}")
        if not _implements(store, resolved):
            missing = [m for m in _REQUIRED[resolved] if not callable(getattr(store, m, None))]
            raise CacheConfigFault(
                f"store of type {type(store).__name__} is not a {resolved.value} store",
                store_type=type(store).__name__,
                missing=missing,
            )

    if resolved is StoreKind.POOL:
        adapter: StoreAdapter = PoolStoreAdapter(store, fault_engine)
    elif resolved is StoreKind.SIMPLE:
        adapter = SimpleStoreAdapter(store, fault_engine)
    else:
        raise AssertionError(f"unhandled store kind {resolved!r}")

    logger.debug(f"Adapted {type(store).__name__} as {resolved.value} store")
    return adapter


__all__ = [
    "StoreKind",
    "NativeStoreAdapter",
    "SimpleStoreAdapter",
    "PoolStoreAdapter",
    "create_adapter",
    "detect_kind",
]
