"""
Shared plumbing for adapters that wrap a native store object.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..core import StoreAdapter
from ..faults import CacheBackendFault, CacheFault

logger = logging.getLogger("tiercache.cache.adapters")


class NativeStoreAdapter(StoreAdapter):
    """
    Base for adapters around a native store.

    Native exceptions stop here: each one is logged, emitted as a
    ``CacheBackendFault`` when a fault engine is wired, and turned into the
    failure value of the operation by the caller.
    """

    def __init__(self, store: Any, fault_engine: Optional[Any] = None):
        self._store = store
        self.fault_engine = fault_engine

    @property
    def client(self) -> Any:
        return self._store

    async def initialize(self) -> None:
        init = getattr(self._store, "initialize", None)
        if init is not None:
            await init()

    async def shutdown(self) -> None:
        close = getattr(self._store, "shutdown", None)
        if close is not None:
            await close()

    def _failed(self, operation: str, exc: Exception) -> None:
        logger.warning(f"{self.name} {operation} failed: {exc}")
        if self.fault_engine is not None:
            fault = exc if isinstance(exc, CacheFault) else CacheBackendFault(self.name, operation, str(exc))
            self.fault_engine.emit(
                fault,
                component=type(self).__name__,
                operation=operation,
                cause=exc,
            )

    def __repr__(self) -> str:
        return f"<{self.name}>"
