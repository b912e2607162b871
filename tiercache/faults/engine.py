"""
Tiercache Faults - Fault Engine.

The FaultEngine collects faults emitted by the cache layer:
1. Wraps each fault in a FaultContext
2. Logs it at the level mapped from its severity
3. Notifies registered listeners (metrics, tracing, tests)
4. Keeps a bounded history for inspection

Store failures never propagate as exceptions out of the cache facade;
the engine is where they become observable.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .core import Fault, FaultContext, Severity


_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.FATAL: logging.CRITICAL,
}


class FaultEngine:
    """
    Runtime fault collector.

    Usage:
        ```python
        engine = FaultEngine()
        engine.on_fault(lambda ctx: metrics.incr(ctx.fault.code))

        cache = ObjectCache(redis_store, MemoryStore(), fault_engine=engine)
        ```
    """

    def __init__(
        self,
        *,
        logger: Optional[logging.Logger] = None,
        max_history: int = 100,
    ):
        """
        Args:
            logger: Logger for fault events (creates default if None)
            max_history: Number of recent fault contexts to retain
        """
        self.logger = logger or logging.getLogger("tiercache.faults")
        self._event_listeners: list[Callable[[FaultContext], None]] = []
        self._history: list[FaultContext] = []
        self._max_history = max_history
        self._emitted = 0

    def on_fault(self, listener: Callable[[FaultContext], None]) -> None:
        """
        Register fault event listener.

        Args:
            listener: Callback receiving FaultContext
        """
        self._event_listeners.append(listener)

    def emit(
        self,
        fault: Fault,
        *,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> FaultContext:
        """
        Emit a fault: log it, record it, and notify listeners.

        Returns:
            The captured FaultContext
        """
        ctx = FaultContext.capture(
            fault,
            component=component,
            operation=operation,
            cause=cause,
        )

        self.logger.log(
            _LOG_LEVELS[fault.severity],
            f"[{fault.domain.value.upper()}] {fault.code}: {fault.message}",
            extra={
                "fault_context": ctx.to_dict(),
                "trace_id": ctx.trace_id,
                "fingerprint": ctx.fingerprint(),
            },
        )

        self._emitted += 1
        self._history.append(ctx)
        if len(self._history) > self._max_history:
            self._history.pop(0)

        for listener in self._event_listeners:
            try:
                listener(ctx)
            except Exception as e:
                self.logger.error(f"Fault listener raised exception: {e}")

        return ctx

    def get_history(self) -> list[FaultContext]:
        """Recent fault contexts, oldest first."""
        return self._history.copy()

    def clear_history(self) -> None:
        self._history.clear()

    def get_stats(self) -> dict[str, Any]:
        return {
            "emitted": self._emitted,
            "listeners": len(self._event_listeners),
            "history_size": len(self._history),
        }
