"""
Tiercache — Cache fault domain.

Typed cache faults. ``CacheConfigFault`` is raised at setup time and is
fatal; the others are emitted to a ``FaultEngine`` by store adapters
while the failing call reports ``False`` / ``MISS`` to its caller.
"""

from __future__ import annotations

from typing import Any, Optional

from tiercache.faults.core import Fault, FaultDomain, Severity


# Register cache fault domain
FaultDomain.CACHE = FaultDomain("cache", "Cache subsystem faults")


class CacheFault(Fault):
    """Base class for all cache faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.WARN,
        retryable: bool = True,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CACHE,
            severity=severity,
            retryable=retryable,
            public=False,
            metadata=metadata,
        )


class CacheConnectionFault(CacheFault):
    """Failed to connect to a backing store."""

    def __init__(self, backend: str, reason: str, **kwargs):
        super().__init__(
            code="CACHE_CONNECTION_FAILED",
            message=f"Cache store '{backend}' connection failed: {reason}",
            severity=Severity.ERROR,
            retryable=True,
            metadata={"backend": backend, "reason": reason},
        )


class CacheSerializationFault(CacheFault):
    """Failed to serialize/deserialize a cache value."""

    def __init__(self, key: str, operation: str, reason: str, **kwargs):
        super().__init__(
            code="CACHE_SERIALIZATION_FAILED",
            message=f"Cache {operation} failed for key '{key}': {reason}",
            severity=Severity.WARN,
            retryable=False,
            metadata={"key": key, "operation": operation, "reason": reason},
        )


class CacheBackendFault(CacheFault):
    """A backing store raised during an operation."""

    def __init__(self, backend: str, operation: str, reason: str, **kwargs):
        super().__init__(
            code="CACHE_BACKEND_ERROR",
            message=f"Cache store '{backend}' error during {operation}: {reason}",
            severity=Severity.ERROR,
            retryable=True,
            metadata={"backend": backend, "operation": operation, "reason": reason},
        )


class CacheConfigFault(CacheFault):
    """
    Cache configuration error.

    Raised when no store is bound, when a store of an incompatible type is
    handed to the adapter factory, or when configuration values are invalid.
    """

    def __init__(self, reason: str, **kwargs):
        super().__init__(
            code="CACHE_CONFIG_INVALID",
            message=f"Invalid cache configuration: {reason}",
            severity=Severity.FATAL,
            retryable=False,
            metadata={"reason": reason, **kwargs},
        )
