"""
Tiercache Faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultContext (runtime context wrapper)
- FaultDomain (explicit fault domains)
- Severity levels
"""

from __future__ import annotations

import hashlib
import sys
import time
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines the logging level a fault is emitted at.
    """
    INFO = "info"       # Informational, no action needed
    WARN = "warn"       # Warning, should be reviewed
    ERROR = "error"     # Error, immediate attention
    FATAL = "fatal"     # Fatal, unrecoverable, abort


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred. Subsystems
    register their own domain as a class attribute (see ``FaultDomain.CACHE``).
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.IO = FaultDomain("io", "I/O operations")
FaultDomain.SYSTEM = FaultDomain("system", "System level faults")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.IO: {"severity": Severity.WARN, "retryable": True},
    FaultDomain.SYSTEM: {"severity": Severity.FATAL, "retryable": False},
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    A fault carries:
    - Stable machine-readable code
    - Human-readable message
    - Severity level
    - Domain classification
    - Retry semantics

    Faults are raised for configuration errors and emitted (not raised)
    to a ``FaultEngine`` for runtime store failures.

    Attributes:
        code: Stable machine-readable identifier (e.g., "CACHE_CONFIG_INVALID")
        message: Human-readable summary
        severity: Fault severity (INFO, WARN, ERROR, FATAL)
        domain: Fault domain
        retryable: Whether this fault can be retried
        public: Whether safe to expose to client
        metadata: Additional context data
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        # Custom domains default to ERROR/non-retryable
        defaults = DOMAIN_DEFAULTS.get(self.domain, {"severity": Severity.ERROR, "retryable": False})
        self.severity = severity or defaults["severity"]
        self.retryable = retryable if retryable is not None else defaults["retryable"]
        self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"Fault(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize fault to dictionary for logging."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "public": self.public,
            "metadata": self.metadata,
        }


# ============================================================================
# FaultContext - Runtime Context Wrapper
# ============================================================================

@dataclass(slots=True)
class FaultContext:
    """
    Runtime context wrapper for an emitted fault.

    Attributes:
        fault: The underlying fault
        trace_id: Unique trace ID for this fault occurrence
        timestamp: When fault was captured
        component: Emitting component (e.g. "redis", "adapters.simple")
        operation: Operation in flight (e.g. "get_many")
        cause: Original exception (if fault wraps an exception)
        stack: Stack frames from fault origin
        metadata: Additional runtime metadata
    """

    fault: Fault
    trace_id: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    component: Optional[str] = None
    operation: Optional[str] = None
    cause: Optional[BaseException] = None
    stack: list[Any] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def capture(
        cls,
        fault: Fault,
        *,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> FaultContext:
        """
        Capture fault with runtime context.

        Extracts the stack trace of ``cause`` (or of the exception being
        handled) and generates a trace ID.
        """
        trace_data = f"{fault.code}:{time.time_ns()}"
        trace_id = hashlib.sha256(trace_data.encode()).hexdigest()[:16]

        stack = []
        if cause is not None and cause.__traceback__ is not None:
            stack = traceback.extract_tb(cause.__traceback__)
        elif sys.exc_info()[2] is not None:
            stack = traceback.extract_tb(sys.exc_info()[2])

        return cls(
            fault=fault,
            trace_id=trace_id,
            component=component,
            operation=operation,
            cause=cause,
            stack=stack,
        )

    def fingerprint(self) -> str:
        """
        Stable fingerprint for grouping similar fault occurrences.

        Fingerprint = hash(code + domain + component + operation)
        """
        data = ":".join([
            self.fault.code,
            self.fault.domain.value,
            self.component or "",
            self.operation or "",
        ])
        return hashlib.sha256(data.encode()).hexdigest()[:16]

    def to_dict(self) -> dict[str, Any]:
        return {
            "fault": self.fault.to_dict(),
            "trace_id": self.trace_id,
            "fingerprint": self.fingerprint(),
            "timestamp": self.timestamp.isoformat(),
            "component": self.component,
            "operation": self.operation,
            "cause": str(self.cause) if self.cause else None,
            "stack_depth": len(self.stack),
            "metadata": self.metadata,
        }

    def __str__(self) -> str:
        scope = f"{self.component}.{self.operation}" if self.component else "global"
        return f"FaultContext[{self.trace_id}]({scope}): {self.fault}"
