"""
Tiercache Faults - Structured fault handling.

Faults are typed signals with a stable code, a domain, a severity and
retry semantics. Configuration faults are raised; store faults are
emitted to a FaultEngine so the cache facade itself stays total.

Core exports:
- Fault: Base fault class
- FaultContext: Runtime context wrapper
- FaultDomain: Domain taxonomy
- Severity: Severity levels
- FaultEngine: Runtime fault collector
"""

from .core import (
    Fault,
    FaultContext,
    FaultDomain,
    Severity,
)

from .engine import FaultEngine

__all__ = [
    "Fault",
    "FaultContext",
    "FaultDomain",
    "Severity",
    "FaultEngine",
]
