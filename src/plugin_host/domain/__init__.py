"""
Domain layer: value types and interfaces shared across the plugin host.
"""

from .models import (
    CycleState,
    CycleOutcome,
    EventRouteEntry,
    InvocationResult,
    InvocationStatus,
    ValidationResult,
)
from .interfaces import SourceWatcher

__all__ = [
    "CycleState",
    "CycleOutcome",
    "EventRouteEntry",
    "InvocationResult",
    "InvocationStatus",
    "ValidationResult",
    "SourceWatcher",
]
