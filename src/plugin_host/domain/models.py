"""
Domain models for the plugin host.

Value types shared between the reinitialization controller, the validators and the
event dispatcher.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Sequence

from ..infrastructure.exceptions import PluginError, PluginHostException


class CycleState(Enum):
    """Reinitialization cycle state enumeration."""
    IDLE = "idle"
    LOADING = "loading"
    VALIDATING = "validating"
    COMMITTED = "committed"
    FAILED = "failed"


class InvocationStatus(Enum):
    """Plugin invocation status enumeration."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class EventRouteEntry:
    """One configured binding of an event to a plugin, with or without an argument override."""
    plugin_name: str
    arguments: Any = None
    has_override: bool = False

    @classmethod
    def parse(cls, item: Any) -> "EventRouteEntry":
        """Build an entry from a bare plugin name or a ``[name, override]`` pair."""
        if isinstance(item, EventRouteEntry):
            return item
        if isinstance(item, str):
            return cls(plugin_name=item)
        if isinstance(item, Sequence) and len(item) == 2 and isinstance(item[0], str):
            return cls(plugin_name=item[0], arguments=item[1], has_override=True)
        raise ValueError(
            f"Event route entry must be a plugin name or a [name, arguments] pair, got {item!r}"
        )

    def to_config(self) -> Any:
        """Convert back to the configuration representation."""
        if self.has_override:
            return [self.plugin_name, self.arguments]
        return self.plugin_name


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single validator check."""
    is_valid: bool
    error: Optional[PluginError] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def failed(cls, error: PluginError) -> "ValidationResult":
        return cls(is_valid=False, error=error)


@dataclass(frozen=True)
class CycleOutcome:
    """Result of one reinitialization cycle."""
    cycle_number: int
    state: CycleState
    reason: str
    generation: int
    plugin_names: List[str] = field(default_factory=list)
    error: Optional[PluginHostException] = None
    duration_ms: Optional[float] = None
    completed_at: Optional[datetime] = None

    def __post_init__(self):
        if self.completed_at is None:
            object.__setattr__(self, 'completed_at', datetime.now(timezone.utc))

    @property
    def committed(self) -> bool:
        return self.state is CycleState.COMMITTED


@dataclass(frozen=True)
class InvocationResult:
    """Represents the result of invoking one plugin for an event."""
    plugin_name: str
    event_name: str
    status: InvocationStatus
    arguments: Any = None
    output: Any = None
    error: Optional[PluginError] = None
    duration_ms: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.status is InvocationStatus.SUCCESS
