"""
Plugin Descriptor Module

Defines the data structure describing one loaded plugin: its entry point and the
optional capabilities it declares.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

PluginCallable = Callable[[Any], Any]
ArgumentPredicate = Callable[[Any], bool]


@dataclass
class PluginDescriptor:
    """Describes a loaded plugin with its entry point and declared metadata."""
    name: str
    source_path: Path
    invoke: PluginCallable
    min_host_version: Optional[str] = None
    validate_arguments: Optional[ArgumentPredicate] = None
    declared_events: List[str] = field(default_factory=list)
    authors: List[str] = field(default_factory=list)
    description: str = ""
    version: Optional[str] = None
    arguments: Any = None
    declared_name: Optional[str] = None
    default_arguments: Any = field(default_factory=dict)
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_version_requirement(self) -> bool:
        return self.min_host_version is not None

    @property
    def has_argument_validation(self) -> bool:
        return self.validate_arguments is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the informational part of the descriptor to a dictionary."""
        return {
            "name": self.name,
            "source_path": str(self.source_path),
            "version": self.version,
            "min_host_version": self.min_host_version,
            "declared_events": list(self.declared_events),
            "authors": list(self.authors),
            "description": self.description,
            "validates_arguments": self.has_argument_validation,
            "loaded_at": self.loaded_at.isoformat()
        }
