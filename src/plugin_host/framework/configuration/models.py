"""
Configuration data models with validation.
"""

from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

from ...domain.models import EventRouteEntry

RouteItem = Union[str, Tuple[str, Any]]


class LoggingConfiguration(BaseModel):
    """Logging system configuration with validation."""
    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="pretty", pattern="^(pretty|json)$")
    colors: bool = True


class WatchConfiguration(BaseModel):
    """Plugin source watching configuration."""
    enabled: bool = True
    # Quiet period a source must stay unchanged before a reload is triggered (seconds)
    stability_threshold: float = Field(default=0.1, ge=0.0, le=60.0)


class PluginRegistration(BaseModel):
    """A registered plugin: where to load it from and its default arguments."""
    path: str = Field(min_length=1)
    args: Any = Field(default_factory=dict)

    @field_validator('args', mode='before')
    @classmethod
    def default_missing_args(cls, v):
        """A registration without arguments gets an empty mapping."""
        return {} if v is None else v


class PluginsConfiguration(BaseModel):
    """Registration table and event routing table."""
    register: Dict[str, PluginRegistration] = Field(default_factory=dict)
    events: Dict[str, List[RouteItem]] = Field(default_factory=dict)

    @field_validator('register')
    @classmethod
    def validate_plugin_names(cls, v):
        """Validate registered plugin names."""
        for name in v:
            if not name or not name.strip():
                raise ValueError("Plugin names must be non-empty strings")
        return v

    @field_validator('events', mode='before')
    @classmethod
    def validate_routes(cls, v):
        """Validate every route entry is a name or a [name, arguments] pair."""
        if not isinstance(v, dict):
            return v
        for event_name, routes in v.items():
            if not isinstance(routes, (list, tuple)):
                raise ValueError(f"Routes for event '{event_name}' must be a list")
            for item in routes:
                EventRouteEntry.parse(item)
        return v

    def route_entries(self, event_name: str) -> List[EventRouteEntry]:
        """Get the ordered route entries configured for an event."""
        return [EventRouteEntry.parse(item) for item in self.events.get(event_name, [])]

    def event_table(self) -> Dict[str, List[EventRouteEntry]]:
        """Get the full event table as parsed route entries."""
        return {name: self.route_entries(name) for name in self.events}


class PluginHostConfiguration(BaseModel):
    """Top-level plugin host configuration with nested validation."""
    host_version: Optional[str] = None
    logging_config: LoggingConfiguration = Field(default_factory=LoggingConfiguration)
    watch_config: WatchConfiguration = Field(default_factory=WatchConfiguration)
    plugins: PluginsConfiguration = Field(default_factory=PluginsConfiguration)
