"""
Plugin Registry Module

Process-wide mapping from plugin name to its loaded descriptor. The registry holds a
single active generation; a reinitialization builds a complete new mapping and
publishes it with one reference assignment, so readers never see a partial map.

A generation also carries the event table that was validated together with its
plugins, so dispatch never routes through a table that a failed cycle rejected.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .plugin_descriptor import PluginDescriptor
from ...domain.models import EventRouteEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryGeneration:
    """One complete, internally consistent snapshot of name to plugin bindings."""
    number: int
    plugins: Mapping[str, PluginDescriptor] = field(default_factory=lambda: MappingProxyType({}))
    event_table: Mapping[str, Tuple[EventRouteEntry, ...]] = field(default_factory=lambda: MappingProxyType({}))
    committed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def get(self, name: str) -> Optional[PluginDescriptor]:
        return self.plugins.get(name)

    def names(self) -> List[str]:
        return list(self.plugins.keys())

    def routes(self, event_name: str) -> List[EventRouteEntry]:
        """Ordered route entries committed for an event."""
        return list(self.event_table.get(event_name, ()))

    def __contains__(self, name: object) -> bool:
        return name in self.plugins

    def __iter__(self) -> Iterator[str]:
        return iter(self.plugins)

    def __len__(self) -> int:
        return len(self.plugins)


class PluginRegistry:
    """
    Single-writer cell holding the active registry generation.

    Only the reinitialization controller calls ``commit``; everyone else reads through
    ``snapshot`` or ``get``.
    """

    def __init__(self):
        self._generation = RegistryGeneration(number=0)

    @property
    def generation(self) -> int:
        return self._generation.number

    def snapshot(self) -> RegistryGeneration:
        """Get the currently active generation."""
        return self._generation

    def get(self, name: str) -> Optional[PluginDescriptor]:
        """Get a plugin from the active generation."""
        logger.debug(f"Getting plugin '{name}' from registered plugins")
        return self._generation.get(name)

    def names(self) -> List[str]:
        return self._generation.names()

    def commit(
        self,
        plugins: Dict[str, PluginDescriptor],
        event_table: Optional[Mapping[str, Sequence[EventRouteEntry]]] = None
    ) -> RegistryGeneration:
        """Publish a complete plugin mapping and its event table as the new active generation."""
        generation = RegistryGeneration(
            number=self._generation.number + 1,
            plugins=MappingProxyType(dict(plugins)),
            event_table=MappingProxyType({
                event_name: tuple(routes) for event_name, routes in (event_table or {}).items()
            })
        )
        self._generation = generation

        logger.info(
            f"Plugin registry committed: generation {generation.number}",
            extra={"generation": generation.number, "plugins": generation.names()}
        )
        return generation

    def __contains__(self, name: object) -> bool:
        return name in self._generation

    def __len__(self) -> int:
        return len(self._generation)
