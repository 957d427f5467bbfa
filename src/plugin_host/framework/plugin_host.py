"""
Plugin Host - main orchestration class

Entry point for embedding the plugin host: wires the loader, registry,
reinitialization controller, watch supervisor and event dispatcher together.
"""

import logging
from typing import Any, Dict, List, Optional

from .configuration.models import PluginHostConfiguration, PluginsConfiguration, WatchConfiguration
from .events import EventDispatcher
from .plugin_management.plugin_descriptor import PluginDescriptor
from .plugin_management.plugin_loader import PluginLoader
from .plugin_management.plugin_registry import PluginRegistry
from .plugin_management.plugin_watcher import PluginWatchSupervisor
from .plugin_management.reinitialization import ReinitializationController
from ..domain.models import CycleOutcome, InvocationResult
from ..version import __version__


class PluginHost:
    """
    Facade over the plugin host components.

    ``start`` runs the startup reinitialization cycle and arms source watches;
    afterwards events are delivered with ``dispatch`` against the live registry.
    A failed cycle never takes the host down: it keeps serving the last committed
    generation.
    """

    def __init__(
        self,
        configuration: PluginsConfiguration,
        host_version: Optional[str] = None,
        watch_config: Optional[WatchConfiguration] = None,
        loader: Optional[PluginLoader] = None
    ):
        self.logger = logging.getLogger(__name__)
        self.host_version = host_version or __version__
        self.watch_config = watch_config or WatchConfiguration()

        self.registry = PluginRegistry()
        self.controller = ReinitializationController(
            registry=self.registry,
            configuration=configuration,
            host_version=self.host_version,
            loader=loader
        )
        self.supervisor: Optional[PluginWatchSupervisor] = None
        if self.watch_config.enabled:
            self.supervisor = PluginWatchSupervisor(
                on_change=self.controller.request_reinitialization,
                stability_threshold=self.watch_config.stability_threshold
            )
            self.controller.attach_watcher(self.supervisor)

        self.dispatcher = EventDispatcher(self.registry)
        self._running = False

    @classmethod
    def from_configuration(cls, configuration: PluginHostConfiguration, **kwargs) -> "PluginHost":
        """Build a host from a full PluginHostConfiguration."""
        return cls(
            configuration=configuration.plugins,
            host_version=configuration.host_version,
            watch_config=configuration.watch_config,
            **kwargs
        )

    async def start(self) -> CycleOutcome:
        """Start watching and run the startup reinitialization cycle."""
        if self._running:
            self.logger.warning("Plugin host is already running")
            return self.controller.last_outcome

        self.logger.info(f"Starting plugin host (host version {self.host_version})")
        if self.supervisor is not None:
            await self.supervisor.start()

        self._running = True
        outcome = await self.controller.reinitialize("startup")
        if outcome.committed:
            self.logger.info(
                f"Plugin host started with {len(outcome.plugin_names)} plugin(s)",
                extra={"plugins": outcome.plugin_names}
            )
        else:
            self.logger.error("Plugin host started without a committed plugin set")
        return outcome

    async def stop(self) -> None:
        """Stop watching plugin sources."""
        if not self._running:
            self.logger.warning("Plugin host is not running")
            return

        self.logger.info("Stopping plugin host...")
        if self.supervisor is not None:
            await self.supervisor.stop()
        self._running = False
        self.logger.info("Plugin host stopped")

    async def reinitialize(self, reason: str = "manual") -> CycleOutcome:
        """Reload every configured plugin now."""
        return await self.controller.reinitialize(reason)

    def update_configuration(self, configuration: PluginsConfiguration) -> None:
        """Swap the registration and event tables; takes effect on the next cycle."""
        self.controller.update_configuration(configuration)

    async def dispatch(self, event_name: str, data: Any = None) -> List[InvocationResult]:
        """Deliver an event to every plugin routed to it."""
        return await self.dispatcher.dispatch(event_name, data)

    def get_plugin(self, name: str) -> Optional[PluginDescriptor]:
        return self.registry.get(name)

    def is_running(self) -> bool:
        return self._running

    def get_status(self) -> Dict[str, Any]:
        """Get the current status of the host and its components."""
        last_outcome = self.controller.last_outcome
        return {
            "running": self._running,
            "host_version": self.host_version,
            "generation": self.registry.generation,
            "plugins": self.registry.names(),
            "cycle_state": self.controller.state.value,
            "last_cycle_state": last_outcome.state.value if last_outcome else None,
            "cycles_run": self.controller.cycle_count,
            "last_error": last_outcome.error.to_dict() if last_outcome and last_outcome.error else None,
            "watching": sorted(self.supervisor.watched_plugins) if self.supervisor else [],
            "dispatch_stats": self.dispatcher.get_processing_stats()
        }

    async def __aenter__(self) -> "PluginHost":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._running:
            await self.stop()
