"""
Reinitialization Controller Module

Orchestrates a full reload cycle: load every configured plugin, validate the whole
candidate set, and only then replace the registry generation. A cycle that fails at
any step leaves the previously committed generation untouched.
"""

import asyncio
import logging
import time
from typing import Dict, Iterator, List, Optional

from .plugin_descriptor import PluginDescriptor
from .plugin_loader import PluginLoader
from .plugin_registry import PluginRegistry
from .plugin_validator import PluginValidator
from ..configuration.models import PluginsConfiguration
from ...domain.interfaces import SourceWatcher
from ...domain.models import CycleOutcome, CycleState, EventRouteEntry, ValidationResult
from ...infrastructure.exceptions import LoadError, PluginError

logger = logging.getLogger(__name__)


class ReinitializationController:
    """
    Runs reinitialization cycles (load, validate, commit) one at a time.

    Direct ``reinitialize`` calls queue behind a running cycle. Requests made through
    ``request_reinitialization`` are coalesced: any number of requests that arrive
    while a cycle is running produce at most one follow-up cycle.
    """

    def __init__(
        self,
        registry: PluginRegistry,
        configuration: PluginsConfiguration,
        host_version: str,
        loader: Optional[PluginLoader] = None,
        validator: Optional[PluginValidator] = None,
        watcher: Optional[SourceWatcher] = None
    ):
        self._registry = registry
        self._configuration = configuration
        self.host_version = host_version
        self._loader = loader or PluginLoader()
        self._validator = validator or PluginValidator()
        self._watcher = watcher
        self._lock = asyncio.Lock()
        self._state = CycleState.IDLE
        self._cycle_count = 0
        self._last_outcome: Optional[CycleOutcome] = None
        self._request_pending = False
        self._request_reason = ""
        self._drain_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> CycleState:
        """State of the running cycle; IDLE between cycles. See ``last_outcome`` for results."""
        return self._state

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def last_outcome(self) -> Optional[CycleOutcome]:
        return self._last_outcome

    @property
    def configuration(self) -> PluginsConfiguration:
        return self._configuration

    def attach_watcher(self, watcher: Optional[SourceWatcher]) -> None:
        self._watcher = watcher

    def update_configuration(self, configuration: PluginsConfiguration) -> None:
        """Use new registration and event tables from the next cycle on."""
        self._configuration = configuration

    async def reinitialize(self, reason: str = "manual") -> CycleOutcome:
        """Run one full cycle, after any cycle already in progress has settled."""
        async with self._lock:
            # Anything requested before this point is covered by this cycle
            self._request_pending = False
            outcome = await self._run_cycle(reason)
            self._last_outcome = outcome
            return outcome

    def request_reinitialization(self, reason: str = "change") -> asyncio.Task:
        """
        Ask for a cycle without waiting for it.

        Returns the task draining pending requests; awaiting it yields the outcome of
        the last cycle it ran.
        """
        self._request_pending = True
        self._request_reason = reason

        if self._drain_task is not None and not self._drain_task.done():
            logger.debug(f"Reinitialization already scheduled, coalescing request ({reason})")
            return self._drain_task

        self._drain_task = asyncio.get_running_loop().create_task(self._drain_requests())
        return self._drain_task

    async def _drain_requests(self) -> Optional[CycleOutcome]:
        outcome = self._last_outcome
        while self._request_pending:
            outcome = await self.reinitialize(self._request_reason)
        return outcome

    async def _run_cycle(self, reason: str) -> CycleOutcome:
        self._cycle_count += 1
        cycle_number = self._cycle_count
        configuration = self._configuration
        event_table = configuration.event_table()
        started = time.perf_counter()

        logger.info(f"Reinitializing plugins ({reason})", extra={"cycle": cycle_number})

        try:
            self._state = CycleState.LOADING
            loaded, error = await self._load_all(configuration)

            if error is None:
                self._state = CycleState.VALIDATING
                error = self._validate_all(loaded, event_table)

            if error is not None:
                self._state = CycleState.FAILED
                logger.error(
                    f"Plugin reinitialization failed, keeping generation {self._registry.generation}: {error.message}",
                    extra={"cycle": cycle_number, "error": error.to_dict()}
                )
                return CycleOutcome(
                    cycle_number=cycle_number,
                    state=CycleState.FAILED,
                    reason=reason,
                    generation=self._registry.generation,
                    plugin_names=self._registry.names(),
                    error=error,
                    duration_ms=(time.perf_counter() - started) * 1000
                )

            generation = self._registry.commit(loaded, event_table)
            self._state = CycleState.COMMITTED
            return CycleOutcome(
                cycle_number=cycle_number,
                state=CycleState.COMMITTED,
                reason=reason,
                generation=generation.number,
                plugin_names=generation.names(),
                duration_ms=(time.perf_counter() - started) * 1000
            )
        finally:
            self._arm_watches(configuration)
            self._state = CycleState.IDLE

    async def _load_all(self, configuration: PluginsConfiguration):
        logger.info("Loading plugins", extra={"plugins": list(configuration.register)})
        loaded: Dict[str, PluginDescriptor] = {}

        for name, registration in configuration.register.items():
            try:
                plugin = self._loader.load(name, registration.path)
            except LoadError as e:
                return loaded, e
            plugin.default_arguments = registration.args
            loaded[name] = plugin
            # Let dispatches and watch callbacks run between loads
            await asyncio.sleep(0)

        return loaded, None

    def _validate_all(
        self,
        loaded: Dict[str, PluginDescriptor],
        event_table: Dict[str, List[EventRouteEntry]]
    ) -> Optional[PluginError]:
        logger.info("Validating plugins", extra={"plugins": list(loaded)})

        for event_name, routes in event_table.items():
            for entry in routes:
                if entry.plugin_name not in loaded:
                    logger.warning(
                        f"Event '{event_name}' routes to unregistered plugin '{entry.plugin_name}'",
                        extra={"event_name": event_name, "plugin_name": entry.plugin_name}
                    )

        for name, plugin in loaded.items():
            overrides = self._collect_overrides(name, event_table)
            for result in self._checks(name, plugin, overrides):
                if not result.is_valid:
                    return result.error

        return None

    def _checks(self, name: str, plugin: PluginDescriptor, overrides: List) -> Iterator[ValidationResult]:
        yield self._validator.validate_min_version(name, plugin, self.host_version)
        yield self._validator.validate_arguments(name, plugin, plugin.default_arguments)
        for override in overrides:
            yield self._validator.validate_arguments(name, plugin, override)

    @staticmethod
    def _collect_overrides(name: str, event_table: Dict[str, List[EventRouteEntry]]) -> List:
        """Distinct argument overrides that route entries declare for one plugin."""
        overrides: List = []
        for routes in event_table.values():
            for entry in routes:
                if entry.plugin_name == name and entry.has_override and entry.arguments not in overrides:
                    overrides.append(entry.arguments)
        return overrides

    def _arm_watches(self, configuration: PluginsConfiguration) -> None:
        if self._watcher is None:
            return

        logger.info("Watching plugins for change")
        self._watcher.clear()
        for name, registration in configuration.register.items():
            self._watcher.watch(name, registration.path)
