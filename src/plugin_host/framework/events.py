"""
Event Dispatch for the plugin host

Routes a named event to the plugins configured for it, in configuration order,
against the registry generation that is active when the dispatch begins.
"""

import inspect
import logging
import time
from typing import Any, List

from .plugin_management.plugin_descriptor import PluginDescriptor
from .plugin_management.plugin_registry import PluginRegistry
from ..domain.models import EventRouteEntry, InvocationResult, InvocationStatus
from ..infrastructure.exceptions import InvocationError

logger = logging.getLogger(__name__)


class EventDispatcher:
    """
    Dispatches events to registered plugins.

    Invocations run sequentially in route order. A plugin that raises produces a
    failed InvocationResult and does not stop the remaining entries. Plugins missing
    from the registry are skipped.
    """

    def __init__(self, registry: PluginRegistry):
        self._registry = registry
        self._stats = {
            "events_dispatched": 0,
            "invocations_succeeded": 0,
            "invocations_failed": 0,
            "entries_skipped": 0
        }

    def get_routes(self, event_name: str) -> List[EventRouteEntry]:
        """Get the ordered route entries the active generation holds for an event."""
        return self._registry.snapshot().routes(event_name)

    async def dispatch(self, event_name: str, data: Any = None) -> List[InvocationResult]:
        """
        Invoke every plugin routed to ``event_name``.

        Args:
            event_name: Name of the event being fired
            data: Event payload handed to every plugin

        Returns:
            One InvocationResult per invoked plugin, in route order
        """
        # Plugins and routes come from one generation; a commit during this dispatch is not observed
        snapshot = self._registry.snapshot()
        routes = snapshot.routes(event_name)
        self._stats["events_dispatched"] += 1

        if not routes:
            logger.debug(f"No plugins routed for event '{event_name}'")
            return []

        logger.debug(
            f"Dispatching event '{event_name}' to {len(routes)} plugin(s)",
            extra={"event_name": event_name, "generation": snapshot.number}
        )

        results: List[InvocationResult] = []
        for entry in routes:
            plugin = snapshot.get(entry.plugin_name)
            if plugin is None:
                logger.debug(
                    f"Skipping unregistered plugin '{entry.plugin_name}' for event '{event_name}'"
                )
                self._stats["entries_skipped"] += 1
                continue

            args = entry.arguments if entry.has_override else plugin.default_arguments
            results.append(await self._invoke(plugin, event_name, args, data))

        return results

    async def _invoke(
        self,
        plugin: PluginDescriptor,
        event_name: str,
        args: Any,
        data: Any
    ) -> InvocationResult:
        payload = {"event": event_name, "args": args, "data": data}
        started = time.perf_counter()

        try:
            output = plugin.invoke(payload)
            if inspect.isawaitable(output):
                output = await output
        except Exception as e:
            error = InvocationError(
                f"Plugin '{plugin.name}' failed handling event '{event_name}': {e}",
                plugin_name=plugin.name,
                event_name=event_name,
                cause=e
            )
            logger.error(error.message, extra={"error": error.to_dict()})
            self._stats["invocations_failed"] += 1
            return InvocationResult(
                plugin_name=plugin.name,
                event_name=event_name,
                status=InvocationStatus.FAILED,
                arguments=args,
                error=error,
                duration_ms=(time.perf_counter() - started) * 1000
            )

        self._stats["invocations_succeeded"] += 1
        return InvocationResult(
            plugin_name=plugin.name,
            event_name=event_name,
            status=InvocationStatus.SUCCESS,
            arguments=args,
            output=output,
            duration_ms=(time.perf_counter() - started) * 1000
        )

    def get_processing_stats(self) -> dict:
        """Get dispatch statistics."""
        stats = self._stats.copy()
        stats["generation"] = self._registry.generation
        return stats
