"""
Plugin Watcher Module

Watches plugin sources with watchdog and requests a full reinitialization when one
of them is modified or deleted. Filesystem events arrive on the observer thread and
are handed to the asyncio loop, where successive changes are debounced into a single
request.
"""

import asyncio
import inspect
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ...domain.interfaces import SourceWatcher

logger = logging.getLogger(__name__)

IGNORED_PARTS = frozenset({"__pycache__"})
IGNORED_SUFFIXES = frozenset({".pyc", ".pyo", ".swp", ".tmp"})


class PluginSourceEventHandler(FileSystemEventHandler):
    """Forwards filesystem events that concern one plugin's source to the supervisor."""

    def __init__(self, supervisor: "PluginWatchSupervisor", plugin_name: str, source_path: Path):
        self._supervisor = supervisor
        self.plugin_name = plugin_name
        self.source_path = source_path
        self._is_package = source_path.is_dir()

    def _matches(self, raw_path: Union[str, bytes]) -> bool:
        if not raw_path:
            return False
        path = Path(os.path.abspath(os.fsdecode(raw_path)))
        if IGNORED_PARTS.intersection(path.parts) or path.suffix in IGNORED_SUFFIXES:
            return False
        if self._is_package:
            return path == self.source_path or self.source_path in path.parents
        return path == self.source_path

    def is_relevant(self, event: FileSystemEvent) -> bool:
        if event.is_directory and not self._is_package:
            return False
        return self._matches(event.src_path) or self._matches(getattr(event, "dest_path", ""))

    def on_modified(self, event: FileSystemEvent) -> None:
        if self.is_relevant(event):
            self._supervisor.post_change(self.plugin_name, "changed")

    def on_created(self, event: FileSystemEvent) -> None:
        if self.is_relevant(event):
            self._supervisor.post_change(self.plugin_name, "changed")

    def on_moved(self, event: FileSystemEvent) -> None:
        if not self.is_relevant(event):
            return
        # Editors that save atomically move a temp file onto the source
        if self._matches(getattr(event, "dest_path", "")):
            self._supervisor.post_change(self.plugin_name, "changed")
        else:
            self._supervisor.post_change(self.plugin_name, "deleted")

    def on_deleted(self, event: FileSystemEvent) -> None:
        if self.is_relevant(event):
            self._supervisor.post_change(self.plugin_name, "deleted")


class PluginWatchSupervisor(SourceWatcher):
    """
    One watch per configured plugin source, debounced into reinitialization requests.

    Each change restarts a single quiet-period timer; only when no further change has
    arrived for ``stability_threshold`` seconds is ``on_change`` called, once, with a
    description of what changed.
    """

    def __init__(
        self,
        on_change: Callable[[str], Any],
        stability_threshold: float = 0.1,
        observer_factory: Callable[[], Any] = Observer
    ):
        self._on_change = on_change
        self.stability_threshold = stability_threshold
        self._observer_factory = observer_factory
        self._observer: Optional[Any] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._watched: Dict[str, Path] = {}
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._pending_changes: List[Tuple[str, str]] = []
        self._tasks: Set[asyncio.Future] = set()

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    @property
    def watched_plugins(self) -> Dict[str, Path]:
        return dict(self._watched)

    async def start(self) -> None:
        """Start the observer thread and arm any watches recorded before start."""
        if self._observer is not None:
            return

        self._loop = asyncio.get_running_loop()
        self._observer = self._observer_factory()
        self._observer.start()
        for plugin_name, source_path in self._watched.items():
            self._schedule(plugin_name, source_path)

        logger.info("Plugin watch supervisor started")

    async def stop(self) -> None:
        """Stop watching and wait for in-flight reinitialization requests."""
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        self._pending_changes.clear()

        if self._observer is not None:
            self.clear()
            observer = self._observer
            self._observer = None
            observer.stop()
            observer.join(timeout=5.0)

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        self._loop = None
        logger.info("Plugin watch supervisor stopped")

    def watch(self, plugin_name: str, source_path: Union[str, Path]) -> None:
        resolved = Path(source_path).expanduser().resolve()
        self._watched[plugin_name] = resolved
        if self._observer is not None:
            self._schedule(plugin_name, resolved)

    def clear(self) -> None:
        logger.debug(f"Clearing {len(self._watched)} plugin watchers")
        self._watched.clear()
        if self._observer is None:
            return
        try:
            self._observer.unschedule_all()
        except Exception as e:
            logger.error(f"Error while closing file watcher: {e}")

    def _schedule(self, plugin_name: str, resolved: Path) -> None:
        target_dir = resolved if resolved.is_dir() else resolved.parent
        if not target_dir.is_dir():
            logger.warning(
                f"Cannot watch plugin source '{plugin_name}': directory {target_dir} does not exist",
                extra={"plugin_name": plugin_name, "path": str(resolved)}
            )
            return

        handler = PluginSourceEventHandler(self, plugin_name, resolved)
        try:
            self._observer.schedule(handler, str(target_dir), recursive=resolved.is_dir())
        except OSError as e:
            logger.warning(f"Cannot watch plugin source '{plugin_name}' @ '{resolved}': {e}")
            return

        logger.debug(f"Watching plugin source '{plugin_name}' @ '{resolved}'")

    def post_change(self, plugin_name: str, kind: str) -> None:
        """Thread-safe entry point used by the observer thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self.notify_change, plugin_name, kind)
        except RuntimeError:
            # Loop closed between the check and the call
            pass

    def notify_change(self, plugin_name: str, kind: str) -> None:
        """Record a change and restart the quiet-period timer. Must run on the loop thread."""
        logger.debug(f"Plugin source event: '{plugin_name}' {kind}")
        self._pending_changes.append((plugin_name, kind))

        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self.stability_threshold, self._flush)

    def _flush(self) -> None:
        self._debounce_handle = None
        changes = list(dict.fromkeys(self._pending_changes))
        self._pending_changes = []
        if not changes:
            return

        for plugin_name, kind in changes:
            logger.info(f"Plugin '{plugin_name}' {kind}, reinitializing plugins")
        reason = "; ".join(f"plugin '{name}' {kind}" for name, kind in changes)

        result = self._on_change(reason)
        if inspect.isawaitable(result):
            future = asyncio.ensure_future(result)
            self._tasks.add(future)
            future.add_done_callback(self._tasks.discard)
