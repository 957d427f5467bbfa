"""
Shared fixtures for the plugin host tests.
"""

import logging
import textwrap
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest

from plugin_host.framework.configuration import PluginsConfiguration
from plugin_host.framework.plugin_management import plugin_loader
from plugin_host.framework.plugin_management.plugin_loader import PluginLoader


class CountingLoader(PluginLoader):
    """PluginLoader that records every load call."""

    def __init__(self):
        super().__init__()
        self.calls = []

    def load(self, name, path):
        self.calls.append(name)
        return super().load(name, path)


@pytest.fixture
def write_plugin(tmp_path: Path) -> Callable[..., Path]:
    """Write a plugin source file into the test directory and return its path."""

    def _write(name: str, body: str, filename: Optional[str] = None) -> Path:
        path = tmp_path / (filename or f"{name}.py")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(body), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def echo_plugin(write_plugin) -> Callable[[str], Path]:
    """Plugin returning its name and the arguments it was invoked with."""

    def _echo(name: str) -> Path:
        return write_plugin(name, f"""
            async def plugin(ctx):
                return {{"plugin": "{name}", "args": ctx["args"], "data": ctx["data"]}}
        """)

    return _echo


@pytest.fixture
def make_config() -> Callable[..., PluginsConfiguration]:
    """Build a PluginsConfiguration from plugin paths and route lists."""

    def _make(register: Dict[str, Any], events: Optional[Dict[str, list]] = None) -> PluginsConfiguration:
        table = {}
        for name, value in register.items():
            if isinstance(value, tuple):
                path, args = value
                table[name] = {"path": str(path), "args": args}
            else:
                table[name] = {"path": str(value)}
        return PluginsConfiguration(register=table, events=events or {})

    return _make


@pytest.fixture
def counting_loader() -> CountingLoader:
    return CountingLoader()


@pytest.fixture(autouse=True)
def reset_compile_support(monkeypatch):
    monkeypatch.setattr(plugin_loader, "_compile_support_enabled", False)


@pytest.fixture(autouse=True)
def restore_host_logger():
    """setup_logging replaces handlers on the package logger; undo that after each test."""
    logger = logging.getLogger("plugin_host")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate
