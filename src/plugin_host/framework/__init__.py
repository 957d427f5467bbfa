"""
Framework layer: configuration, plugin management, event dispatch and the host facade.
"""

from .plugin_host import PluginHost
from .events import EventDispatcher

__all__ = [
    "PluginHost",
    "EventDispatcher",
]
