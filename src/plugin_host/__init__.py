"""
Plugin Host - hot-reloading plugin host

Loads externally authored plugin modules, validates their host-version requirements
and configured arguments, registers them under configured names, dispatches named
events to them in configured order, and reloads the whole plugin set when a plugin
source changes on disk.
"""

from .version import __version__

__author__ = "Plugin Host Development Team"

from .framework import PluginHost
from .framework.configuration import PluginsConfiguration, PluginHostConfiguration

__all__ = [
    "__version__",
    "PluginHost",
    "PluginsConfiguration",
    "PluginHostConfiguration",
]
