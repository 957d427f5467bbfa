"""
Plugin Management System

Loading, validation, registration and hot-reloading of plugins. A reinitialization
cycle loads and validates the full configured plugin set before publishing it as a
new registry generation.
"""

from .plugin_descriptor import PluginDescriptor
from .plugin_loader import PluginLoader
from .plugin_validator import PluginValidator
from .plugin_registry import PluginRegistry, RegistryGeneration
from .plugin_watcher import PluginWatchSupervisor, PluginSourceEventHandler
from .reinitialization import ReinitializationController

__all__ = [
    'PluginDescriptor',
    'PluginLoader',
    'PluginValidator',
    'PluginRegistry',
    'RegistryGeneration',
    'PluginWatchSupervisor',
    'PluginSourceEventHandler',
    'ReinitializationController'
]
