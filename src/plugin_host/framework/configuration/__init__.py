"""
Configuration Management System

Type-safe configuration for the plugin host: the plugin registration and event
routing tables plus logging and watch settings, loaded from YAML and environment
variable sources.
"""

from .models import (
    LoggingConfiguration,
    WatchConfiguration,
    PluginRegistration,
    PluginsConfiguration,
    PluginHostConfiguration
)

from .sources import (
    ConfigurationSource,
    YAMLConfigurationSource,
    EnvironmentConfigurationSource
)

from .validation import (
    ConfigurationValidator,
    ConfigurationValidationError
)

from .core import ConfigurationLoader, load_configuration_from_file

__all__ = [
    # Models
    'LoggingConfiguration',
    'WatchConfiguration',
    'PluginRegistration',
    'PluginsConfiguration',
    'PluginHostConfiguration',

    # Sources
    'ConfigurationSource',
    'YAMLConfigurationSource',
    'EnvironmentConfigurationSource',

    # Validation
    'ConfigurationValidator',
    'ConfigurationValidationError',

    # Core
    'ConfigurationLoader',
    'load_configuration_from_file'
]
