"""
Infrastructure layer: exception hierarchy and logging setup.
"""

from .exceptions import (
    PluginHostException,
    ConfigurationError,
    PluginError,
    LoadError,
    IncompatibleVersionError,
    ArgumentValidationError,
    InvocationError,
)

__all__ = [
    "PluginHostException",
    "ConfigurationError",
    "PluginError",
    "LoadError",
    "IncompatibleVersionError",
    "ArgumentValidationError",
    "InvocationError",
]
