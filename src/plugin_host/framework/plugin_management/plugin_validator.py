"""
Plugin Validator Module

Compatibility and argument checks run over every loaded plugin before a registry
generation is committed. Checks return ValidationResult values instead of raising.
"""

import json
import logging
from typing import Any

from packaging.version import InvalidVersion, Version

from .plugin_descriptor import PluginDescriptor
from ...domain.models import ValidationResult
from ...infrastructure.exceptions import ArgumentValidationError, IncompatibleVersionError

logger = logging.getLogger(__name__)


def format_arguments(args: Any) -> str:
    """Render an argument payload for error messages."""
    try:
        return json.dumps(args, indent=2, default=str)
    except (TypeError, ValueError):
        return repr(args)


class PluginValidator:
    """Validates loaded plugins against the running host and their configured arguments."""

    @staticmethod
    def validate_min_version(name: str, plugin: PluginDescriptor, host_version: str) -> ValidationResult:
        """Check the plugin's minimum host version against the running host version."""
        if plugin.min_host_version is None:
            return ValidationResult.ok()

        required = plugin.min_host_version
        try:
            incompatible = Version(host_version) < Version(required)
        except InvalidVersion as e:
            return ValidationResult.failed(IncompatibleVersionError(
                f"Cannot compare minimum version '{required}' of plugin '{name}' "
                f"with host version '{host_version}': {e}",
                plugin_name=name,
                required_version=required,
                host_version=host_version,
                cause=e
            ))

        if incompatible:
            return ValidationResult.failed(IncompatibleVersionError(
                f"Plugin '{name}' requires host version {required} or above (running {host_version})",
                plugin_name=name,
                required_version=required,
                host_version=host_version
            ))

        return ValidationResult.ok()

    @staticmethod
    def validate_arguments(name: str, plugin: PluginDescriptor, args: Any) -> ValidationResult:
        """Run the plugin's argument predicate, if it has one, against a payload."""
        if plugin.validate_arguments is None:
            return ValidationResult.ok()

        try:
            accepted = plugin.validate_arguments(args)
        except Exception as e:
            return ValidationResult.failed(ArgumentValidationError(
                f"Argument validation for '{name}' raised {type(e).__name__}: {e}\n{format_arguments(args)}",
                plugin_name=name,
                arguments=args,
                cause=e
            ))

        if not accepted:
            return ValidationResult.failed(ArgumentValidationError(
                f"Argument validation for '{name}' failed: {format_arguments(args)}",
                plugin_name=name,
                arguments=args
            ))

        return ValidationResult.ok()
