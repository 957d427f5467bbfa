"""
Configuration validation utilities.
"""

from typing import Dict, Any, List

from pydantic import ValidationError

from ...infrastructure.exceptions import ConfigurationError
from .models import PluginHostConfiguration


class ConfigurationValidationError(ConfigurationError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, validation_errors: List[Dict[str, Any]], **kwargs):
        super().__init__(
            message,
            validation_errors=validation_errors,
            error_code="CONFIGURATION_VALIDATION_ERROR",
            **kwargs
        )
        self.validation_errors = validation_errors

    def get_detailed_message(self) -> str:
        """Get a detailed error message with all validation errors."""
        lines = [self.message]
        lines.append("Validation errors:")

        for error in self.validation_errors:
            location = " -> ".join(str(loc) for loc in error.get('loc', []))
            msg = error.get('msg', 'Unknown error')
            lines.append(f"- {location}: {msg}")

        return "\n".join(lines)


class ConfigurationValidator:
    """Validates configuration data and provides detailed error messages."""

    KNOWN_KEYS = frozenset(PluginHostConfiguration.model_fields)

    @staticmethod
    def validate_configuration(config_data: Dict[str, Any]) -> PluginHostConfiguration:
        """
        Validate configuration data and build the configuration model.

        Args:
            config_data: Raw merged configuration data

        Returns:
            The validated PluginHostConfiguration

        Raises:
            ConfigurationValidationError: If validation fails with errors
        """
        try:
            return PluginHostConfiguration(**config_data)
        except ValidationError as e:
            errors = [
                {
                    'loc': list(error['loc']),
                    'msg': error['msg'],
                    'type': error['type']
                }
                for error in e.errors()
            ]
            raise ConfigurationValidationError(
                "Configuration validation failed",
                errors,
                cause=e
            ) from e

    @classmethod
    def unknown_keys(cls, config_data: Dict[str, Any]) -> List[str]:
        """Return warnings for top-level keys the host does not understand."""
        return [
            f"Unknown configuration key: {key}"
            for key in config_data
            if key not in cls.KNOWN_KEYS
        ]
