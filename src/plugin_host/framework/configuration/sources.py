"""
Configuration sources for loading configuration data.
"""

import os
import yaml
from abc import ABC, abstractmethod
from typing import Dict, Any, Union, Optional, Mapping
from pathlib import Path

from ...infrastructure.exceptions import ConfigurationError


class ConfigurationSource(ABC):
    """Abstract base class for configuration sources."""

    @abstractmethod
    def load(self) -> Dict[str, Any]:
        """Load configuration data from the source."""
        pass

    @abstractmethod
    def get_priority(self) -> int:
        """Get the priority of this source (higher number = higher priority)."""
        pass


class YAMLConfigurationSource(ConfigurationSource):
    """YAML file configuration source."""

    def __init__(self, file_path: Union[str, Path], priority: int = 100):
        self.file_path = Path(file_path)
        self.priority = priority

    def load(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.file_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {self.file_path}",
                config_path=str(self.file_path),
                error_code="CONFIG_FILE_NOT_FOUND"
            )

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {self.file_path}",
                config_path=str(self.file_path),
                error_code="INVALID_YAML",
                cause=e
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Error reading configuration file: {self.file_path}",
                config_path=str(self.file_path),
                error_code="CONFIG_READ_ERROR",
                cause=e
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping: {self.file_path}",
                config_path=str(self.file_path),
                error_code="INVALID_CONFIG_FORMAT"
            )
        return data

    def get_priority(self) -> int:
        return self.priority


class EnvironmentConfigurationSource(ConfigurationSource):
    """
    Environment variable configuration source.

    Only the scalar settings are mapped; the plugin tables come from files.
    PLUGIN_HOST_LOGGING_CONFIG_LEVEL=DEBUG becomes logging_config.level.
    """

    SECTIONS = ('logging_config', 'watch_config')

    def __init__(
        self,
        prefix: str = "PLUGIN_HOST_",
        priority: int = 200,
        environ: Optional[Mapping[str, str]] = None
    ):
        self.prefix = prefix.upper()
        self.priority = priority
        self._environ = environ

    def load(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}
        environ = os.environ if self._environ is None else self._environ

        for key, value in environ.items():
            if not key.startswith(self.prefix):
                continue
            config_key = key[len(self.prefix):].lower()

            if config_key == 'host_version':
                config['host_version'] = value
                continue

            for section in self.SECTIONS:
                if config_key.startswith(section + '_'):
                    field_name = config_key[len(section) + 1:]
                    config.setdefault(section, {})[field_name] = self._parse_value(value)
                    break

        return config

    def _parse_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get_priority(self) -> int:
        return self.priority
