"""
Core configuration loading.
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, List, Union

from .models import PluginHostConfiguration
from .sources import ConfigurationSource, YAMLConfigurationSource, EnvironmentConfigurationSource
from .validation import ConfigurationValidator

logger = logging.getLogger(__name__)


class ConfigurationLoader:
    """
    Loads the plugin host configuration from prioritized sources.

    Sources are merged lowest priority first, so higher priority sources override
    individual keys of lower ones.
    """

    def __init__(self, sources: Optional[List[ConfigurationSource]] = None):
        self._sources: List[ConfigurationSource] = list(sources or [])

    def add_source(self, source: ConfigurationSource) -> 'ConfigurationLoader':
        """Add a configuration source."""
        self._sources.append(source)
        return self

    def load(self) -> PluginHostConfiguration:
        """Load, merge and validate configuration from all sources."""
        merged_config: Dict[str, Any] = {}

        for source in sorted(self._sources, key=lambda s: s.get_priority()):
            try:
                source_config = source.load()
            except Exception as e:
                logger.error(f"Failed to load configuration from source: {type(source).__name__}: {e}")
                raise
            merged_config = self._deep_merge(merged_config, source_config)

        for warning in ConfigurationValidator.unknown_keys(merged_config):
            logger.warning(warning)

        configuration = ConfigurationValidator.validate_configuration(merged_config)
        logger.debug(
            "Configuration loaded",
            extra={
                "sources": [type(s).__name__ for s in self._sources],
                "registered_plugins": len(configuration.plugins.register),
                "events": len(configuration.plugins.events)
            }
        )
        return configuration

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def load_configuration_from_file(
    file_path: Union[str, Path],
    env_prefix: str = "PLUGIN_HOST_"
) -> PluginHostConfiguration:
    """
    Load configuration from a single YAML file with environment variable overrides.

    Relative plugin paths are resolved against the configuration file's directory.

    Args:
        file_path: Path to the YAML configuration file
        env_prefix: Prefix of environment variables that override file settings

    Returns:
        The validated PluginHostConfiguration
    """
    file_path = Path(file_path)
    configuration = ConfigurationLoader([
        YAMLConfigurationSource(file_path, 100),
        EnvironmentConfigurationSource(env_prefix, 200),
    ]).load()

    base_dir = file_path.resolve().parent
    for registration in configuration.plugins.register.values():
        plugin_path = Path(registration.path).expanduser()
        if not plugin_path.is_absolute():
            registration.path = str(base_dir / plugin_path)

    return configuration
