"""
Domain interfaces for the plugin host.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union


class SourceWatcher(ABC):
    """Watches plugin source paths on behalf of the reinitialization controller."""

    @abstractmethod
    def watch(self, plugin_name: str, source_path: Union[str, Path]) -> None:
        """Arm a watch for one plugin's source path."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Tear down every armed watch."""
        pass
