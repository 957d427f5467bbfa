"""
Observability for the plugin host.
"""

from .logging import setup_logging, JsonFormatter, PrettyFormatter, LogFormat

__all__ = [
    "setup_logging",
    "JsonFormatter",
    "PrettyFormatter",
    "LogFormat",
]
