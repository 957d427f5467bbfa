"""
Logging setup for the plugin host.

Configures the ``plugin_host`` logger hierarchy with either a colored human-readable
formatter or a structured JSON formatter. Modules log through ``logging.getLogger(__name__)``
and attach structured fields with ``extra=``; the JSON formatter merges those fields
into each record.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, TextIO

ROOT_LOGGER_NAME = "plugin_host"


class LogFormat(Enum):
    PRETTY = "pretty"
    JSON = "json"


# ANSI color codes
RESET = "\033[0m"
COLORS = {
    "DEBUG": "\033[37m",   # White
    "INFO": "\033[36m",    # Cyan
    "WARNING": "\033[33m",  # Yellow
    "ERROR": "\033[31m",   # Red
    "CRITICAL": "\033[41m\033[97m",  # White on Red background
    "TIME": "\033[90m",    # Gray for timestamps
    "MODULE": "\033[35m",  # Magenta
}

# Attributes present on every LogRecord; anything else came in through ``extra=``
_STANDARD_RECORD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class PrettyFormatter(logging.Formatter):
    """
    Human-readable, colored log formatter.
    Format:
    2025-08-13 14:35:12.345 UTC | INFO     | plugin_registry:123 | Plugin registry committed
    """

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def _paint(self, key: str, text: str) -> str:
        if not self.use_colors:
            return text
        return f"{COLORS.get(key, '')}{text}{RESET}"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        level = self._paint(record.levelname, f"{record.levelname:<8}")
        location = self._paint("MODULE", f"{record.module}:{record.lineno}")

        message = record.getMessage()
        extra = extract_extra(record)
        if extra:
            message += " [" + ", ".join(f"{k}={v}" for k, v in extra.items()) + "]"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return f"{self._paint('TIME', timestamp + ' UTC')} | {level} | {location} | {message}"


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, value in extract_extra(record).items():
            # only include JSON-serializable-ish values
            try:
                json.dumps(value)
                base[key] = value
            except (TypeError, ValueError):
                base[key] = str(value)
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, separators=(",", ":"))


def extract_extra(record: logging.LogRecord) -> dict:
    """Return the fields attached to a record through ``extra=``."""
    return {
        key: value for key, value in record.__dict__.items()
        if key not in _STANDARD_RECORD_KEYS and not key.startswith("_")
    }


def setup_logging(
    level: str = "INFO",
    log_format: str = LogFormat.PRETTY.value,
    colors: bool = True,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Configure the plugin host logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: "pretty" or "json"
        colors: Whether the pretty formatter emits ANSI colors
        stream: Output stream, stdout by default
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler(stream or sys.stdout)

    log_format = log_format.lower()
    if log_format == LogFormat.PRETTY.value:
        handler.setFormatter(PrettyFormatter(use_colors=colors))
    elif log_format == LogFormat.JSON.value:
        handler.setFormatter(JsonFormatter())
    else:
        raise ValueError(f"Unknown log format: {log_format}")

    logger.handlers = [handler]
    logger.propagate = False
    return logger
