"""
Structured Exception Hierarchy

Provides the exception hierarchy for the plugin host with contextual information
for logging and diagnostics.
"""

from typing import Dict, List, Any, Optional
import uuid
from datetime import datetime, timezone


class PluginHostException(Exception):
    """
    Base exception class for all plugin host exceptions.

    Provides structured error information including error codes,
    context data, and correlation IDs for tracing.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        correlation_id: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class ConfigurationError(PluginHostException):
    """Raised when configuration-related errors occur."""

    def __init__(
        self,
        message: str,
        config_path: Optional[str] = None,
        validation_errors: Optional[List[Any]] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if config_path:
            context['config_path'] = config_path
        if validation_errors:
            context['validation_errors'] = validation_errors

        super().__init__(
            message=message,
            error_code=kwargs.pop('error_code', "CONFIG_ERROR"),
            context=context,
            **kwargs
        )


class PluginError(PluginHostException):
    """Raised when plugin-related errors occur."""

    def __init__(
        self,
        message: str,
        plugin_name: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if plugin_name:
            context['plugin_name'] = plugin_name

        super().__init__(
            message=message,
            error_code=kwargs.pop('error_code', "PLUGIN_ERROR"),
            context=context,
            **kwargs
        )
        self.plugin_name = plugin_name


class LoadError(PluginError):
    """Raised when a plugin source cannot be resolved, compiled or has the wrong shape."""

    def __init__(
        self,
        message: str,
        plugin_name: Optional[str] = None,
        path: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if path:
            context['path'] = path

        super().__init__(
            message=message,
            plugin_name=plugin_name,
            error_code="PLUGIN_LOAD_ERROR",
            context=context,
            **kwargs
        )
        self.path = path


class IncompatibleVersionError(PluginError):
    """Raised when a plugin requires a newer host version than the running one."""

    def __init__(
        self,
        message: str,
        plugin_name: Optional[str] = None,
        required_version: Optional[str] = None,
        host_version: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if required_version:
            context['required_version'] = required_version
        if host_version:
            context['host_version'] = host_version

        super().__init__(
            message=message,
            plugin_name=plugin_name,
            error_code="PLUGIN_INCOMPATIBLE_VERSION",
            context=context,
            **kwargs
        )
        self.required_version = required_version
        self.host_version = host_version


class ArgumentValidationError(PluginError):
    """Raised when a plugin rejects its registered or overridden arguments."""

    def __init__(
        self,
        message: str,
        plugin_name: Optional[str] = None,
        arguments: Any = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        context['arguments'] = arguments

        super().__init__(
            message=message,
            plugin_name=plugin_name,
            error_code="PLUGIN_ARGUMENT_VALIDATION_ERROR",
            context=context,
            **kwargs
        )
        self.arguments = arguments


class InvocationError(PluginError):
    """Raised when a plugin invocation throws or its awaitable rejects."""

    def __init__(
        self,
        message: str,
        plugin_name: Optional[str] = None,
        event_name: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if event_name:
            context['event_name'] = event_name

        super().__init__(
            message=message,
            plugin_name=plugin_name,
            error_code="PLUGIN_INVOCATION_ERROR",
            context=context,
            **kwargs
        )
        self.event_name = event_name
