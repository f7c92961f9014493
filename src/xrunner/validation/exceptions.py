"""
Exception types and error handling helpers.

This module holds the validation exception used by the configuration layer,
the consistent logging helper ``handle_error`` and the runner error taxonomy
raised by the build and deploy orchestrators.
"""

import logging
import sys
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ValidationError(Exception):
    """
    Exception raised when validation fails.

    This is the main exception type used throughout the configuration system.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


# --- Runner error taxonomy ---


class RunnerError(Exception):
    """
    Base class for every error the engine raises to its caller.

    Attributes:
        phase: Name of the build/run phase the error happened in, if known.
        detail: Raw diagnostic text reported by the external tool (trimmed).
        hint: Optional remediation text for the operator.
    """

    default_message = "Operation failed"

    def __init__(self, message: Optional[str] = None, *, phase: Optional[str] = None,
                 detail: Optional[str] = None, hint: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.phase = phase
        self.detail = detail.strip() if detail else detail
        self.hint = hint

    def describe(self) -> str:
        """One-line explanation plus the remediation hint when there is one."""
        text = self.message
        if self.hint:
            text = f"{text} ({self.hint})"
        return text


class DiscoveryError(RunnerError):
    """The structured simulator listing could not be decoded."""
    default_message = "Could not list simulators"


class SchemeListError(RunnerError):
    default_message = "Could not list schemes"


class BuildFailedError(RunnerError):
    """The build tool exited non-zero."""
    default_message = "Build failed"

    def __init__(self, message: Optional[str] = None, *, errors=None, warnings=None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = list(errors or [])
        self.warnings = list(warnings or [])


class ArtifactMissingError(RunnerError):
    """The build succeeded but no installable bundle could be located."""
    default_message = "Build succeeded but no app bundle was found"


class DeviceNotReadyError(RunnerError):
    default_message = "Device not ready"


class InstallFailedError(RunnerError):
    default_message = "Installation failed"


class LaunchFailedError(RunnerError):
    default_message = "Launch failed"


class BundleIdMissingError(RunnerError):
    default_message = "Could not extract bundle identifier from the built app"


class OperationCancelledError(RunnerError):
    default_message = "Operation cancelled"


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=True)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "error":
        effective_logger.error(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=True)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_subprocess_error(error: Exception, command: str, **kwargs) -> None:
    """Handle subprocess-related errors."""
    handle_error(error, f"subprocess command '{command}'", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Handle CLI-related errors and exit with the requested code."""
    exit_code = kwargs.pop('exit_code', 1)

    severity = kwargs.pop('severity', ErrorSeverity.ERROR)
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)

    sys.exit(exit_code)
