"""
Validation and error handling for the xrunner package.

This module provides input validation for configuration values, the runner
error taxonomy and consistent error reporting across the application.
"""

from .exceptions import (
    ArtifactMissingError,
    BuildFailedError,
    BundleIdMissingError,
    DeviceNotReadyError,
    DiscoveryError,
    ErrorSeverity,
    InstallFailedError,
    LaunchFailedError,
    OperationCancelledError,
    RunnerError,
    SchemeListError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
    handle_subprocess_error,
)

from .validators import (
    validate_boolean,
    validate_directory_path,
    validate_enum_choice,
    validate_non_empty_string,
    validate_positive_float,
    validate_positive_integer,
)

__all__ = [
    # Core functionality
    "ErrorSeverity",
    "ValidationError",
    "handle_error",
    "handle_config_error",
    "handle_subprocess_error",
    "handle_cli_error",
    # Runner errors
    "RunnerError",
    "DiscoveryError",
    "SchemeListError",
    "BuildFailedError",
    "ArtifactMissingError",
    "DeviceNotReadyError",
    "InstallFailedError",
    "LaunchFailedError",
    "BundleIdMissingError",
    "OperationCancelledError",
    # Validators
    "validate_boolean",
    "validate_directory_path",
    "validate_enum_choice",
    "validate_non_empty_string",
    "validate_positive_float",
    "validate_positive_integer",
]
