"""
Output classification for the xrunner package.

This module turns build and device tool output into progress events using
ordered, data-driven rule tables.
"""

from .classifier import (
    BuildOutputClassifier,
    classify_install_failure,
    classify_install_line,
    is_device_locked_error,
)
from .rules import (
    BUILD_PHASE_RULES,
    DEVICE_PHASE_RULES,
    INSTALL_FAILURE_RULES,
    INSTALL_PROGRESS_RULES,
    OutputRule,
)

__all__ = [
    "BuildOutputClassifier",
    "classify_install_failure",
    "classify_install_line",
    "is_device_locked_error",
    "BUILD_PHASE_RULES",
    "DEVICE_PHASE_RULES",
    "INSTALL_FAILURE_RULES",
    "INSTALL_PROGRESS_RULES",
    "OutputRule",
]
