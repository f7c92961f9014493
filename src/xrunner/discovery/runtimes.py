"""
Simulator runtime identifier classification.

Runtime identifiers look like ``com.apple.CoreSimulator.SimRuntime.iOS-17-0``.
The ordered table below maps the OS family prefix to a platform; anything the
table does not know is not an error, the caller simply drops it.
"""

import re
from typing import Optional, Tuple

from ..models.targets import Platform

RUNTIME_PREFIX = "com.apple.CoreSimulator.SimRuntime."

# (pattern, platform, runtime family token). xrOS is the legacy family name
# of visionOS runtimes.
RUNTIME_PATTERNS = [
    (re.compile(r"(?<![A-Za-z])iOS-(\d+)-(\d+)"), Platform.IOS, "iOS"),
    (re.compile(r"(?<![A-Za-z])watchOS-(\d+)-(\d+)"), Platform.WATCHOS, "watchOS"),
    (re.compile(r"(?<![A-Za-z])tvOS-(\d+)-(\d+)"), Platform.TVOS, "tvOS"),
    (re.compile(r"(?<![A-Za-z])xrOS-(\d+)-(\d+)"), Platform.VISIONOS, "xrOS"),
    (re.compile(r"(?<![A-Za-z])visionOS-(\d+)-(\d+)"), Platform.VISIONOS, "visionOS"),
]


def parse_runtime(runtime_id: str) -> Optional[Tuple[str, Platform]]:
    """
    Classify a simulator runtime identifier.

    Args:
        runtime_id: Runtime identifier as reported by ``simctl``.

    Returns:
        ``("<platform display name> <major>.<minor>", platform)`` or None if the
        identifier does not belong to a known OS family.

    Examples:
        >>> parse_runtime("com.apple.CoreSimulator.SimRuntime.iOS-17-0")
        ('iOS 17.0', <Platform.IOS: 'iOS'>)
        >>> parse_runtime("com.apple.CoreSimulator.SimRuntime.xrOS-2-0")
        ('visionOS 2.0', <Platform.VISIONOS: 'visionOS'>)
    """
    for pattern, platform, _family in RUNTIME_PATTERNS:
        match = pattern.search(runtime_id)
        if match:
            major, minor = match.groups()
            return f"{platform.display_name} {major}.{minor}", platform
    return None


def format_runtime(platform: Platform, version: str) -> str:
    """
    Build the runtime identifier for a platform and ``major.minor`` version.

    This is the inverse of :func:`parse_runtime`; visionOS uses its legacy
    ``xrOS`` family token.
    """
    family = next(token for _, p, token in RUNTIME_PATTERNS if p is platform)
    major, _, minor = version.partition(".")
    return f"{RUNTIME_PREFIX}{family}-{major}-{minor or '0'}"
