"""
Target discovery for the xrunner package.

This module enumerates simulated, physical and local-host targets:

- Runtime identifier classification through an ordered pattern table
- Line-grammar parsing of the physical device listing
- Concurrent querying of both sources with a deterministic merge order
"""

from .devices import (
    classify_device_name,
    parse_device_line,
    parse_physical_devices,
    parse_simulators,
    sort_simulators,
)
from .manager import TargetDiscovery
from .runtimes import format_runtime, parse_runtime

__all__ = [
    "TargetDiscovery",
    "classify_device_name",
    "parse_device_line",
    "parse_physical_devices",
    "parse_simulators",
    "sort_simulators",
    "format_runtime",
    "parse_runtime",
]
