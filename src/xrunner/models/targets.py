"""
Target data models.

A target is a concrete place an artifact can be installed and run: a
simulator instance, a physical device, or the local host. Targets are
rediscovered on every invocation and never persisted beyond the identifiers
the external toolchain hands out.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TargetKind(Enum):
    SIMULATED = "simulated"
    PHYSICAL = "physical"
    LOCAL_HOST = "local-host"


class PowerState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    AVAILABLE = "available"
    UNREACHABLE = "unreachable"


class Platform(Enum):
    """
    Operating system family of a target.

    Each member carries the names the build tool expects for destinations and
    the suffixes it uses for build products directories.
    """

    IOS = "iOS"
    MACOS = "macOS"
    WATCHOS = "watchOS"
    TVOS = "tvOS"
    VISIONOS = "visionOS"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def simulator_destination(self) -> str:
        if self is Platform.MACOS:
            return "macOS"
        return f"{self.value} Simulator"

    @property
    def device_destination(self) -> str:
        return self.value

    @property
    def products_suffix(self) -> str:
        return _PRODUCTS_SUFFIXES[self][0]

    @property
    def simulator_products_suffix(self) -> str:
        return _PRODUCTS_SUFFIXES[self][1]


# (device suffix, simulator suffix); macOS has no simulator.
_PRODUCTS_SUFFIXES = {
    Platform.IOS: ("iphoneos", "iphonesimulator"),
    Platform.MACOS: ("macosx", "macosx"),
    Platform.WATCHOS: ("watchos", "watchsimulator"),
    Platform.TVOS: ("appletvos", "appletvsimulator"),
    Platform.VISIONOS: ("xros", "xrsimulator"),
}


@dataclass(frozen=True)
class Target:
    """
    A deploy target as reported by the device toolchain.
    """

    # Opaque identifier (UDID) understood by the build and device tools.
    identifier: str
    # Human readable name, e.g. "iPhone 15 Pro".
    name: str
    kind: TargetKind
    platform: Platform
    state: PowerState
    # Display version, e.g. "iOS 17.0".
    os_version: Optional[str] = None
    # Simulator runtime identifier, only set for simulated targets.
    runtime: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.state is PowerState.RUNNING

    @property
    def destination(self) -> str:
        """The ``-destination`` value for the build command."""
        if self.kind is TargetKind.SIMULATED:
            platform_name = self.platform.simulator_destination
        else:
            platform_name = self.platform.device_destination
        return f"platform={platform_name},id={self.identifier}"

    @property
    def display_name(self) -> str:
        if self.os_version:
            return f"{self.name} ({self.os_version})"
        return self.name
