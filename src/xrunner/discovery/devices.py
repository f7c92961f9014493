"""
Parsers for the two device listings.

Both functions are pure: they take the raw tool output and return targets,
which keeps them easy to test without the toolchain installed.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ..models.targets import Platform, PowerState, Target, TargetKind
from ..validation import DiscoveryError
from .runtimes import parse_runtime

logger = logging.getLogger(__name__)

DEVICES_SECTION = "== Devices =="

# "Name (Version) (ID)"
LINE_WITH_VERSION = re.compile(r"^(.+?)\s+\(([^)]+)\)\s+\(([^)]+)\)$")
# "Name (ID)", used for the local host which reports no version.
LINE_WITHOUT_VERSION = re.compile(r"^(.+?)\s+\(([A-Fa-f0-9-]+)\)$")

LOCAL_HOST_TOKENS = ("my mac", "macbook", "imac", "mac mini", "mac pro", "mac studio")


def classify_device_name(name: str) -> Tuple[Platform, TargetKind]:
    """Guess platform and kind from a device name (case-insensitive)."""
    lowered = name.lower()
    if any(token in lowered for token in LOCAL_HOST_TOKENS):
        return Platform.MACOS, TargetKind.LOCAL_HOST
    if "watch" in lowered:
        return Platform.WATCHOS, TargetKind.PHYSICAL
    if "apple tv" in lowered or "appletv" in lowered:
        return Platform.TVOS, TargetKind.PHYSICAL
    if "vision" in lowered:
        return Platform.VISIONOS, TargetKind.PHYSICAL
    return Platform.IOS, TargetKind.PHYSICAL


def parse_device_line(line: str) -> Optional[Tuple[str, Optional[str], str]]:
    """
    Parse one line of the devices section.

    Returns:
        (name, version or None, identifier), or None for unparseable lines.
    """
    line = line.strip()
    match = LINE_WITH_VERSION.match(line)
    if match:
        return match.group(1), match.group(2), match.group(3)
    match = LINE_WITHOUT_VERSION.match(line)
    if match:
        return match.group(1), None, match.group(2)
    return None


def parse_physical_devices(output: str) -> List[Target]:
    """
    Parse ``xctrace list devices`` output into physical and local targets.

    Only the ``== Devices ==`` section is considered. The result is sorted
    by platform, then name.
    """
    targets = []
    in_devices = False
    for raw in output.splitlines():
        line = raw.strip()
        if line == DEVICES_SECTION:
            in_devices = True
            continue
        if line.startswith("== "):
            in_devices = False
            continue
        if not in_devices or not line:
            continue

        parsed = parse_device_line(line)
        if parsed is None:
            logger.debug(f"Skipping unparseable device line: {line}")
            continue
        name, version, identifier = parsed
        platform, kind = classify_device_name(name)
        targets.append(Target(
            identifier=identifier,
            name=name,
            kind=kind,
            platform=platform,
            state=PowerState.AVAILABLE,
            os_version=f"{platform.display_name} {version}" if version else None,
        ))
    return sorted(targets, key=lambda t: (t.platform.value, t.name))


def parse_simulators(payload: str) -> List[Target]:
    """
    Decode ``simctl list devices available --json`` output.

    Raises:
        DiscoveryError: If the payload is not the expected JSON document.
    """
    try:
        document = json.loads(payload)
        runtimes: Dict[str, List[Dict[str, Any]]] = document["devices"]
        if not isinstance(runtimes, dict):
            raise TypeError("'devices' is not an object")
    except (ValueError, KeyError, TypeError) as e:
        raise DiscoveryError(detail=str(e)) from e

    targets = []
    for runtime_id, records in runtimes.items():
        classified = parse_runtime(runtime_id)
        if classified is None:
            logger.debug(f"Dropping unknown simulator runtime {runtime_id}")
            continue
        os_version, platform = classified
        if not isinstance(records, list):
            continue
        for record in records:
            if not isinstance(record, dict) or record.get("isAvailable") is False:
                continue
            identifier = record.get("udid") or record.get("id")
            if not identifier or "name" not in record:
                continue
            state = PowerState.RUNNING if record.get("state") == "Booted" else PowerState.STOPPED
            targets.append(Target(
                identifier=identifier,
                name=record["name"],
                kind=TargetKind.SIMULATED,
                platform=platform,
                state=state,
                os_version=os_version,
                runtime=runtime_id,
            ))
    return sort_simulators(targets)


def sort_simulators(targets: List[Target]) -> List[Target]:
    """Running instances first, then platform name, then target name."""
    return sorted(targets, key=lambda t: (not t.is_running, t.platform.value, t.name))
