"""
Target discovery.

Queries the simulator listing and the physical device listing concurrently
and merges them into one deterministic list.
"""

import asyncio
import logging
from typing import List, Optional

from ..models.config import ToolsConfig
from ..models.targets import Target
from ..system.commands import run_command_async
from .devices import parse_physical_devices, parse_simulators

logger = logging.getLogger(__name__)


class TargetDiscovery:
    """
    Enumerates every target a build can be deployed to.

    The simulator source is authoritative: if its output cannot be decoded
    discovery fails. The physical source is best-effort and contributes an
    empty list on any failure.
    """

    def __init__(self, tools: Optional[ToolsConfig] = None):
        self.tools = tools or ToolsConfig()

    async def list_simulators(self) -> List[Target]:
        rc, stdout, stderr = await run_command_async(
            [self.tools.device_tool, "simctl", "list", "devices", "available", "--json"]
        )
        if rc != 0:
            logger.warning(f"Simulator listing exited with {rc}: {stderr.strip()}")
        simulators = parse_simulators(stdout)
        logger.debug(f"Discovered {len(simulators)} simulators")
        return simulators

    async def list_physical_devices(self) -> List[Target]:
        rc, stdout, stderr = await run_command_async(
            [self.tools.device_tool, "xctrace", "list", "devices"],
            strict_decoding=True,
        )
        if rc != 0:
            logger.warning(f"Physical device listing unavailable (rc={rc}): {stderr.strip()}")
            return []
        devices = parse_physical_devices(stdout)
        logger.debug(f"Discovered {len(devices)} physical/local devices")
        return devices

    async def discover(self) -> List[Target]:
        """
        Discover all targets: physical and local first, then simulators.

        Raises:
            DiscoveryError: If the simulator listing cannot be decoded.
        """
        physical, simulators = await asyncio.gather(
            self.list_physical_devices(),
            self.list_simulators(),
        )
        return physical + simulators

    async def find(self, query: str) -> Optional[Target]:
        """Find a target by exact identifier, then by case-insensitive name."""
        targets = await self.discover()
        for target in targets:
            if target.identifier == query:
                return target
        lowered = query.lower()
        for target in targets:
            if target.name.lower() == lowered:
                return target
        return None

