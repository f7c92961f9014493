"""
Unit tests for TargetDiscovery with the external tools mocked out.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from xrunner.discovery import TargetDiscovery
from xrunner.models.config import ToolsConfig
from xrunner.models.targets import TargetKind
from xrunner.validation import DiscoveryError

SIMCTL_JSON = json.dumps({
    "devices": {
        "com.apple.CoreSimulator.SimRuntime.iOS-17-0": [
            {"name": "iPhone 15", "udid": "SIM-1", "state": "Shutdown", "isAvailable": True},
        ]
    }
})

XCTRACE_TEXT = """== Devices ==
My Mac (00008103-000A1B2C3D4E5F60)
Jane's iPhone (17.2) (00008110-001A2B3C4D5E6F70)
"""


def fake_tools(simctl=(0, SIMCTL_JSON, ""), xctrace=(0, XCTRACE_TEXT, "")):
    async def run(args, **kwargs):
        if "simctl" in args:
            return simctl
        if "xctrace" in args:
            return xctrace
        raise AssertionError(f"unexpected command {args}")
    return AsyncMock(side_effect=run)


@pytest.mark.unit
class TestTargetDiscovery:
    """Test cases for merging the two target sources."""

    @pytest.mark.asyncio
    async def test_physical_targets_come_first(self):
        with patch("xrunner.discovery.manager.run_command_async", fake_tools()):
            targets = await TargetDiscovery().discover()

        assert [t.identifier for t in targets] == [
            "00008110-001A2B3C4D5E6F70",
            "00008103-000A1B2C3D4E5F60",
            "SIM-1",
        ]
        assert targets[-1].kind is TargetKind.SIMULATED

    @pytest.mark.asyncio
    async def test_physical_listing_failure_is_tolerated(self):
        mock = fake_tools(xctrace=(-1, "", "Error: Command not found 'xcrun'"))
        with patch("xrunner.discovery.manager.run_command_async", mock):
            targets = await TargetDiscovery().discover()

        assert [t.identifier for t in targets] == ["SIM-1"]

    @pytest.mark.asyncio
    async def test_undecodable_simulator_listing_fails(self):
        mock = fake_tools(simctl=(0, "this is not json", ""))
        with patch("xrunner.discovery.manager.run_command_async", mock):
            with pytest.raises(DiscoveryError):
                await TargetDiscovery().discover()

    @pytest.mark.asyncio
    async def test_configured_tool_is_used(self):
        mock = fake_tools()
        with patch("xrunner.discovery.manager.run_command_async", mock):
            await TargetDiscovery(ToolsConfig(device_tool="/opt/bin/xcrun")).list_simulators()

        args = mock.call_args[0][0]
        assert args[0] == "/opt/bin/xcrun"
        assert args[1:] == ["simctl", "list", "devices", "available", "--json"]

    @pytest.mark.asyncio
    async def test_find_by_identifier_then_name(self):
        with patch("xrunner.discovery.manager.run_command_async", fake_tools()):
            discovery = TargetDiscovery()
            by_id = await discovery.find("SIM-1")
            by_name = await discovery.find("jane's IPHONE")
            missing = await discovery.find("Nope")

        assert by_id.name == "iPhone 15"
        assert by_name.identifier == "00008110-001A2B3C4D5E6F70"
        assert missing is None
