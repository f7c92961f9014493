"""
Pytest configuration and shared fixtures for the xrunner test suite.

This module provides common fixtures, test utilities, and configuration
for all test modules in the xrunner project.
"""

import os
import plistlib
import shutil
import stat
import sys
import tempfile
from pathlib import Path
from typing import Optional

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "e2e: mark test as an end-to-end test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_config_data(temp_dir):
    """Sample configuration data for testing."""
    return {
        "general": {"log_level": "debug"},
        "paths": {
            "cache_root": str(temp_dir / "cache"),
            "derived_data_root": str(temp_dir / "DerivedData"),
            "state_dir": str(temp_dir / "state"),
        },
        "tools": {
            "build_tool": "/usr/bin/xcodebuild",
            "device_tool": "/usr/bin/xcrun",
        },
        "build": {"stream_queue_size": 64, "termination_timeout": 1.0},
        "deploy": {
            "boot_settle_seconds": 0.0,
            "viewer_settle_seconds": 0.0,
            "lock_poll_interval": 0.01,
            "unlock_timeout_seconds": 0,
        },
        "scheme_cache": {"max_entries": 10},
    }


@pytest.fixture
def config_files(temp_dir, sample_config_data):
    """Create a temporary config.toml for testing."""
    import toml

    config_file = temp_dir / "config.toml"
    with open(config_file, "w") as f:
        toml.dump(sample_config_data, f)
    return {"config": config_file, "dir": temp_dir}


@pytest.fixture
def app_config(temp_dir):
    """An AppConfig rooted in the temporary directory with no deploy delays."""
    from xrunner.models.config import (
        AppConfig,
        BuildSettings,
        DeploySettings,
        PathsConfig,
    )

    return AppConfig(
        paths=PathsConfig(
            cache_root=temp_dir / "cache",
            derived_data_root=temp_dir / "DerivedData",
            state_dir=temp_dir / "state",
        ),
        build=BuildSettings(stream_queue_size=64, termination_timeout=1.0),
        deploy=DeploySettings(
            boot_settle_seconds=0.0,
            viewer_settle_seconds=0.0,
            lock_poll_interval=0.01,
            unlock_timeout_seconds=0.0,
        ),
    )


# ============================================================================
# Test Utilities
# ============================================================================


class TestUtils:
    """Utility functions for testing."""

    @staticmethod
    def make_target(kind: str = "simulated", running: bool = False, platform: str = "iOS",
                    identifier: str = "SIM-1", name: str = "iPhone 15"):
        """Create a Target."""
        from xrunner.models.targets import Platform, PowerState, Target, TargetKind

        return Target(
            identifier=identifier,
            name=name,
            kind=TargetKind(kind),
            platform=Platform(platform),
            state=PowerState.RUNNING if running else PowerState.STOPPED,
            os_version=f"{platform} 17.0",
        )

    @staticmethod
    def make_app_bundle(parent: Path, name: str = "App",
                        bundle_id: Optional[str] = "com.example.App",
                        macos_layout: bool = False) -> Path:
        """Create an app bundle directory with an Info.plist."""
        bundle = Path(parent) / f"{name}.app"
        plist_dir = bundle / "Contents" if macos_layout else bundle
        plist_dir.mkdir(parents=True, exist_ok=True)
        info = {"CFBundleName": name}
        if bundle_id is not None:
            info["CFBundleIdentifier"] = bundle_id
        with open(plist_dir / "Info.plist", "wb") as f:
            plistlib.dump(info, f)
        return bundle

    @staticmethod
    def write_script(path: Path, body: str) -> Path:
        """Write an executable shell script."""
        path = Path(path)
        path.write_text("#!/bin/sh\n" + body)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    @staticmethod
    def touch(path: Path, mtime: Optional[float] = None, content: str = "") -> Path:
        """Create a file (and parents) and optionally set its mtime."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path


@pytest.fixture
def test_utils():
    """Provide test utility functions."""
    return TestUtils


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically clear configuration cache after each test."""
    original_config_path = Path(__file__).parent.parent / "conf" / "config.toml"

    yield  # Run the test

    from xrunner.config import clear_config_cache, set_config_path

    clear_config_cache()
    set_config_path(original_config_path)
