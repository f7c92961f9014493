"""
Configuration data models.

This module contains the configuration structures loaded from
``conf/config.toml``. Every field has a default so a partial (or missing)
configuration file still yields a complete configuration.
"""

import sys
from dataclasses import dataclass, field
from pathlib import Path


def _default_cache_root() -> Path:
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / "xrunner"
    return Path.home() / ".cache" / "xrunner"


def _default_state_dir() -> Path:
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "xrunner"
    return Path.home() / ".local" / "state" / "xrunner"


@dataclass
class GeneralConfig:
    # [general]
    log_level: str = "INFO"


@dataclass
class PathsConfig:
    # [paths]
    # Root for deterministic per-project build caches.
    cache_root: Path = field(default_factory=_default_cache_root)
    # The build tool's own cache root, scanned for reusable directories.
    derived_data_root: Path = field(
        default_factory=lambda: Path.home() / "Library" / "Developer" / "Xcode" / "DerivedData"
    )
    # Where the key-value store files live.
    state_dir: Path = field(default_factory=_default_state_dir)


@dataclass
class ToolsConfig:
    # [tools]
    build_tool: str = "/usr/bin/xcodebuild"
    device_tool: str = "/usr/bin/xcrun"
    open_tool: str = "/usr/bin/open"
    log_tool: str = "/usr/bin/log"


@dataclass
class BuildSettings:
    # [build]
    default_configuration: str = "Debug"
    disable_package_resolution_when_fresh: bool = True
    # Max pending output lines between the reader threads and the classifier.
    stream_queue_size: int = 1000
    # Seconds to wait for graceful termination before escalating.
    termination_timeout: float = 3.0


@dataclass
class DeploySettings:
    # [deploy]
    boot_settle_seconds: float = 2.0
    viewer_settle_seconds: float = 3.0
    lock_poll_interval: float = 1.0
    # 0 disables the bound and polls until unlocked or cancelled.
    unlock_timeout_seconds: float = 300.0
    simulator_app: str = "Simulator"


@dataclass
class SchemeCacheSettings:
    # [scheme_cache]
    max_entries: int = 50
    fallback_ttl_seconds: float = 600.0
    signature_tolerance_seconds: float = 0.001
    suite_name: str = "xrunner"


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    general: GeneralConfig = field(default_factory=GeneralConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    build: BuildSettings = field(default_factory=BuildSettings)
    deploy: DeploySettings = field(default_factory=DeploySettings)
    scheme_cache: SchemeCacheSettings = field(default_factory=SchemeCacheSettings)
