"""
Data models and structures for the orchestration engine.

Configuration Models:
- Application-wide settings loaded from TOML

Target Models:
- Deploy targets, their kind, platform and power state

Build Models:
- Projects, build requests, progress events, cache locations and results

Run Models:
- Deploy progress events and console output sources

All models are dataclasses or enums; request and event types are frozen.
"""

from .config import (
    AppConfig,
    BuildSettings,
    DeploySettings,
    GeneralConfig,
    PathsConfig,
    SchemeCacheSettings,
    ToolsConfig,
)
from .targets import Platform, PowerState, Target, TargetKind
from .build import (
    BuildCacheLocation,
    BuildPhase,
    BuildProgressEvent,
    BuildRequest,
    BuildResult,
    CacheProvenance,
    ProjectKind,
    XcodeProject,
)
from .run import OutputSource, RunPhase, RunProgressEvent

__all__ = [
    # Configuration
    "AppConfig",
    "BuildSettings",
    "DeploySettings",
    "GeneralConfig",
    "PathsConfig",
    "SchemeCacheSettings",
    "ToolsConfig",
    # Targets
    "Platform",
    "PowerState",
    "Target",
    "TargetKind",
    # Build
    "BuildCacheLocation",
    "BuildPhase",
    "BuildProgressEvent",
    "BuildRequest",
    "BuildResult",
    "CacheProvenance",
    "ProjectKind",
    "XcodeProject",
    # Run
    "OutputSource",
    "RunPhase",
    "RunProgressEvent",
]
