"""
Orchestration module for building and running apps.

Components:
- RunnerEngine: Main coordinator (discovery, schemes, build, deploy)
- BuildOrchestrator: Cache resolution, streamed build and artifact lookup
- DeployOrchestrator: Install and launch strategies per target kind
- ConsoleStreamer: Live console relay for a launched app
- BuildCacheResolver: Build cache directory selection and corruption checks
"""

from .artifacts import extract_bundle_id, find_built_product
from .build import BuildOrchestrator
from .build_cache import BuildCacheResolver, fnv1a_64, is_cache_corrupted
from .console import ConsoleStreamer, is_pid_line
from .deploy import DeployOrchestrator, parse_lock_state
from .engine import RunnerEngine
from .package_resolution import should_disable_automatic_resolution

__all__ = [
    "RunnerEngine",
    "BuildOrchestrator",
    "DeployOrchestrator",
    "ConsoleStreamer",
    "BuildCacheResolver",
    "extract_bundle_id",
    "find_built_product",
    "fnv1a_64",
    "is_cache_corrupted",
    "is_pid_line",
    "parse_lock_state",
    "should_disable_automatic_resolution",
]
