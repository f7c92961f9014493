"""
xrunner: Build and run apps on simulators, devices and the local Mac.

This package drives the external build and device toolchains: it discovers
deploy targets, lists and caches project schemes, runs the build while
turning its output into progress events, then installs and launches the
built app bundle.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Data structures and type definitions
- validation: Input validation and error handling
- system: Command execution and process management
- classification: Build and install output classification rules
- discovery: Simulator and physical device discovery
- schemes: Scheme listing and the signature-keyed scheme cache
- storage: Key-value stores for persisted state
- executor: Line-streaming subprocess execution
- orchestration: Build and deploy orchestrators and the runner engine
- cli: Command-line interface

Usage:
    From command line:
        xrunner [options]

    Programmatically:
        from xrunner import RunnerEngine, get_config
        engine = RunnerEngine(get_config())
        engine.load()
        result = await engine.build_and_run(request)
"""

# Main interfaces
from .config import clear_config_cache, get_config, set_config_path
from .orchestration import BuildOrchestrator, DeployOrchestrator, RunnerEngine

# Model classes for external use
from .models import (
    AppConfig,
    BuildPhase,
    BuildProgressEvent,
    BuildRequest,
    BuildResult,
    Platform,
    PowerState,
    RunPhase,
    RunProgressEvent,
    Target,
    TargetKind,
    XcodeProject,
)

# Errors
from .validation import RunnerError, ValidationError

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Main interfaces
    "RunnerEngine",
    "BuildOrchestrator",
    "DeployOrchestrator",
    "get_config",
    "clear_config_cache",
    "set_config_path",
    # Models
    "AppConfig",
    "BuildPhase",
    "BuildProgressEvent",
    "BuildRequest",
    "BuildResult",
    "Platform",
    "PowerState",
    "RunPhase",
    "RunProgressEvent",
    "Target",
    "TargetKind",
    "XcodeProject",
    # Errors
    "RunnerError",
    "ValidationError",
]
