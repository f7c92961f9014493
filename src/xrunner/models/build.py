"""
Build data models.

This module contains the value types exchanged with the build orchestrator:
the project being built, the request, progress events, the cache location
and the final result.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .targets import Target


class ProjectKind(Enum):
    PROJECT = "project"
    WORKSPACE = "workspace"

    @property
    def flag(self) -> str:
        """Command line flag selecting this container kind."""
        return f"-{self.value}"

    @property
    def extension(self) -> str:
        return ".xcodeproj" if self is ProjectKind.PROJECT else ".xcworkspace"


@dataclass(frozen=True)
class XcodeProject:
    """A project or workspace container found on disk."""

    path: Path
    kind: ProjectKind

    @property
    def name(self) -> str:
        return self.path.stem

    @classmethod
    def from_path(cls, path: Path) -> "XcodeProject":
        path = Path(path)
        if path.suffix == ".xcworkspace":
            return cls(path=path, kind=ProjectKind.WORKSPACE)
        return cls(path=path, kind=ProjectKind.PROJECT)


class BuildPhase(Enum):
    """
    Build progress phases.

    ``rank`` orders the main state machine; phases sharing a rank form a
    group that may cycle (package phases). Device phases are advisory and
    have no rank.
    """

    PREPARING = ("preparing", 0)
    RESOLVING_PACKAGES = ("resolving-packages", 1)
    FETCHING_PACKAGES = ("fetching-packages", 1)
    UPDATING_PACKAGES = ("updating-packages", 1)
    CHECKING_OUT_PACKAGES = ("checking-out-packages", 1)
    PROCESSING = ("processing", 2)
    COMPILING = ("compiling", 3)
    LINKING = ("linking", 4)
    SIGNING = ("signing", 5)
    COPYING = ("copying", 6)
    SUCCEEDED = ("succeeded", 7)
    FAILED = ("failed", 7)

    WAITING_FOR_DEVICE = ("waiting-for-device", None)
    PREPARING_DEVICE = ("preparing-device", None)
    REGISTERING_DEVICE = ("registering-device", None)

    def __init__(self, label: str, rank: Optional[int]):
        self.label = label
        self.rank = rank

    @property
    def is_terminal(self) -> bool:
        return self in (BuildPhase.SUCCEEDED, BuildPhase.FAILED)

    @property
    def is_advisory(self) -> bool:
        return self.rank is None

    @property
    def is_package_phase(self) -> bool:
        return self.rank == 1


@dataclass(frozen=True)
class BuildProgressEvent:
    phase: BuildPhase
    # 0-100, never decreasing within one build.
    percentage: float
    message: str
    detail: Optional[str] = None


@dataclass(frozen=True)
class BuildRequest:
    """
    Everything needed to run one build. Constructed once per run.
    """

    project_path: Path
    project_kind: ProjectKind
    scheme: str
    target: Target
    configuration: str = "Debug"
    verbose: bool = False

    @property
    def project_name(self) -> str:
        return Path(self.project_path).stem

    @classmethod
    def for_project(cls, project: XcodeProject, scheme: str, target: Target,
                    configuration: str = "Debug", verbose: bool = False) -> "BuildRequest":
        return cls(
            project_path=project.path,
            project_kind=project.kind,
            scheme=scheme,
            target=target,
            configuration=configuration,
            verbose=verbose,
        )


class CacheProvenance(Enum):
    # Reused from the toolchain's own per-project cache.
    NATIVE = "native"
    # Deterministic directory under our cache root.
    FALLBACK = "fallback"


@dataclass(frozen=True)
class BuildCacheLocation:
    path: Path
    provenance: CacheProvenance
    # True when a corrupted directory was wiped before reuse.
    reset: bool = False

    @property
    def products_dir(self) -> Path:
        return self.path / "Build" / "Products"


@dataclass(frozen=True)
class BuildResult:
    """
    Outcome of one build. Produced once, immutable.
    """

    success: bool
    artifact_path: Optional[Path]
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    duration: float = 0.0
    return_code: Optional[int] = None
    cancelled: bool = False
