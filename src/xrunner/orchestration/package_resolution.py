"""
Package resolution policy.

Resolving package dependencies is slow and needs the network. When the
cache's package state is at least as new as every ``Package.resolved`` file
of the project, resolution can be skipped with
``-disableAutomaticPackageResolution``.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

from ..models.build import ProjectKind, XcodeProject

logger = logging.getLogger(__name__)

RESOLVED_FILE = "Package.resolved"


def _mtime(path: Path) -> Optional[float]:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def _resolved_file_mtimes(container: Path) -> List[float]:
    mtimes = []
    shared = _mtime(container / "xcshareddata" / "swiftpm" / RESOLVED_FILE)
    if shared is not None:
        mtimes.append(shared)

    user_data = container / "xcuserdata"
    if user_data.is_dir():
        for root, dirs, files in os.walk(user_data):
            dirs[:] = [d for d in dirs if not d.startswith(".")]
            if RESOLVED_FILE in files:
                mtime = _mtime(Path(root) / RESOLVED_FILE)
                if mtime is not None:
                    mtimes.append(mtime)
    return mtimes


def package_resolution_signature(project: XcodeProject) -> Optional[float]:
    """Newest ``Package.resolved`` modification time, or None if there is none."""
    container = project.path
    if project.kind is ProjectKind.PROJECT:
        embedded = project.path / "project.xcworkspace"
        if embedded.exists():
            container = embedded
    mtimes = _resolved_file_mtimes(container)
    return max(mtimes) if mtimes else None


def should_disable_automatic_resolution(project: XcodeProject, cache_dir: Path) -> bool:
    signature = package_resolution_signature(project)
    if signature is None:
        return False
    state = _mtime(Path(cache_dir) / "SourcePackages" / "workspace-state.json")
    if state is None:
        return False
    fresh = state >= signature
    if fresh:
        logger.debug(f"Package state in {cache_dir} is current; skipping package resolution")
    return fresh
