"""
Modification-time signatures for project containers.

A signature is the newest modification time (epoch seconds) among the files
that define a container's schemes. When none of those files exist the
container's own modification time is used; when even that is unavailable
there is no signature.
"""

import logging
import os
import re
from pathlib import Path
from typing import Iterable, List, Optional

from ..models.build import ProjectKind

logger = logging.getLogger(__name__)

LOCATION_PATTERN = re.compile(r'location\s*=\s*"([^"]+)"')


def _mtime(path: Path) -> Optional[float]:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def _visible_entries(directory: Path) -> List[Path]:
    try:
        return sorted(p for p in directory.iterdir() if not p.name.startswith("."))
    except OSError:
        return []


def scheme_directories(container: Path) -> List[Path]:
    """Shared scheme directory plus every per-user scheme directory."""
    directories = []
    shared = container / "xcshareddata" / "xcschemes"
    if shared.is_dir():
        directories.append(shared)
    for user_dir in _visible_entries(container / "xcuserdata"):
        schemes = user_dir / "xcschemes"
        if schemes.is_dir():
            directories.append(schemes)
    return directories


def scheme_file_mtimes(container: Path) -> List[float]:
    mtimes = []
    for directory in scheme_directories(container):
        for entry in _visible_entries(directory):
            if entry.suffix == ".xcscheme":
                mtime = _mtime(entry)
                if mtime is not None:
                    mtimes.append(mtime)
    return mtimes


def _max_or_fallback(mtimes: Iterable[float], container: Path) -> Optional[float]:
    mtimes = list(mtimes)
    if not mtimes:
        fallback = _mtime(container)
        if fallback is not None:
            mtimes.append(fallback)
    return max(mtimes) if mtimes else None


def project_signature(project_path: Path) -> Optional[float]:
    mtimes = []
    manifest = _mtime(project_path / "project.pbxproj")
    if manifest is not None:
        mtimes.append(manifest)
    mtimes.extend(scheme_file_mtimes(project_path))
    return _max_or_fallback(mtimes, project_path)


def resolve_location(location: str, base_dir: Path) -> Path:
    """
    Resolve one ``location="..."`` reference of a workspace descriptor.

    Supported forms are ``absolute:``, ``file:``, ``group:``, ``container:``
    and ``self:``; anything else is taken relative to the workspace's
    directory.
    """
    kind, sep, path = location.partition(":")
    if not sep:
        return Path(os.path.normpath(base_dir / location))
    if kind in ("absolute", "file"):
        target = Path(path)
        return target if target.is_absolute() else Path(os.path.normpath(base_dir / target))
    if kind in ("group", "container"):
        return Path(os.path.normpath(base_dir / path))
    if kind == "self":
        return base_dir
    return Path(os.path.normpath(base_dir / location))


def referenced_projects(workspace_path: Path) -> List[Path]:
    """Projects referenced by a workspace, deduplicated, in document order."""
    contents = workspace_path / "contents.xcworkspacedata"
    try:
        xml = contents.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Cannot read workspace descriptor {contents}: {e}")
        return []

    base_dir = workspace_path.parent
    projects: List[Path] = []
    for location in LOCATION_PATTERN.findall(xml):
        resolved = resolve_location(location, base_dir)
        if resolved.suffix == ".xcodeproj" and resolved not in projects:
            projects.append(resolved)
    return projects


def workspace_signature(workspace_path: Path) -> Optional[float]:
    mtimes = []
    contents = _mtime(workspace_path / "contents.xcworkspacedata")
    if contents is not None:
        mtimes.append(contents)
    mtimes.extend(scheme_file_mtimes(workspace_path))
    for project in referenced_projects(workspace_path):
        signature = project_signature(project)
        if signature is not None:
            mtimes.append(signature)
    return _max_or_fallback(mtimes, workspace_path)


def compute_signature(path: Path, kind: ProjectKind) -> Optional[float]:
    """Signature of a project or workspace container, or None."""
    path = Path(path)
    if kind is ProjectKind.WORKSPACE:
        return workspace_signature(path)
    return project_signature(path)
