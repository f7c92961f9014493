"""
Project, scheme and destination discovery.

Scheme listing runs the build tool, which can take several seconds on a large
workspace, so results go through the signature-keyed SchemeCacheStore.
"""

import json
import logging
from pathlib import Path
from typing import FrozenSet, List, Optional

from ..models.build import XcodeProject
from ..models.config import ToolsConfig
from ..models.targets import Platform
from ..system.commands import run_command_async
from ..validation import SchemeListError
from .cache import SchemeCacheStore
from .signature import compute_signature

logger = logging.getLogger(__name__)

# Destination markers (lowercased) mapped to the platforms they enable.
DESTINATION_MARKERS = [
    ("platform:ios", (Platform.IOS,)),
    ("platform:mac catalyst", (Platform.IOS, Platform.MACOS)),
    ("platform:macos", (Platform.MACOS,)),
    ("platform:watchos", (Platform.WATCHOS,)),
    ("platform:tvos", (Platform.TVOS,)),
    ("platform:visionos", (Platform.VISIONOS,)),
    ("platform:xros", (Platform.VISIONOS,)),
]

ALL_PLATFORMS: FrozenSet[Platform] = frozenset(Platform)


def discover_projects(directory: Path) -> List[XcodeProject]:
    """
    Find workspaces and projects directly inside ``directory``.

    Workspaces are listed first; hidden entries are skipped.
    """
    directory = Path(directory)
    entries = sorted(p for p in directory.iterdir() if not p.name.startswith("."))
    workspaces = [XcodeProject.from_path(p) for p in entries if p.suffix == ".xcworkspace"]
    projects = [XcodeProject.from_path(p) for p in entries if p.suffix == ".xcodeproj"]
    return workspaces + projects


def parse_scheme_list(payload: str) -> List[str]:
    """
    Decode ``-list -json`` output.

    Raises:
        SchemeListError: If the payload cannot be decoded.
    """
    try:
        document = json.loads(payload)
    except ValueError as e:
        raise SchemeListError(detail=str(e)) from e
    if not isinstance(document, dict):
        raise SchemeListError(detail="unexpected scheme listing document")
    for container in ("workspace", "project"):
        section = document.get(container)
        if isinstance(section, dict) and isinstance(section.get("schemes"), list):
            return [str(s) for s in section["schemes"]]
    return []


def parse_destinations(output: str) -> FrozenSet[Platform]:
    lowered = output.lower()
    supported = set()
    for marker, platforms in DESTINATION_MARKERS:
        if marker in lowered:
            supported.update(platforms)
    return frozenset(supported)


class SchemeLister:
    """Lists schemes and supported destinations for a project container."""

    def __init__(self, cache: Optional[SchemeCacheStore] = None, tools: Optional[ToolsConfig] = None):
        self.cache = cache
        self.tools = tools or ToolsConfig()

    async def list_schemes(self, project: XcodeProject) -> List[str]:
        """
        Return the schemes of a project, from the cache when still valid.

        Raises:
            SchemeListError: If the build tool fails or its output is invalid.
        """
        key = str(project.path.absolute())
        signature = compute_signature(project.path, project.kind)

        if self.cache is not None:
            cached = self.cache.cached_schemes(key, signature)
            if cached is not None:
                logger.debug(f"Scheme cache hit for {key}")
                return cached

        rc, stdout, stderr = await run_command_async(
            [self.tools.build_tool, project.kind.flag, str(project.path), "-list", "-json"]
        )
        if rc != 0:
            raise SchemeListError(detail=stderr or stdout)
        schemes = parse_scheme_list(stdout)
        logger.info(f"Found {len(schemes)} schemes in {project.name}")

        if self.cache is not None:
            self.cache.store_schemes(key, schemes, signature)
        return schemes

    async def supported_platforms(self, project: XcodeProject, scheme: str) -> FrozenSet[Platform]:
        """
        Platforms the scheme can be built for.

        Any failure to query destinations allows every platform.
        """
        rc, stdout, _ = await run_command_async(
            [self.tools.build_tool, project.kind.flag, str(project.path), "-scheme", scheme,
             "-showdestinations"]
        )
        if rc == -1:
            logger.warning(f"Could not query destinations for {scheme}; allowing all platforms")
            return ALL_PLATFORMS
        return parse_destinations(stdout)
