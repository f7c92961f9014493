"""
Non-interactive selection of the project, scheme and target.

Each helper either returns the single obvious choice or raises
ValidationError listing the available options.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from ..models.build import XcodeProject
from ..models.targets import Target
from ..schemes import discover_projects
from ..validation import ValidationError

logger = logging.getLogger(__name__)

CONTAINER_SUFFIXES = (".xcodeproj", ".xcworkspace")


def _choices(names: Iterable[str]) -> str:
    return ", ".join(names) or "none"


def select_project(query: Optional[str], directory: Path) -> XcodeProject:
    """
    Pick the project container to build.

    ``query`` may be a path to a container, or a fragment of the path of
    one of the containers found in ``directory``. Without a query a
    directory holding exactly one container selects it; a workspace wins
    over a project only when it is the only workspace.
    """
    if query:
        candidate = Path(query).expanduser()
        if candidate.suffix in CONTAINER_SUFFIXES and candidate.exists():
            return XcodeProject.from_path(candidate)

    projects = discover_projects(directory) if Path(directory).is_dir() else []
    if not projects:
        raise ValidationError(f"No project or workspace found in {directory}", field_name="--project")

    if query:
        matches = [p for p in projects if query in str(p.path)]
        if not matches:
            raise ValidationError(
                f"Project '{query}' not found. Available: {_choices(p.path.name for p in projects)}",
                field_name="--project",
                value=query,
            )
        return matches[0]

    if len(projects) == 1:
        return projects[0]
    workspaces = [p for p in projects if p.path.suffix == ".xcworkspace"]
    if len(workspaces) == 1:
        logger.info(f"Using workspace {workspaces[0].path.name}")
        return workspaces[0]
    raise ValidationError(
        f"Several projects found; choose one with --project. Available: "
        f"{_choices(p.path.name for p in projects)}",
        field_name="--project",
    )


def select_scheme(schemes: List[str], name: Optional[str]) -> str:
    if not schemes:
        raise ValidationError("No schemes found in the project", field_name="--scheme")
    if name:
        if name in schemes:
            return name
        raise ValidationError(
            f"Scheme '{name}' not found. Available: {_choices(schemes)}",
            field_name="--scheme",
            value=name,
        )
    if len(schemes) == 1:
        return schemes[0]
    raise ValidationError(
        f"Several schemes found; choose one with --scheme. Available: {_choices(schemes)}",
        field_name="--scheme",
    )


def select_target(targets: List[Target], device: Optional[str], auto: bool = False) -> Target:
    """
    Pick the deploy target.

    ``device`` matches an identifier exactly, then a name case-insensitively.
    With ``auto`` the first running target wins, else the first target.
    """
    if not targets:
        raise ValidationError("No devices or simulators available", field_name="--device")

    if device:
        for target in targets:
            if target.identifier == device:
                return target
        for target in targets:
            if target.name.lower() == device.lower():
                return target
        raise ValidationError(
            f"Device '{device}' not found. Available: "
            f"{_choices(f'{t.display_name} [{t.identifier}]' for t in targets)}",
            field_name="--device",
            value=device,
        )

    if auto:
        return next((t for t in targets if t.is_running), targets[0])
    if len(targets) == 1:
        return targets[0]
    raise ValidationError(
        f"Several devices available; choose one with --device or use --auto. Available: "
        f"{_choices(f'{t.display_name} [{t.identifier}]' for t in targets)}",
        field_name="--device",
    )
