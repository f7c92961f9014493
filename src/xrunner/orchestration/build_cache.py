"""
Build cache directory resolution.

Before a build starts, the orchestrator picks the directory passed as
``-derivedDataPath``: preferably the toolchain's own cache for the project (so
incremental state from IDE builds is reused), otherwise a deterministic
directory under our cache root named by a hash of the project path.
"""

import json
import logging
import plistlib
import shutil
from pathlib import Path
from typing import Callable, List, Optional
from xml.parsers.expat import ExpatError

from ..models.build import BuildCacheLocation, CacheProvenance

logger = logging.getLogger(__name__)

FNV64_OFFSET_BASIS = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF

PACKAGES_DIR = "SourcePackages"
PACKAGE_STATE_FILE = "workspace-state.json"
METADATA_FILE = "info.plist"
METADATA_PATH_KEY = "WorkspacePath"


def fnv1a_64(text: str) -> str:
    """64-bit FNV-1a hash of the UTF-8 encoding of ``text``, as 16 hex digits."""
    value = FNV64_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        value ^= byte
        value = (value * FNV64_PRIME) & _MASK64
    return f"{value:016x}"


def is_cache_corrupted(path: Path) -> bool:
    """
    Check whether a cache directory is unusable.

    A cache is corrupted when the path exists but is not a directory, when
    its package directory exists but is not a directory, or when the package
    state manifest exists but is not valid JSON. A missing manifest is fine.
    """
    path = Path(path)
    if not path.exists():
        return False
    if not path.is_dir():
        return True

    packages = path / PACKAGES_DIR
    if packages.exists() and not packages.is_dir():
        return True

    manifest = packages / PACKAGE_STATE_FILE
    if not manifest.exists():
        return False
    try:
        json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError) as e:
        logger.debug(f"Unreadable package state manifest {manifest}: {e}")
        return True
    return False


def _project_references(project_path: Path) -> List[str]:
    absolute = project_path.absolute()
    references = [str(absolute)]
    resolved = str(absolute.resolve())
    if resolved not in references:
        references.append(resolved)
    references.append(absolute.as_uri())
    return references


def _metadata_references_project(metadata: Path, references: List[str]) -> bool:
    try:
        raw = metadata.read_bytes()
    except OSError:
        return False

    try:
        document = plistlib.loads(raw)
    except (plistlib.InvalidFileException, ValueError, ExpatError) as e:
        logger.debug(f"Falling back to raw search of {metadata}: {e}")
        document = None

    if isinstance(document, dict):
        stored = document.get(METADATA_PATH_KEY)
        if isinstance(stored, str):
            stored = stored.rstrip("/")
            return any(stored == ref.rstrip("/") for ref in references)

    text = raw.decode("utf-8", errors="replace")
    return any(ref in text for ref in references)


def find_native_cache(derived_data_root: Path, project_path: Path) -> Optional[Path]:
    """
    Find the toolchain's own cache directory for a project.

    Scans ``<derived_data_root>/<project name>-*`` for a metadata file
    referencing the project and returns the most recently modified match.
    """
    derived_data_root = Path(derived_data_root)
    if not derived_data_root.is_dir():
        return None

    references = _project_references(Path(project_path))
    matches = []
    for candidate in derived_data_root.glob(f"{Path(project_path).stem}-*"):
        metadata = candidate / METADATA_FILE
        if metadata.is_file() and _metadata_references_project(metadata, references):
            try:
                matches.append((candidate.stat().st_mtime, candidate))
            except OSError:
                continue

    if not matches:
        return None
    return max(matches)[1]


def fallback_cache_path(cache_root: Path, project_path: Path) -> Path:
    absolute = Path(project_path).absolute()
    return Path(cache_root) / f"{absolute.stem}-{fnv1a_64(str(absolute))}"


def _wipe(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


class BuildCacheResolver:
    """Resolves the cache directory for a project before a build."""

    def __init__(self, cache_root: Path, derived_data_root: Optional[Path] = None):
        self.cache_root = Path(cache_root).expanduser()
        self.derived_data_root = Path(derived_data_root).expanduser() if derived_data_root else None

    def resolve(self, project_path: Path,
                on_advisory: Optional[Callable[[str], None]] = None) -> BuildCacheLocation:
        """
        Pick (and if needed create or reset) the cache directory for a project.

        Args:
            project_path: Project or workspace path
            on_advisory: Called with a message when a native cache is skipped
                because it is corrupted

        Raises:
            OSError: If the fallback directory cannot be created
        """
        self.cache_root.mkdir(parents=True, exist_ok=True)

        if self.derived_data_root is not None:
            native = find_native_cache(self.derived_data_root, project_path)
            if native is not None:
                if not is_cache_corrupted(native):
                    logger.info(f"Reusing build cache {native}")
                    return BuildCacheLocation(native, CacheProvenance.NATIVE)
                message = f"Existing build cache {native.name} is corrupted; using a private cache"
                logger.warning(message)
                if on_advisory is not None:
                    on_advisory(message)

        fallback = fallback_cache_path(self.cache_root, project_path)
        reset = False
        if is_cache_corrupted(fallback):
            logger.warning(f"Removing corrupted build cache {fallback}")
            _wipe(fallback)
            reset = True
        fallback.mkdir(parents=True, exist_ok=True)
        logger.info(f"Using build cache {fallback}")
        return BuildCacheLocation(fallback, CacheProvenance.FALLBACK, reset=reset)
