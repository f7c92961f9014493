"""
Built artifact lookup and inspection.
"""

import logging
import os
import plistlib
from pathlib import Path
from typing import List, Optional
from xml.parsers.expat import ExpatError

from ..models.targets import Platform
from ..validation import BundleIdMissingError

logger = logging.getLogger(__name__)

CONFIGURATIONS = ("Debug", "Release")
BUNDLE_EXTENSION = ".app"
# Info.plist locations inside a bundle, in lookup order (iOS style, then macOS).
INFO_PLIST_PATHS = ("Info.plist", os.path.join("Contents", "Info.plist"))


def _product_directories(products_dir: Path, platform: Platform, configuration: str) -> List[Path]:
    configurations = [configuration] + [c for c in CONFIGURATIONS if c != configuration]
    suffixes = []
    for suffix in (platform.products_suffix, platform.simulator_products_suffix):
        if suffix not in suffixes:
            suffixes.append(suffix)

    directories = []
    for config in configurations:
        for suffix in suffixes:
            directories.append(products_dir / f"{config}-{suffix}")
        if platform is Platform.MACOS:
            directories.append(products_dir / config)
    return directories


def find_built_product(products_dir: Path, scheme: str, platform: Platform,
                       configuration: str = "Debug") -> Optional[Path]:
    """
    Locate the built bundle by scanning the products tree.

    For each configuration/platform directory the ``<scheme>.app`` bundle is
    preferred, then any bundle in that directory; as a last resort the whole
    tree is searched for the first directory with the bundle extension.
    """
    products_dir = Path(products_dir)
    for directory in _product_directories(products_dir, platform, configuration):
        exact = directory / f"{scheme}{BUNDLE_EXTENSION}"
        if exact.is_dir():
            return exact
        if directory.is_dir():
            bundles = sorted(p for p in directory.iterdir() if p.suffix == BUNDLE_EXTENSION)
            if bundles:
                return bundles[0]

    if not products_dir.is_dir():
        return None
    for root, dirs, _files in os.walk(products_dir):
        dirs.sort()
        for name in dirs:
            if name.endswith(BUNDLE_EXTENSION):
                return Path(root) / name
    return None


def extract_bundle_id(app_path: Path) -> str:
    """
    Read ``CFBundleIdentifier`` from a bundle's Info.plist.

    Raises:
        BundleIdMissingError: If no Info.plist exists, it cannot be parsed,
            or it has no identifier.
    """
    app_path = Path(app_path)
    for relative in INFO_PLIST_PATHS:
        info_plist = app_path / relative
        if not info_plist.is_file():
            continue
        try:
            with open(info_plist, "rb") as f:
                document = plistlib.load(f)
        except (OSError, plistlib.InvalidFileException, ValueError, ExpatError) as e:
            raise BundleIdMissingError(detail=f"{info_plist}: {e}") from e
        bundle_id = document.get("CFBundleIdentifier") if isinstance(document, dict) else None
        if not isinstance(bundle_id, str) or not bundle_id:
            raise BundleIdMissingError(detail=f"{info_plist} has no CFBundleIdentifier")
        return bundle_id
    raise BundleIdMissingError(detail=f"No Info.plist found in {app_path}")
