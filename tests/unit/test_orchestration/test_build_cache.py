"""
Unit tests for build cache resolution and corruption detection.
"""

import os
import plistlib

import pytest

from xrunner.models.build import CacheProvenance
from xrunner.orchestration import BuildCacheResolver, fnv1a_64, is_cache_corrupted
from xrunner.orchestration.build_cache import fallback_cache_path, find_native_cache


def write_metadata(cache_dir, workspace_path):
    cache_dir.mkdir(parents=True, exist_ok=True)
    with open(cache_dir / "info.plist", "wb") as f:
        plistlib.dump({"WorkspacePath": str(workspace_path), "LastAccessedDate": "today"}, f)


@pytest.mark.unit
class TestHash:
    """Test cases for the cache directory hash."""

    @pytest.mark.parametrize(
        "text, digest",
        [
            ("", "cbf29ce484222325"),
            ("a", "af63dc4c8601ec8c"),
            ("foobar", "85944171f73967e8"),
        ],
    )
    def test_known_vectors(self, text, digest):
        assert fnv1a_64(text) == digest

    def test_fallback_path_is_deterministic(self, temp_dir):
        project = temp_dir / "App.xcodeproj"
        first = fallback_cache_path(temp_dir / "cache", project)
        second = fallback_cache_path(temp_dir / "cache", project)

        assert first == second
        assert first.name == f"App-{fnv1a_64(str(project.absolute()))}"


@pytest.mark.unit
class TestCorruption:
    """Test cases for is_cache_corrupted."""

    def test_missing_directory_is_not_corrupted(self, temp_dir):
        assert not is_cache_corrupted(temp_dir / "nope")

    def test_plain_file_is_corrupted(self, temp_dir, test_utils):
        assert is_cache_corrupted(test_utils.touch(temp_dir / "cache"))

    def test_package_dir_as_file_is_corrupted(self, temp_dir, test_utils):
        test_utils.touch(temp_dir / "cache" / "SourcePackages")
        assert is_cache_corrupted(temp_dir / "cache")

    def test_invalid_manifest_is_corrupted(self, temp_dir, test_utils):
        test_utils.touch(temp_dir / "cache" / "SourcePackages" / "workspace-state.json", content="{broken")
        assert is_cache_corrupted(temp_dir / "cache")

    def test_valid_manifest(self, temp_dir, test_utils):
        test_utils.touch(temp_dir / "cache" / "SourcePackages" / "workspace-state.json", content='{"version": 6}')
        assert not is_cache_corrupted(temp_dir / "cache")

    def test_missing_manifest_is_fine(self, temp_dir):
        (temp_dir / "cache" / "SourcePackages").mkdir(parents=True)
        assert not is_cache_corrupted(temp_dir / "cache")


@pytest.mark.unit
class TestResolver:
    """Test cases for BuildCacheResolver."""

    def test_fallback_created_when_no_native_cache(self, temp_dir):
        resolver = BuildCacheResolver(temp_dir / "cache", temp_dir / "DerivedData")
        location = resolver.resolve(temp_dir / "App.xcodeproj")

        assert location.provenance is CacheProvenance.FALLBACK
        assert location.path.is_dir()
        assert location.path.parent == temp_dir / "cache"
        assert not location.reset

    def test_native_cache_reused(self, temp_dir):
        project = temp_dir / "App.xcodeproj"
        native = temp_dir / "DerivedData" / "App-abcdefghijkl"
        write_metadata(native, project)
        write_metadata(temp_dir / "DerivedData" / "App-other", temp_dir / "elsewhere" / "App.xcodeproj")

        location = BuildCacheResolver(temp_dir / "cache", temp_dir / "DerivedData").resolve(project)

        assert location.provenance is CacheProvenance.NATIVE
        assert location.path == native
        assert location.products_dir == native / "Build" / "Products"

    def test_newest_native_match_wins(self, temp_dir):
        project = temp_dir / "App.xcodeproj"
        old = temp_dir / "DerivedData" / "App-old"
        new = temp_dir / "DerivedData" / "App-new"
        write_metadata(old, project)
        write_metadata(new, project)
        os.utime(old, (100.0, 100.0))
        os.utime(new, (200.0, 200.0))

        assert find_native_cache(temp_dir / "DerivedData", project) == new

    def test_unparseable_metadata_matched_by_raw_text(self, temp_dir, test_utils):
        project = temp_dir / "App.xcodeproj"
        native = temp_dir / "DerivedData" / "App-raw"
        test_utils.touch(native / "info.plist", content=f"garbage {project.absolute()} garbage")

        assert find_native_cache(temp_dir / "DerivedData", project) == native

    def test_corrupted_native_cache_falls_back_with_advisory(self, temp_dir, test_utils):
        project = temp_dir / "App.xcodeproj"
        native = temp_dir / "DerivedData" / "App-abc"
        write_metadata(native, project)
        test_utils.touch(native / "SourcePackages" / "workspace-state.json", content="not json")
        advisories = []

        location = BuildCacheResolver(temp_dir / "cache", temp_dir / "DerivedData").resolve(
            project, on_advisory=advisories.append
        )

        assert location.provenance is CacheProvenance.FALLBACK
        assert len(advisories) == 1
        assert "App-abc" in advisories[0]
        # The toolchain's directory is left alone.
        assert native.is_dir()

    def test_corrupted_fallback_is_reset(self, temp_dir, test_utils):
        project = temp_dir / "App.xcodeproj"
        fallback = fallback_cache_path(temp_dir / "cache", project)
        test_utils.touch(fallback / "SourcePackages" / "workspace-state.json", content="{")
        test_utils.touch(fallback / "Build" / "stale.o")

        location = BuildCacheResolver(temp_dir / "cache").resolve(project)

        assert location.path == fallback
        assert location.reset
        assert location.path.is_dir()
        assert not (fallback / "Build" / "stale.o").exists()
