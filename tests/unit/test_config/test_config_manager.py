"""
Unit tests for the configuration singleton and file loading.
"""

import tomllib

import pytest

from xrunner.config import (
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    load_toml_file,
    set_config_path,
)
from xrunner.validation import ValidationError


@pytest.mark.unit
class TestConfigManager:
    """Test cases for get_config and its cache."""

    def test_loads_configured_file(self, config_files, temp_dir):
        """The file set with set_config_path is loaded and validated."""
        set_config_path(config_files["config"])

        config = get_config()

        assert config.general.log_level == "DEBUG"
        assert config.paths.state_dir == temp_dir / "state"
        assert is_config_loaded()

    def test_config_is_cached(self, config_files):
        """Repeated calls return the same instance until the cache is cleared."""
        set_config_path(config_files["config"])

        first = get_config()
        assert get_config() is first

        clear_config_cache()
        assert not is_config_loaded()
        assert get_config() is not first

    def test_explicit_missing_file_is_an_error(self, temp_dir):
        """A missing file at an explicitly configured path raises."""
        set_config_path(temp_dir / "missing.toml")

        with pytest.raises(FileNotFoundError):
            get_config()

    def test_malformed_file(self, temp_dir):
        """Malformed TOML is reported as a decode error."""
        bad = temp_dir / "bad.toml"
        bad.write_text("[general\nlog_level = ")
        set_config_path(bad)

        with pytest.raises(tomllib.TOMLDecodeError):
            get_config()

    def test_invalid_value(self, temp_dir):
        """Invalid values surface as ValidationError."""
        path = temp_dir / "invalid.toml"
        path.write_text('[build]\nstream_queue_size = -3\n')
        set_config_path(path)

        with pytest.raises(ValidationError):
            get_config()

    def test_config_info(self, config_files):
        """get_config_info reports the load state."""
        set_config_path(config_files["config"])
        assert get_config_info()["config_loaded"] is False

        get_config()
        info = get_config_info()

        assert info["config_loaded"] is True
        assert info["config_path"] == str(config_files["config"])
        assert info["build_tool"] == "/usr/bin/xcodebuild"


@pytest.mark.unit
def test_load_toml_file_missing(temp_dir):
    """load_toml_file raises FileNotFoundError for a missing file."""
    with pytest.raises(FileNotFoundError, match="settings not found"):
        load_toml_file(temp_dir / "nope.toml", "settings")
