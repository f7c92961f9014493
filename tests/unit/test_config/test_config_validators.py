"""
Unit tests for configuration validation functionality.

Tests the per-section validators that turn TOML tables into configuration
dataclasses, the default filling for missing keys and error reporting.
"""

from pathlib import Path

import pytest

from xrunner.config.validators import (
    validate_app_config,
    validate_build_settings,
    validate_deploy_settings,
    validate_general_config,
    validate_paths_config,
)
from xrunner.models.config import AppConfig
from xrunner.validation import (
    ValidationError,
    validate_boolean,
    validate_directory_path,
    validate_enum_choice,
    validate_positive_float,
    validate_positive_integer,
)


@pytest.mark.unit
class TestAppConfigValidation:
    """Test cases for whole-document validation."""

    def test_empty_document_yields_defaults(self):
        """An empty document produces the built-in defaults."""
        config = validate_app_config({})

        assert config == AppConfig(paths=config.paths)
        assert config.tools.build_tool == "/usr/bin/xcodebuild"
        assert config.deploy.unlock_timeout_seconds == 300.0
        assert config.scheme_cache.max_entries == 50

    def test_sample_config(self, sample_config_data, temp_dir):
        """Every section of the sample data is applied."""
        config = validate_app_config(sample_config_data)

        assert config.general.log_level == "DEBUG"
        assert config.paths.cache_root == temp_dir / "cache"
        assert config.build.stream_queue_size == 64
        assert config.deploy.lock_poll_interval == 0.01
        assert config.deploy.unlock_timeout_seconds == 0.0
        assert config.scheme_cache.max_entries == 10
        # Keys absent from the sample keep their defaults.
        assert config.tools.open_tool == "/usr/bin/open"

    def test_section_must_be_table(self):
        """A section given as a scalar is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            validate_app_config({"build": "fast"})

        assert exc_info.value.field_name == "build"


@pytest.mark.unit
class TestSectionValidation:
    """Test cases for individual sections."""

    def test_invalid_log_level(self):
        """Unknown log levels are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            validate_general_config({"log_level": "chatty"})

        assert "general.log_level" in str(exc_info.value)

    def test_paths_expand_home(self):
        """Home-relative paths are expanded."""
        config = validate_paths_config({"state_dir": "~/xrunner-state"})
        assert config.state_dir == Path.home() / "xrunner-state"

    def test_path_pointing_to_file(self, temp_dir, test_utils):
        """A directory setting naming an existing file is rejected."""
        blocker = test_utils.touch(temp_dir / "file")
        with pytest.raises(ValidationError, match="paths.cache_root"):
            validate_paths_config({"cache_root": str(blocker)})

    def test_queue_size_must_be_positive(self):
        """A zero queue size is rejected."""
        with pytest.raises(ValidationError, match="build.stream_queue_size"):
            validate_build_settings({"stream_queue_size": 0})

    def test_package_resolution_flag_must_be_boolean(self):
        """The resolution flag does not accept strings."""
        with pytest.raises(ValidationError):
            validate_build_settings({"disable_package_resolution_when_fresh": "yes"})

    def test_zero_unlock_timeout_allowed(self):
        """A zero unlock timeout means poll without bound."""
        settings = validate_deploy_settings({"unlock_timeout_seconds": 0})
        assert settings.unlock_timeout_seconds == 0.0

    def test_poll_interval_lower_bound(self):
        """The lock poll interval cannot be zero."""
        with pytest.raises(ValidationError, match="deploy.lock_poll_interval"):
            validate_deploy_settings({"lock_poll_interval": 0})


@pytest.mark.unit
class TestValueValidators:
    """Test cases for the generic value validators."""

    def test_integer_rejects_booleans(self):
        """Booleans are not accepted as integers."""
        with pytest.raises(ValidationError):
            validate_positive_integer(True)

    def test_integer_bounds(self):
        """Integers outside the bounds are rejected."""
        assert validate_positive_integer("5", max_value=10) == 5
        with pytest.raises(ValidationError):
            validate_positive_integer(11, max_value=10)

    def test_float_conversion(self):
        """Numeric strings convert to floats."""
        assert validate_positive_float("1.5") == 1.5
        with pytest.raises(ValidationError):
            validate_positive_float("abc")

    def test_enum_canonical_spelling(self):
        """Case-insensitive matching returns the canonical choice."""
        assert validate_enum_choice("warning", ["DEBUG", "WARNING"], case_sensitive=False) == "WARNING"
        with pytest.raises(ValidationError):
            validate_enum_choice("warning", ["DEBUG", "WARNING"])

    def test_boolean(self):
        """Only real booleans pass."""
        assert validate_boolean(False) is False
        with pytest.raises(ValidationError):
            validate_boolean(0)

    def test_directory_path_may_not_exist(self, temp_dir):
        """A directory that does not exist yet is accepted."""
        assert validate_directory_path(str(temp_dir / "later")) == temp_dir / "later"
