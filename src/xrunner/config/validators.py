"""
Configuration validation utilities.

Each section of ``config.toml`` has a validator that turns the raw TOML
table into its dataclass, filling defaults for missing keys.
"""

import logging
from typing import Any, Dict

from ..models.config import (
    AppConfig,
    BuildSettings,
    DeploySettings,
    GeneralConfig,
    PathsConfig,
    SchemeCacheSettings,
    ToolsConfig,
)
from ..validation import (
    ValidationError,
    validate_boolean,
    validate_directory_path,
    validate_enum_choice,
    validate_non_empty_string,
    validate_positive_float,
    validate_positive_integer,
)

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ValidationError(f"[{name}] must be a table", field_name=name, value=section)
    return section


def validate_general_config(data: Dict[str, Any]) -> GeneralConfig:
    defaults = GeneralConfig()
    log_level = validate_enum_choice(
        data.get("log_level", defaults.log_level),
        valid_choices=LOG_LEVELS,
        field_name="general.log_level",
        case_sensitive=False,
    )
    return GeneralConfig(log_level=log_level)


def validate_paths_config(data: Dict[str, Any]) -> PathsConfig:
    defaults = PathsConfig()
    return PathsConfig(
        cache_root=validate_directory_path(
            data.get("cache_root", defaults.cache_root), field_name="paths.cache_root"
        ),
        derived_data_root=validate_directory_path(
            data.get("derived_data_root", defaults.derived_data_root),
            field_name="paths.derived_data_root",
        ),
        state_dir=validate_directory_path(
            data.get("state_dir", defaults.state_dir), field_name="paths.state_dir"
        ),
    )


def validate_tools_config(data: Dict[str, Any]) -> ToolsConfig:
    defaults = ToolsConfig()
    return ToolsConfig(
        build_tool=validate_non_empty_string(
            data.get("build_tool", defaults.build_tool), field_name="tools.build_tool"
        ),
        device_tool=validate_non_empty_string(
            data.get("device_tool", defaults.device_tool), field_name="tools.device_tool"
        ),
        open_tool=validate_non_empty_string(
            data.get("open_tool", defaults.open_tool), field_name="tools.open_tool"
        ),
        log_tool=validate_non_empty_string(
            data.get("log_tool", defaults.log_tool), field_name="tools.log_tool"
        ),
    )


def validate_build_settings(data: Dict[str, Any]) -> BuildSettings:
    defaults = BuildSettings()
    return BuildSettings(
        default_configuration=validate_non_empty_string(
            data.get("default_configuration", defaults.default_configuration),
            field_name="build.default_configuration",
        ),
        disable_package_resolution_when_fresh=validate_boolean(
            data.get(
                "disable_package_resolution_when_fresh",
                defaults.disable_package_resolution_when_fresh,
            ),
            field_name="build.disable_package_resolution_when_fresh",
        ),
        stream_queue_size=validate_positive_integer(
            data.get("stream_queue_size", defaults.stream_queue_size),
            min_value=1,
            max_value=1_000_000,
            field_name="build.stream_queue_size",
        ),
        termination_timeout=validate_positive_float(
            data.get("termination_timeout", defaults.termination_timeout),
            min_value=0.1,
            max_value=120.0,
            field_name="build.termination_timeout",
        ),
    )


def validate_deploy_settings(data: Dict[str, Any]) -> DeploySettings:
    defaults = DeploySettings()
    return DeploySettings(
        boot_settle_seconds=validate_positive_float(
            data.get("boot_settle_seconds", defaults.boot_settle_seconds),
            min_value=0.0,
            max_value=120.0,
            field_name="deploy.boot_settle_seconds",
        ),
        viewer_settle_seconds=validate_positive_float(
            data.get("viewer_settle_seconds", defaults.viewer_settle_seconds),
            min_value=0.0,
            max_value=120.0,
            field_name="deploy.viewer_settle_seconds",
        ),
        lock_poll_interval=validate_positive_float(
            data.get("lock_poll_interval", defaults.lock_poll_interval),
            min_value=0.01,
            max_value=60.0,
            field_name="deploy.lock_poll_interval",
        ),
        unlock_timeout_seconds=validate_positive_float(
            data.get("unlock_timeout_seconds", defaults.unlock_timeout_seconds),
            min_value=0.0,
            field_name="deploy.unlock_timeout_seconds",
        ),
        simulator_app=validate_non_empty_string(
            data.get("simulator_app", defaults.simulator_app),
            field_name="deploy.simulator_app",
        ),
    )


def validate_scheme_cache_settings(data: Dict[str, Any]) -> SchemeCacheSettings:
    defaults = SchemeCacheSettings()
    return SchemeCacheSettings(
        max_entries=validate_positive_integer(
            data.get("max_entries", defaults.max_entries),
            min_value=1,
            max_value=10_000,
            field_name="scheme_cache.max_entries",
        ),
        fallback_ttl_seconds=validate_positive_float(
            data.get("fallback_ttl_seconds", defaults.fallback_ttl_seconds),
            min_value=0.0,
            field_name="scheme_cache.fallback_ttl_seconds",
        ),
        signature_tolerance_seconds=validate_positive_float(
            data.get("signature_tolerance_seconds", defaults.signature_tolerance_seconds),
            min_value=0.0,
            max_value=60.0,
            field_name="scheme_cache.signature_tolerance_seconds",
        ),
        suite_name=validate_non_empty_string(
            data.get("suite_name", defaults.suite_name),
            field_name="scheme_cache.suite_name",
        ),
    )


def validate_app_config(data: Dict[str, Any]) -> AppConfig:
    """
    Validate the whole configuration document.

    Args:
        data: Parsed TOML data (may be empty)

    Returns:
        Validated AppConfig instance

    Raises:
        ValidationError: If any value is invalid
    """
    return AppConfig(
        general=validate_general_config(_section(data, "general")),
        paths=validate_paths_config(_section(data, "paths")),
        tools=validate_tools_config(_section(data, "tools")),
        build=validate_build_settings(_section(data, "build")),
        deploy=validate_deploy_settings(_section(data, "deploy")),
        scheme_cache=validate_scheme_cache_settings(_section(data, "scheme_cache")),
    )
