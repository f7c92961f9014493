"""
Value validators for configuration settings.

Each validator returns the normalized value or raises ValidationError naming
the offending field.
"""

from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from .exceptions import ValidationError


def _validate_number(value: Any, cast: Callable[[Any], Any], kind: str,
                     min_value, max_value, field_name: str):
    # bool is an int subclass
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a valid {kind}, got {value}",
                              field_name=field_name, value=value)
    try:
        number = cast(value)
    except (ValueError, TypeError):
        raise ValidationError(f"{field_name} must be a valid {kind}, got {value}",
                              field_name=field_name, value=value)
    if number < min_value:
        raise ValidationError(f"{field_name} must be >= {min_value}, got {number}",
                              field_name=field_name, value=value)
    if max_value is not None and number > max_value:
        raise ValidationError(f"{field_name} must be <= {max_value}, got {number}",
                              field_name=field_name, value=value)
    return number


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate a whole number such as a queue size or an entry limit.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Raises:
        ValidationError: If the value is not an integer within bounds
    """
    return _validate_number(value, int, "integer", min_value, max_value, field_name)


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """Validate a duration or interval in seconds; see validate_positive_integer."""
    return _validate_number(value, float, "number", min_value, max_value, field_name)


def validate_enum_choice(
    value: Any,
    valid_choices: List[str],
    field_name: str = "value",
    case_sensitive: bool = True
) -> str:
    """
    Validate that a value is one of the allowed choices.

    Returns:
        The validated choice (normalized to the canonical spelling when
        ``case_sensitive`` is False)

    Raises:
        ValidationError: If the value is not an allowed choice
    """
    if not isinstance(value, str):
        raise ValidationError(
            f"{field_name} must be a string, got {type(value).__name__}",
            field_name=field_name,
            value=value
        )

    if case_sensitive:
        if value in valid_choices:
            return value
    else:
        for choice in valid_choices:
            if choice.lower() == value.lower():
                return choice

    raise ValidationError(
        f"{field_name} must be one of {valid_choices}, got '{value}'",
        field_name=field_name,
        value=value
    )


def validate_non_empty_string(value: Any, field_name: str = "value") -> str:
    """Validate that a value is a non-blank string and return it stripped."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=value
        )
    return value.strip()


def validate_boolean(value: Any, field_name: str = "value") -> bool:
    if not isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a boolean",
            field_name=field_name,
            value=value
        )
    return value


def validate_directory_path(value: Union[str, Path], field_name: str = "value") -> Path:
    """
    Validate a directory setting and expand ``~``.

    The directory does not have to exist yet; it only must not be an existing
    regular file.
    """
    if not isinstance(value, (str, Path)) or not str(value).strip():
        raise ValidationError(
            f"{field_name} must be a path string",
            field_name=field_name,
            value=value
        )
    path = Path(str(value).strip()).expanduser()
    if path.exists() and not path.is_dir():
        raise ValidationError(
            f"{field_name} points to a file, expected a directory: {path}",
            field_name=field_name,
            value=value
        )
    return path
