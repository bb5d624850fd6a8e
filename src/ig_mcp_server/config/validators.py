"""Custom Pydantic validators for configuration.

This module provides validators for cross-field validation and
custom type conversions.
"""

from pathlib import Path


def validate_log_level(value: str) -> str:
    """Validate log level is one of the standard levels.

    ``warn`` is accepted as an alias for ``WARNING``.

    Args:
        value: Log level string.

    Returns:
        Validated log level.

    Raises:
        ValueError: If log level is not valid.
    """
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    level = value.upper()
    if level == "WARN":
        level = "WARNING"
    if level not in valid_levels:
        raise ValueError(f"log_level must be one of {valid_levels}, got {value}")
    return level


def validate_log_format(value: str) -> str:
    """Validate log format is 'json' or 'console'.

    Args:
        value: Log format string.

    Returns:
        Validated log format.

    Raises:
        ValueError: If log format is not valid.
    """
    valid_formats = {"json", "console"}
    if value.lower() not in valid_formats:
        raise ValueError(f"log_format must be one of {valid_formats}, got {value}")
    return value.lower()


def split_csv(value: str | list[str] | None) -> list[str]:
    """Split a comma-separated string into a list of trimmed, non-empty items.

    Args:
        value: Comma-separated string, an existing list, or None.

    Returns:
        List of items with blanks dropped.
    """
    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else value
    return [item.strip() for item in items if item and item.strip()]


def resolve_path(value: Path | str) -> Path:
    """Expand ``~`` and resolve a path to an absolute one.

    Args:
        value: Path value (can be string or Path).

    Returns:
        Resolved Path object.
    """
    path = Path(value) if isinstance(value, str) else value
    return path.expanduser().resolve()
