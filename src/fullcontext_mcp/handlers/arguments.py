"""
Argument parsing shared by the tool handlers.

Tool arguments arrive as loosely typed JSON. These helpers pull out one value
each, apply the documented default, and raise INVALID_PARAMETER on anything
malformed so handlers never see a bad type.
"""

from typing import Any

from ..errors import ErrorKind, FileToolError

# Input validation constants
MAX_PATH_LENGTH = 4096
MAX_CONTENT_LENGTH = 10_000_000  # 10MB max for written content


def _invalid(message: str) -> FileToolError:
    return FileToolError(ErrorKind.INVALID_PARAMETER, message)


def validate_path(path: str) -> tuple[bool, str]:
    """
    Validate a file path argument.

    Returns:
        (is_valid, error_message) tuple
    """
    if not path:
        return False, "Empty path"

    if len(path) > MAX_PATH_LENGTH:
        return False, f"Path too long ({len(path)} > {MAX_PATH_LENGTH})"

    # Check for null bytes (path injection)
    if "\x00" in path:
        return False, "Path contains null bytes"

    return True, ""


def get_path(arguments: dict[str, Any], key: str = "file_path", required: bool = True) -> str | None:
    value = arguments.get(key)
    if value is None or value == "":
        if required:
            raise _invalid(f"{key} is required")
        return None
    if not isinstance(value, str):
        raise _invalid(f"{key} must be a string")

    is_valid, error = validate_path(value)
    if not is_valid:
        raise _invalid(f"{key}: {error}")
    return value


def get_str(
    arguments: dict[str, Any],
    key: str,
    default: str | None = None,
    required: bool = False,
    max_length: int = MAX_CONTENT_LENGTH,
) -> str | None:
    value = arguments.get(key)
    if value is None:
        if required:
            raise _invalid(f"{key} is required")
        return default
    if not isinstance(value, str):
        raise _invalid(f"{key} must be a string")
    if len(value) > max_length:
        raise _invalid(f"{key} too long ({len(value):,} > {max_length:,} chars)")
    return value


def get_int(
    arguments: dict[str, Any],
    key: str,
    default: int | None = None,
    required: bool = False,
) -> int | None:
    value = arguments.get(key)
    if value is None:
        if required:
            raise _invalid(f"{key} is required")
        return default
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise _invalid(f"{key} must be an integer")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise _invalid(f"{key} must be an integer, got {value!r}")
    return value


def get_bool(arguments: dict[str, Any], key: str, default: bool) -> bool:
    value = arguments.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise _invalid(f"{key} must be a boolean")
    return value
