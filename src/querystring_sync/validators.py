"""
Input validation functions for querystring_sync.

Provides validation for query parameter names and prefixes so that bad
configuration is rejected before any URL is touched.
"""

# Characters that delimit the query string itself.
RESERVED_CHARS = frozenset("&=#?+ ")


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Parameter key")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def _reserved_in(text: str) -> list[str]:
    return sorted({ch for ch in text if ch in RESERVED_CHARS or ch.isspace()})


def validate_param_key(key: str) -> tuple[bool, str]:
    """
    Validate the query parameter name used in namespaced mode.

    Args:
        key: The parameter name to validate

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty
        - Cannot contain query string delimiters or whitespace
    """
    if not key:
        return (
            False,
            format_validation_error("Parameter key", "cannot be empty"),
        )

    reserved = _reserved_in(key)
    if reserved:
        return (
            False,
            format_validation_error(
                "Parameter key", f"cannot contain {reserved!r}"
            ),
        )

    return (True, "")


def validate_prefix(prefix: str) -> tuple[bool, str]:
    """
    Validate the parameter prefix used in standalone mode.

    An empty prefix is valid.

    Returns:
        Tuple of (is_valid, error_message).
    """
    reserved = _reserved_in(prefix)
    if reserved:
        return (
            False,
            format_validation_error("Prefix", f"cannot contain {reserved!r}"),
        )

    return (True, "")
