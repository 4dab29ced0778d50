# tenant_storage/users/storage_limit.py
"""
Parsing of human-entered storage limits ("10gb", "500mb", "1024").
"""
import re

DEFAULT_STORAGE_LIMIT_BYTES = 1024 ** 3

# Returned for anything unparseable. Callers must reject it, never default it.
INVALID_STORAGE_LIMIT = -1

_MULTIPLIERS = {
    "kb": 1024,
    "mb": 1024 ** 2,
    "gb": 1024 ** 3,
}
_DIGITS = re.compile(r"^[0-9]+$")


def parse_storage_limit(token: str) -> int:
    """
    Parse a storage limit token into bytes.

    A bare integer is a byte count; a ``kb``/``mb``/``gb`` suffix (any case)
    multiplies by 1024, 1024^2 or 1024^3.

    Returns:
        Number of bytes, or INVALID_STORAGE_LIMIT if the token is blank,
        has an unknown suffix or a non-numeric magnitude
    """
    if token is None:
        return INVALID_STORAGE_LIMIT

    value = str(token).strip().lower()
    if not value:
        return INVALID_STORAGE_LIMIT

    multiplier = 1
    suffix = value[-2:]
    if suffix in _MULTIPLIERS:
        multiplier = _MULTIPLIERS[suffix]
        value = value[:-2].strip()

    if not _DIGITS.match(value):
        return INVALID_STORAGE_LIMIT

    return int(value) * multiplier


def format_bytes(size: int) -> str:
    """Format a byte count for display, e.g. ``1.5 KB`` or ``10 GB``."""
    units = ["B", "KB", "MB", "GB", "TB"]
    order = 0
    value = float(size)

    while value >= 1024 and order < len(units) - 1:
        order += 1
        value /= 1024

    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[order]}"
