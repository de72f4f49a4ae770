"""Lenient parsing of raw query string values."""


def int_or_default(value: str | None, default: int) -> int:
    """Parse an integer query value, falling back to ``default`` when absent or malformed."""
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def float_or_default(value: str | None, default: float) -> float:
    """Parse a float query value, falling back to ``default`` when absent or malformed.

    Non-finite values such as ``nan`` are returned as-is; range validation rejects them.
    """
    if value is None or not value.strip():
        return default
    try:
        return float(value.strip())
    except ValueError:
        return default
