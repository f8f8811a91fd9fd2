"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def utc_timestamp() -> int:
    """Return the current unix time in whole seconds."""
    return int(utc_now().timestamp())
