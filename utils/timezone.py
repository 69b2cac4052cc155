"""UTC-everywhere time handling. Eliminates timezone bugs at the source."""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def from_timestamp(seconds: int | float) -> datetime:
    """Convert a POSIX timestamp (e.g. a JWT exp claim) to a UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def seconds_until(moment: datetime) -> int:
    """
    Whole seconds from now until moment. Negative if moment is in the past.

    Raises ValueError if datetime is naive (no timezone).
    """
    if moment.tzinfo is None:
        raise ValueError(
            "Cannot compare naive datetime. Datetime must be timezone-aware."
        )
    return int((moment - now_utc()).total_seconds())
