"""Time helpers.

All timestamps stored by cronkeep are naive datetimes in UTC.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalise a datetime to naive UTC.

    Aware datetimes are converted to UTC; naive ones are assumed to
    already be UTC and returned unchanged.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
