# app/utils/time_utils.py
"""
UTC helpers.
The API accepts offset-aware ISO-8601 timestamps; the database stores naive
UTC. Naive datetimes are always interpreted as UTC.
"""

from datetime import datetime, timezone


def as_utc(value: datetime) -> datetime:
    """Return an offset-aware UTC datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db(value):
    """Naive UTC for storage; passes None through."""
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
