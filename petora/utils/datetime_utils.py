# petora/utils/datetime_utils.py
"""
UTC handling for values that cross the Firestore boundary.

Documents are written with aware UTC datetimes and read back the same way,
whatever Firestore hands us (DatetimeWithNanoseconds, naive datetimes or
``date`` objects written by older clients).
"""
from datetime import date, datetime, time, timezone
from typing import Any, Callable


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso_z(value: datetime) -> str:
    """``2024-01-15T10:30:00Z`` form used in JSON and SSE payloads."""
    return as_utc(value).isoformat().replace('+00:00', 'Z')


def _walk(obj: Any, convert: Callable[[Any], Any]) -> Any:
    if isinstance(obj, dict):
        return {key: _walk(value, convert) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_walk(item, convert) for item in obj]
    return convert(obj)


def _outgoing(value: Any) -> Any:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    return value


def _incoming(value: Any) -> Any:
    if isinstance(value, datetime):
        return as_utc(value)
    return value


def for_firestore(obj: Any) -> Any:
    """Recursively converts dates and datetimes in ``obj`` to aware UTC datetimes."""
    return _walk(obj, _outgoing)


def from_firestore(obj: Any) -> Any:
    return _walk(obj, _incoming)
