"""Single internal time type: aware UTC datetimes.

Timestamps arrive as naive datetimes (SQLite drops tzinfo), aware datetimes
(PostgreSQL), epoch seconds, ISO strings or {"seconds": ...} mappings from
exported document-store data. Convert at the edge with as_utc().
"""
from datetime import datetime, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value) -> datetime:
    if value is None:
        return EPOCH
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, bool):
        return EPOCH
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
            return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
        return EPOCH
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return EPOCH
    return EPOCH


def isoformat(value) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat()
