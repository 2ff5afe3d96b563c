"""
UTC helpers for relationship timestamps.

Edges are stamped with aware UTC datetimes. SQLite drops the offset on the
way back, so anything read from the store goes through ``ensure_utc`` before
it is serialised.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Aware current time in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Treat naive values as UTC; shift aware values to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso_utc(dt: datetime | None) -> str | None:
    """ISO 8601 in UTC with a ``Z`` suffix, e.g. ``2026-03-01T04:15:00Z``."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")
