from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_utc_z(dt: datetime) -> str:
    """ISO-8601 with millisecond precision and a ``Z`` suffix (``2026-01-13T12:00:00.000Z``)."""
    return ensure_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return format_utc_z(utc_now())
