"""Time helpers for moving between aware UTC datetimes and database values."""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""

    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Interpret a stored datetime as UTC.

    Database columns hold naive UTC values; aware values are converted.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_db(value: datetime | None) -> datetime | None:
    """Return a naive UTC datetime suitable for storing in a DateTime column."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def format_iso(value: datetime | None) -> str | None:
    """Format a stored datetime as an ISO-8601 string with a ``Z`` suffix."""

    aware = as_utc(value)
    if aware is None:
        return None
    return aware.replace(tzinfo=None).isoformat() + "Z"
