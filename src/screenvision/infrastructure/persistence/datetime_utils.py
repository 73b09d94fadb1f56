"""Datetime helpers for values read back from SQLite."""

from datetime import datetime, timezone


def ensure_utc(dt: datetime) -> datetime:
    """Return an aware UTC datetime.

    SQLite drops tzinfo, so naive values are taken to be UTC already.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
