from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    # timezone-aware UTC; SQLite hands these back naive, see as_utc()
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a stored datetime to aware UTC.

    SQLite drops tzinfo on the way back out, Postgres keeps it, so anything
    compared against utcnow() or serialized to clients goes through here.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
