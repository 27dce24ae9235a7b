# inkgest/utils/timezone.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

UTC = timezone.utc


def utcnow() -> datetime:
    return datetime.now(UTC)


def to_utc_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC (SQLite drops tzinfo on the way back)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_local(dt: datetime, tz_name: Optional[str], default: str = "Europe/Madrid") -> datetime:
    try:
        tz = ZoneInfo(tz_name or default)
    except (KeyError, ValueError):
        tz = ZoneInfo(default)
    return to_utc_aware(dt).astimezone(tz)
