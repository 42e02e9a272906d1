from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt


def to_millis(dt: Optional[datetime]) -> Optional[int]:
    """Documents keep instants as epoch milliseconds."""
    if dt is None:
        return None
    ensure_aware(dt)
    return int(round(dt.timestamp() * 1000))


def from_millis(ms: Optional[float], tz=timezone.utc) -> Optional[datetime]:
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=tz)
