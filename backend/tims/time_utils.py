from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

# Timestamps are stored as naive datetimes that are implicitly UTC. Anything
# timezone-aware is converted on the way in; API output always ends in "Z".


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2026-11-01", "2026-11-01T09:30", "2026-11-01T09:30:00Z" and
    "2026-11-01T09:30:00+02:00" all parse; offsets are folded into UTC.
    Blank input gives None, garbage raises ValueError.
    """
    if value is None or not value.strip():
        return None

    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """2026-11-01T07:30:00Z (second precision), or None."""
    if dt is None:
        return None
    return _naive_utc(dt).replace(microsecond=0).isoformat() + "Z"
