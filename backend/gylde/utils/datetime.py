"""Time utilities with timezone-aware defaults."""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return current UTC time with tzinfo."""
    return datetime.now(timezone.utc)


def utc_today(now: Optional[datetime] = None) -> str:
    """
    Return the current UTC calendar day as an ISO date string.

    Daily counters are keyed by this value, so the day rolls over at UTC midnight.
    """
    moment = now or utc_now()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).date().isoformat()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as some drivers return them) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def from_unix(timestamp: Optional[int]) -> Optional[datetime]:
    """Convert a provider epoch timestamp into an aware UTC datetime."""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


__all__ = ["utc_now", "utc_today", "as_utc", "from_unix"]
