"""
Time sources.

Every calculation that depends on "now" receives it from a Clock so the
engine can be replayed deterministically (tests, or catching up after the
app was closed for days).
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and normalize aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(Protocol):
    """Anything that can tell the current instant."""
    
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock time in UTC."""
    
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    A clock that only moves when told to.
    
    Usage:
        clock = FixedClock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        clock.advance(days=30)
    """
    
    def __init__(self, instant: datetime):
        self._instant = ensure_utc(instant)
    
    def now(self) -> datetime:
        return self._instant
    
    def set(self, instant: datetime) -> None:
        self._instant = ensure_utc(instant)
    
    def advance(self, **delta: float) -> datetime:
        """Move forward by a timedelta expressed as keyword arguments."""
        self._instant = self._instant + timedelta(**delta)
        return self._instant
