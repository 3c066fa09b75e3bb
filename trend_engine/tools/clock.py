"""
Injectable time source.

Everything that depends on "now" (time decay, cache expiry, analysis
timestamps) reads it from a Clock so tests can pin and advance time.
All datetimes are UTC-aware.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        ...

    def timestamp(self) -> float:
        return self.now().timestamp()


class SystemClock(Clock):
    """Production clock. Always UTC-aware."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Test clock that only moves when told to."""

    def __init__(self, start: datetime):
        if start.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, delta: timedelta) -> None:
        self._current += delta
