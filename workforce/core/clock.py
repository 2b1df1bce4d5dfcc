"""
Clock - injectable time source.

Services that need "now" (month completion, eligibility, cancellation
cut-off) receive a Clock instead of calling ``datetime.now()``, so tests can
evaluate any instant.

Times are naive datetimes in the business timezone (``settings.timezone``),
matching how shift dates and schedules are stored.
"""
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from workforce.core.config import settings


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current business-local time (naive)."""
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Production clock backed by the system time in the configured zone."""

    def __init__(self, tz_name: str | None = None):
        self._tz = ZoneInfo(tz_name or settings.timezone)

    def now(self) -> datetime:
        return datetime.now(self._tz).replace(tzinfo=None)


class FixedClock(Clock):
    """Test clock pinned to a given instant until moved."""

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(2025, 1, 1, 9, 0, 0)

    def now(self) -> datetime:
        return self._fixed_time

    def set_time(self, time: datetime) -> None:
        self._fixed_time = time

    def advance(self, **kwargs) -> None:
        self._fixed_time = self._fixed_time + timedelta(**kwargs)
