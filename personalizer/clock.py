"""Injectable wall clock, so temporal rules can be tested at fixed times."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Return the current site-local time."""


class SystemClock(Clock):
    """Real time expressed at a fixed UTC offset (the site's local time).

    Args:
        utc_offset_hours: Offset of the site's time zone from UTC.
    """

    def __init__(self, utc_offset_hours: int = 0) -> None:
        self._tz = timezone(timedelta(hours=utc_offset_hours))

    def now(self) -> datetime:
        return datetime.now(self._tz)


class FixedClock(Clock):
    """Always returns the same instant; :meth:`advance` moves it forward."""

    def __init__(self, moment: datetime) -> None:
        self._moment = moment

    def now(self) -> datetime:
        return self._moment

    def advance(self, **kwargs: float) -> None:
        self._moment = self._moment + timedelta(**kwargs)
