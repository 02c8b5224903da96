"""
Clock abstraction

Every service that needs "now" or "today" takes a Clock instead of calling
datetime.now() directly, so batch jobs can be driven through simulated days
in tests.

Usage:
    from studypulse.services.clock import SystemClock, FrozenClock

    clock = SystemClock(settings.local_tz)
    today = clock.today()  # civil date in the configured timezone

    clock = FrozenClock(datetime(2025, 3, 3, 9, tzinfo=timezone.utc), tz)
    clock.advance(days=1)
"""

from datetime import date, datetime, timedelta, timezone
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Source of the current instant and civil date."""

    tz: ZoneInfo

    def now(self) -> datetime:
        """Current instant, timezone-aware UTC."""
        ...

    def today(self) -> date:
        """Current civil date in the clock's timezone."""
        ...


class SystemClock:
    """Wall clock."""

    def __init__(self, tz: ZoneInfo):
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def local_now(self) -> datetime:
        return self.now().astimezone(self.tz)

    def today(self) -> date:
        return self.local_now().date()


class FrozenClock:
    """
    Clock pinned to a fixed instant that only moves when advanced.

    Used by tests and by manual backfills ("generate reminders as if it were
    2025-03-03").
    """

    def __init__(self, instant: datetime, tz: ZoneInfo):
        if instant.tzinfo is None:
            raise ValueError("FrozenClock requires a timezone-aware instant")
        self._instant = instant.astimezone(timezone.utc)
        self.tz = tz

    def now(self) -> datetime:
        return self._instant

    def local_now(self) -> datetime:
        return self._instant.astimezone(self.tz)

    def today(self) -> date:
        return self.local_now().date()

    def advance(self, **kwargs: float) -> None:
        """Move the clock forward, e.g. advance(days=1) or advance(hours=3)."""
        self._instant = self._instant + timedelta(**kwargs)

    def set(self, instant: datetime) -> None:
        self._instant = instant.astimezone(timezone.utc)
