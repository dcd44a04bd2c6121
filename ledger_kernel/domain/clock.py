"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock so that engines and services never call
    ``datetime.now()`` or ``date.today()`` directly.  "Today" drives bucket
    windows, due classification and forecast situations, so every caller
    must agree on it for the duration of one request.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).

Failure modes:
    (none)
"""

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, time, timedelta


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        All services that need current time receive a Clock instance via
        constructor injection.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``today()`` returns the calendar date of ``now()`` as written in
          the clock's own timezone (no conversion).
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    def today(self) -> date:
        """Get the current calendar date."""
        return self.now().date()


class SystemClock(Clock):
    """
    Production clock that returns actual system time.

    Args:
        tz: Timezone the operator works in.  Defaults to the local zone of
            the host, so "today" matches the operator's wall calendar.
    """

    def __init__(self, tz=None):
        self._tz = tz

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now(UTC).astimezone()
        return datetime.now(self._tz)


class DeterministicClock(Clock):
    """
    Test clock pinned to one instant until moved with ``advance``.

    A bare ``date`` pins the clock at noon UTC of that day, far from either
    midnight, so ``today()`` is the given date whatever the test does.
    """

    DEFAULT = datetime(2025, 1, 15, 12, tzinfo=UTC)

    def __init__(self, fixed: datetime | date | None = None):
        if fixed is None:
            fixed = self.DEFAULT
        elif not isinstance(fixed, datetime):
            fixed = datetime.combine(fixed, time(12), tzinfo=UTC)
        self._now = fixed

    def now(self) -> datetime:
        return self._now

    def advance(self, **delta: float) -> None:
        """Move the clock forward, e.g. ``advance(hours=3)``."""
        self._now += timedelta(**delta)

    def advance_days(self, days: int) -> None:
        self.advance(days=days)
