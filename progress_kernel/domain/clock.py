"""
Injected time source for services.

Template rows carry ``last_updated`` and change records carry ``changed_at``;
both come from a Clock handed to the service, never from ``datetime.now()``
inside service code.  Optimistic concurrency compares these stamps, so tests
pin them with DeterministicClock.

``to_utc`` normalizes stamps read back from the database: SQLite returns
naive values for columns written as UTC.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware current time."""

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Repeated ``now()`` calls return the same instant.  ``advance`` and
    ``tick`` move it forward by whole seconds; ``set_time`` jumps to an
    absolute instant.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        self.advance()
        return self._current


def to_utc(value: datetime) -> datetime:
    """Aware UTC form of ``value``; naive input is taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
