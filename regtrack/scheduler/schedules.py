"""When a job is due, expressed against a tick's UTC time.

Schedules are stateless: ``is_due`` depends only on the time passed in,
so a missed tick is simply missed and never caught up.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timezone

WEEKDAY_NAMES = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)


def as_utc(now: datetime) -> datetime:
    """Normalize to UTC. Naive datetimes are taken to already be UTC."""
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def _check_hour(hour: int) -> int:
    if not 0 <= hour <= 23:
        raise ValueError(f"hour must be in 0..23, got {hour}")
    return hour


class Schedule(ABC):
    @abstractmethod
    def is_due(self, now: datetime) -> bool:
        """Whether a tick at ``now`` should run the job."""

    @abstractmethod
    def describe(self) -> str:
        """Fragment for skip messages, e.g. ``at 9:00 UTC``."""


class Always(Schedule):
    def is_due(self, now: datetime) -> bool:
        return True

    def describe(self) -> str:
        return "on every tick"


class DailyAt(Schedule):
    """Once a day, on the tick whose UTC hour matches."""

    def __init__(self, hour: int) -> None:
        self.hour = _check_hour(hour)

    def is_due(self, now: datetime) -> bool:
        return as_utc(now).hour == self.hour

    def describe(self) -> str:
        return f"at {self.hour}:00 UTC"


class WeeklyAt(Schedule):
    """Once a week. ``weekday`` follows ``datetime.weekday()`` (0 = Monday)."""

    def __init__(self, weekday: int, hour: int) -> None:
        if not 0 <= weekday <= 6:
            raise ValueError(f"weekday must be in 0..6, got {weekday}")
        self.weekday = weekday
        self.hour = _check_hour(hour)

    def is_due(self, now: datetime) -> bool:
        now = as_utc(now)
        return now.weekday() == self.weekday and now.hour == self.hour

    def describe(self) -> str:
        return f"on {WEEKDAY_NAMES[self.weekday]} at {self.hour}:00 UTC"


class HoursOfDay(Schedule):
    """On each listed UTC hour, e.g. (0, 6, 12, 18) for every six hours."""

    def __init__(self, hours: Iterable[int]) -> None:
        self.hours = tuple(sorted({_check_hour(h) for h in hours}))
        if not self.hours:
            raise ValueError("HoursOfDay needs at least one hour")

    def is_due(self, now: datetime) -> bool:
        return as_utc(now).hour in self.hours

    def describe(self) -> str:
        return f"at {', '.join(str(h) for h in self.hours)} UTC"
