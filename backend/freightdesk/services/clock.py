"""
Time provider used for manifest numbering and default delivery dates.
"""
from dataclasses import dataclass
from datetime import date, datetime


class Clock:
    """Current time source. Handlers receive it as a dependency so tests can pin it."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return self.now().date()


@dataclass
class FixedClock(Clock):
    moment: datetime

    def now(self) -> datetime:
        return self.moment


_SYSTEM_CLOCK = Clock()


def get_clock() -> Clock:
    """Dependency for the request clock."""
    return _SYSTEM_CLOCK
