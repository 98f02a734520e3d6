"""Injectable wall-clock.

Access windows and remaining-day counts depend on "now". Services take a
``Clock`` instead of calling ``datetime.now`` so that every computation is
reproducible in tests.
"""

from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    """Source of the current UTC time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(UTC)


_system_clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock."""
    return _system_clock
