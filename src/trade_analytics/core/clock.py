"""Time sources for replay timestamps and sampling day buckets.

``ReplaySimulator`` stamps ``Replay.created_at`` from a clock and
``SamplingPolicy`` buckets its daily counters by ``clock.now().date()``.
Services run on ``WallClock``; tests and historical backfills drive a
``SimClock`` by hand, e.g. ``advance(days=1)`` to start a new sampling day.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol

DEFAULT_SIM_START = datetime(2024, 1, 1, tzinfo=timezone.utc)


class IClock(Protocol):
    def now(self) -> datetime:
        """Current time, timezone-aware."""
        ...


class WallClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class SimClock:
    """Manually driven clock.  Only moves forward."""

    def __init__(self, start: datetime | None = None) -> None:
        if start is not None and start.tzinfo is None:
            raise ValueError("SimClock start must be timezone-aware")
        self._now = start or DEFAULT_SIM_START

    def now(self) -> datetime:
        return self._now

    def set_time(self, moment: datetime) -> None:
        if moment < self._now:
            raise ValueError(
                f"SimClock cannot go backwards: "
                f"{moment.isoformat()} < {self._now.isoformat()}"
            )
        self._now = moment

    def advance(self, **delta: float) -> None:
        """Move forward by ``timedelta(**delta)``."""
        self.set_time(self._now + timedelta(**delta))
