# src/relaytrace/core/clock.py
"""Clock abstraction for testable timestamps.

Heartbeats, dedup entries, lag measurements and DLQ dwell times all read
the current time through a Clock so tests can pin it.

Production code uses SystemClock (the default).
Tests inject MockClock to control time advancement.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Abstract wall clock.

    Implementations:
    - SystemClock: Uses datetime.now(tz=UTC) (production)
    - MockClock: Returns controllable times (testing)
    """

    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...


class SystemClock:
    """Production clock backed by the system wall clock."""

    def now(self) -> datetime:
        return datetime.now(tz=UTC)


class MockClock:
    """Controllable clock for deterministic testing.

    Example:
        clock = MockClock(start=datetime(2026, 1, 1, tzinfo=UTC))
        tracker = ConsumerGroupTracker(config, clock=clock)

        ctx.record_heartbeat(healthy=True)  # Recorded at 2026-01-01T00:00:00
        clock.advance(5.0)
        ctx.record_heartbeat(healthy=True)  # Recorded 5 seconds later
    """

    def __init__(self, start: datetime | None = None) -> None:
        """Initialize mock clock at a given time.

        Args:
            start: Initial time (default 2026-01-01T00:00:00Z). Must be
                timezone-aware.

        Raises:
            ValueError: If start is naive.
        """
        if start is None:
            start = datetime(2026, 1, 1, tzinfo=UTC)
        if start.tzinfo is None:
            raise ValueError("MockClock start time must be timezone-aware")
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float) -> None:
        """Advance mock time by specified seconds.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += timedelta(seconds=seconds)

    def set(self, value: datetime) -> None:
        """Set mock time to an absolute value (may move backwards)."""
        self._current = value


DEFAULT_CLOCK: Clock = SystemClock()


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to integer epoch milliseconds for span attributes."""
    return int(value.timestamp() * 1000)
