"""Deterministic clock for tests."""

from datetime import UTC, datetime, timedelta

from beadsroute.gateway.time.abc import Time

DEFAULT_FAKE_TIME = datetime(2024, 1, 15, 14, 30, 0, tzinfo=UTC)


class FakeTime(Time):
    """Clock that only moves when told to."""

    def __init__(self, current_time: datetime | None = None) -> None:
        self._current_time = current_time if current_time is not None else DEFAULT_FAKE_TIME

    def now(self) -> datetime:
        return self._current_time

    def advance(self, seconds: float) -> None:
        """Move the clock forward."""
        self._current_time += timedelta(seconds=seconds)
