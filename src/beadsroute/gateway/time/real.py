"""Production clock backed by the system wall clock."""

from datetime import UTC, datetime

from beadsroute.gateway.time.abc import Time


class RealTime(Time):
    """Wall-clock implementation of Time."""

    def now(self) -> datetime:
        return datetime.now(UTC)
