"""Time abstraction for testable timestamps."""

from abc import ABC, abstractmethod
from datetime import datetime


class Time(ABC):
    """Abstract clock.

    The in-memory beads fake reads timestamps through this interface so
    tests can pin created_at/updated_at values.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""
        ...
