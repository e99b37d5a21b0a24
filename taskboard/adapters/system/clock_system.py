from taskboard.ports.clock import Clock
from datetime import datetime, timezone


class SystemClock(Clock):
    """System adapter returning the current UTC time."""

    def now(self) -> datetime:
        """Returns the current time as an aware UTC datetime."""
        return datetime.now(timezone.utc)
