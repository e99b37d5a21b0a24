from typing import Protocol
from datetime import datetime


class Clock(Protocol):
    """Time source. Returns aware UTC datetimes."""
    def now(self) -> datetime:
        pass
