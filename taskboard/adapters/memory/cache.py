import threading
import time
from typing import Any, Callable


class InMemoryCache:
    """
    Process-local TTL cache implementing the `Cache` port.

    :param ttl_seconds: Lifetime of an entry; `None` keeps entries until invalidated.
    :param timer: Monotonic time source in seconds (replaceable in tests).
    """
    def __init__(self, ttl_seconds: float | None = 60.0, timer: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._timer = timer
        self._data: dict[str, tuple[float | None, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at is not None and self._timer() >= expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        expires_at = None if self.ttl_seconds is None else self._timer() + self.ttl_seconds
        with self._lock:
            self._data[key] = (expires_at, value)

    def invalidate(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)
