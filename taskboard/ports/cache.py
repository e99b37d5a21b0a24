from typing import Protocol, Any


### COMMENTS
# Optional read-through cache for user lookups and the performance report.
# Keys: "user:<id>", "user:all", "report:performance".
# Services must behave the same when no cache is configured (cache=None).


class Cache(Protocol):
    def get(self, key: str) -> Any | None:
        """Returns the cached value or `None` on a miss or after expiry."""

    def set(self, key: str, value: Any) -> None:
        """Stores `value` under `key` for the adapter's TTL."""

    def invalidate(self, *keys: str) -> None:
        """Drops the given keys. Missing keys are ignored."""


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


USERS_ALL_KEY = "user:all"
PERFORMANCE_REPORT_KEY = "report:performance"
