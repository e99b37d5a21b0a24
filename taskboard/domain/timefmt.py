from datetime import datetime, timezone


def encode_utc(dt: datetime) -> str:
    """ISO 8601 in UTC with a 'Z' suffix, e.g. 2025-01-01T12:00:00Z."""
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_utc(value: str | datetime) -> datetime:
    """Parses an ISO 8601 string (or passes a datetime through) into an aware UTC datetime.

    Naive values are taken as UTC. Raises ValueError for malformed text.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("expected an ISO 8601 date/time")
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
