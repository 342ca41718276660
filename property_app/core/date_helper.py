import math
from datetime import datetime, timezone


def utcnow() -> datetime:
    # Columns are stored as naive UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def minutes_between(start: datetime, end: datetime) -> int:
    return round((end - start).total_seconds() / 60)


def days_remaining(expires_at: datetime, now: datetime | None = None) -> int:
    now = now or utcnow()
    return math.ceil((expires_at - now).total_seconds() / 86400)
