"""Time helpers"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time in UTC (patched in tests)"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps read back from SQLite"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
