from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize naive values (SQLite hands them back without tzinfo) to UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def has_passed(moment: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if moment is None:
        return False
    return as_utc(moment) <= as_utc(now or utcnow())
