"""Date and time arithmetic shared by the engine"""

from datetime import date, datetime, time, timezone
from typing import Optional, Union

SECONDS_PER_HOUR = 3600


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Union[date, datetime]) -> datetime:
    """Normalize to an aware UTC datetime. Bare dates map to midnight UTC, naive datetimes are read as UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def whole_days_since(earlier: Optional[Union[date, datetime]], now: datetime, sentinel: int) -> int:
    """Floor of elapsed days, never negative; `sentinel` when `earlier` is unknown"""
    if earlier is None:
        return sentinel
    delta = as_utc(now) - as_utc(earlier)
    return max(delta.days, 0)


def hours_between(earlier: datetime, now: datetime) -> float:
    """Elapsed hours (fractional) from `earlier` to `now`"""
    return (as_utc(now) - as_utc(earlier)).total_seconds() / SECONDS_PER_HOUR
