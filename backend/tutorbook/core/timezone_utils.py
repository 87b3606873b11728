"""
Timezone utilities for the tutor booking engine.

All stored instants are epoch milliseconds. Calendar questions (which weekday,
what time of day) are answered in a single canonical zone configured through
``settings.canonical_timezone``.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional

import pytz

from .config import settings


def get_canonical_timezone(tz_name: Optional[str] = None) -> pytz.BaseTzInfo:
    """Return the pytz zone used for calendar math."""
    return pytz.timezone(tz_name or settings.canonical_timezone)


def now_ms() -> int:
    """Current instant as epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def to_local_datetime(epoch_ms: int, tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """Convert epoch milliseconds to an aware datetime in the canonical zone."""
    zone = tz or get_canonical_timezone()
    utc_dt = datetime.fromtimestamp(epoch_ms / 1000, tz=pytz.utc)
    return utc_dt.astimezone(zone)


def local_to_epoch_ms(
    local_date: date, local_time: time, tz: Optional[pytz.BaseTzInfo] = None
) -> int:
    """
    Convert a wall-clock date and time in the canonical zone to epoch milliseconds.

    Non-existent or ambiguous wall times (DST transitions) resolve with
    ``is_dst=False``.
    """
    zone = tz or get_canonical_timezone()
    localized = zone.localize(datetime.combine(local_date, local_time), is_dst=False)
    return int(localized.timestamp() * 1000)


def local_date_of(epoch_ms: int, tz: Optional[pytz.BaseTzInfo] = None) -> date:
    return to_local_datetime(epoch_ms, tz).date()


def local_time_of(epoch_ms: int, tz: Optional[pytz.BaseTzInfo] = None) -> time:
    return to_local_datetime(epoch_ms, tz).time().replace(tzinfo=None)


def day_of_week(value: date) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday."""
    return (value.weekday() + 1) % 7


def parse_time_of_day(value: str) -> time:
    """Parse an ``HH:MM`` string into a naive time."""
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def minutes_of_day(value: str) -> int:
    parsed = parse_time_of_day(value)
    return parsed.hour * 60 + parsed.minute


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
