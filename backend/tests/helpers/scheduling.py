"""Time and id helpers shared by the booking engine tests."""

from datetime import date, datetime, timezone

import ulid

# 2030-01-06 is a Sunday; the following Monday is 2030-01-07.
SUNDAY = date(2030, 1, 6)
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)

MONDAY_DOW = 1
TUESDAY_DOW = 2


def at(day: date, hour: int, minute: int = 0) -> int:
    """Epoch milliseconds of ``day`` at ``hour:minute`` UTC."""
    moment = datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def new_id() -> str:
    return str(ulid.ULID())
