"""
Billing windows.

Every cap in the posting rules is "per calendar day / month / year" in the
company's local timezone.  Windows are computed in local time and handed to
the database as half-open UTC ``[start, end)`` bounds, so a deposit taken at
23:30 IST on the 31st belongs to that month even though it is already the
next day in UTC.
"""

import calendar
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "Asia/Kolkata"


@dataclass(frozen=True)
class PeriodWindow:
    """Half-open UTC interval ``[start, end)``."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        instant = instant.astimezone(UTC)
        return self.start <= instant < self.end


def resolve_timezone(name: str | None, default: str = DEFAULT_TIMEZONE) -> tzinfo:
    """ZoneInfo for ``name``; unknown or empty names fall back to ``default``."""
    for candidate in (name, default):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            continue
    return UTC


def _window(local_start: datetime, local_end: datetime) -> PeriodWindow:
    return PeriodWindow(start=local_start.astimezone(UTC), end=local_end.astimezone(UTC))


def day_window(instant: datetime, tz: tzinfo) -> PeriodWindow:
    local = instant.astimezone(tz)
    start = datetime(local.year, local.month, local.day, tzinfo=tz)
    next_day = start.date() + timedelta(days=1)
    end = datetime(next_day.year, next_day.month, next_day.day, tzinfo=tz)
    return _window(start, end)


def month_window(instant: datetime, tz: tzinfo) -> PeriodWindow:
    local = instant.astimezone(tz)
    start = datetime(local.year, local.month, 1, tzinfo=tz)
    if local.month == 12:
        end = datetime(local.year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime(local.year, local.month + 1, 1, tzinfo=tz)
    return _window(start, end)


def year_window(instant: datetime, tz: tzinfo) -> PeriodWindow:
    local = instant.astimezone(tz)
    start = datetime(local.year, 1, 1, tzinfo=tz)
    end = datetime(local.year + 1, 1, 1, tzinfo=tz)
    return _window(start, end)


def add_months(instant: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping the day (Jan 31 + 1 month -> Feb 28/29)."""
    month_index = instant.month - 1 + months
    year = instant.year + month_index // 12
    month = month_index % 12 + 1
    day = min(instant.day, calendar.monthrange(year, month)[1])
    return instant.replace(year=year, month=month, day=day)
