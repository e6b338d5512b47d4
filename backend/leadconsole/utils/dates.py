"""
Calendar-day helpers for the reporting timezone.

Every daily bucket in the console (trend matrix, ROAS rows, settlement
rows, ad-spend keys) is a calendar day in the reporting timezone, while the
store keeps UTC instants. These helpers convert between the two.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterator

from ..core.exceptions import InvalidArgument


DAY_FORMAT = "%Y-%m-%d"


def to_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_day(value: datetime, tz: tzinfo) -> date:
    """Calendar day of an instant in the reporting timezone."""
    return to_utc(value).astimezone(tz).date()


def day_start(day: date, tz: tzinfo) -> datetime:
    """UTC instant at which ``day`` begins in the reporting timezone."""
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def day_window(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` UTC window covering one local day."""
    return day_start(day, tz), day_start(day + timedelta(days=1), tz)


def range_window(start_day: date, end_day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Half-open UTC window covering ``start_day`` through ``end_day`` inclusive."""
    return day_start(start_day, tz), day_start(end_day + timedelta(days=1), tz)


def iter_days(start_day: date, end_day: date) -> Iterator[date]:
    """Yield every day from ``start_day`` to ``end_day`` inclusive."""
    current = start_day
    while current <= end_day:
        yield current
        current += timedelta(days=1)


def week_start(day: date, first_weekday: int) -> date:
    """First day of the week containing ``day`` (Monday=0 ... Sunday=6)."""
    offset = (day.weekday() - first_weekday) % 7
    return day - timedelta(days=offset)


def month_start(day: date) -> date:
    return day.replace(day=1)


def format_day(day: date) -> str:
    return day.strftime(DAY_FORMAT)


def validate_range(start_day: date, end_day: date) -> None:
    if start_day > end_day:
        raise InvalidArgument(
            "startDate must not be after endDate.",
            {"startDate": format_day(start_day), "endDate": format_day(end_day)},
        )
