"""Pure calendar arithmetic. Weeks run Sunday -> Saturday; weekday indices are Sunday=0."""

import calendar as _cal
import re
from datetime import date, timedelta

__all__ = [
    "add_days",
    "calendar_days",
    "calendar_weeks_for_month",
    "days_in_month",
    "first_weekday_of_month",
    "is_in_month",
    "is_same_day",
    "iso_week",
    "last_of_month",
    "month_name",
    "parse_year_month",
    "to_iso_date",
    "week_end",
    "week_start",
    "weekday_index",
    "weekday_labels",
    "year_month",
]

_MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]
_WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def weekday_index(d: date) -> int:
    return d.isoweekday() % 7


def add_days(d: date, n: int) -> date:
    return d + timedelta(days=n)


def days_in_month(year: int, month: int) -> int:
    return _cal.monthrange(year, month)[1]


def first_weekday_of_month(year: int, month: int) -> int:
    return weekday_index(date(year, month, 1))


def last_of_month(year: int, month: int) -> date:
    return date(year, month, days_in_month(year, month))


def to_iso_date(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def week_start(d: date) -> date:
    return d - timedelta(days=weekday_index(d))


def week_end(d: date) -> date:
    return d + timedelta(days=6 - weekday_index(d))


def calendar_weeks_for_month(year: int, month: int) -> list[list[date]]:
    """Every Sunday-Saturday row that overlaps the month, for grid rendering.

    Unlike weeks_of_month, this ignores ownership: a week shared with the next
    month shows up in both months' grids.
    """
    last = last_of_month(year, month)
    start = week_start(date(year, month, 1))
    weeks: list[list[date]] = []
    while start <= last:
        weeks.append([start + timedelta(days=i) for i in range(7)])
        start += timedelta(days=7)
    return weeks


def calendar_days(year: int, month: int) -> list[date]:
    return [d for week in calendar_weeks_for_month(year, month) for d in week]


def year_month(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def parse_year_month(key: str) -> tuple[int, int] | None:
    m = _YEAR_MONTH_RE.match(key.strip())
    if not m:
        return None
    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        return None
    return year, month


def iso_week(d: date) -> str:
    iso_year, week, _ = d.isocalendar()
    return f"{iso_year}-W{week:02d}"


def is_same_day(a: date, b: date) -> bool:
    return to_iso_date(a) == to_iso_date(b)


def is_in_month(d: date, year: int, month: int) -> bool:
    return d.year == year and d.month == month


def month_name(month: int) -> str:
    return _MONTH_NAMES[month - 1]


def weekday_labels() -> list[str]:
    return list(_WEEKDAY_LABELS)
