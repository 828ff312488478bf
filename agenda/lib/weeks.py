"""Week-of-month partitioning.

Every Sunday-aligned week belongs to exactly one month: the month whose day 1
falls inside it, or failing that, the month holding most of its seven days.
Weeks are numbered 1..n within their owning month and keyed as ``YYYY-MM-Wn``.
"""

import logging
import re
from collections import Counter
from datetime import date, timedelta

from agenda.core.models import WeekInfo

from .calendar import last_of_month, week_end, week_start

__all__ = [
    "adjacent_week",
    "days_of_week",
    "key_to_week_info",
    "resolve_week_key",
    "week_containing",
    "week_info_to_key",
    "week_owner_month",
    "weeks_of_month",
]

logger = logging.getLogger(__name__)

_WEEK_KEY_RE = re.compile(r"^(\d{4})-(\d{2})-W(\d+)$")


def week_owner_month(start: date, end: date) -> tuple[int, int]:
    days = [start + timedelta(days=i) for i in range((end - start).days + 1)]
    for d in days:
        if d.day == 1:
            return d.year, d.month

    # Counter preserves insertion order, and max() keeps the first of equal counts.
    counts = Counter((d.year, d.month) for d in days)
    return max(counts, key=lambda k: counts[k])


def _label(number: int, start: date, end: date) -> str:
    return f"Week {number} ({start.day}/{start.month:02d} - {end.day}/{end.month:02d})"


def weeks_of_month(year: int, month: int) -> list[WeekInfo]:
    last = last_of_month(year, month)
    start = week_start(date(year, month, 1))
    weeks: list[WeekInfo] = []
    while start <= last:
        end = week_end(start)
        if week_owner_month(start, end) == (year, month):
            number = len(weeks) + 1
            weeks.append(
                WeekInfo(
                    week_number=number,
                    year=year,
                    month=month,
                    start_date=start,
                    end_date=end,
                    label=_label(number, start, end),
                )
            )
        start += timedelta(days=7)
    return weeks


def week_containing(d: date) -> WeekInfo:
    year, month = week_owner_month(week_start(d), week_end(d))
    weeks = weeks_of_month(year, month)
    match = next((w for w in weeks if w.start_date <= d <= w.end_date), None)
    if match is None:
        logger.error(
            "week partition inconsistent: no week of %04d-%02d contains %s; using week 1", year, month, d
        )
        return weeks[0]
    return match


def week_info_to_key(week: WeekInfo) -> str:
    return f"{week.year:04d}-{week.month:02d}-W{week.week_number}"


def key_to_week_info(key: str) -> WeekInfo | None:
    m = _WEEK_KEY_RE.match(key.strip())
    if not m:
        return None
    year, month, number = int(m.group(1)), int(m.group(2)), int(m.group(3))
    if not 1 <= month <= 12:
        return None
    return next((w for w in weeks_of_month(year, month) if w.week_number == number), None)


def resolve_week_key(key: str | None, fallback_year: int, fallback_month: int) -> WeekInfo:
    """Week for key, or the first week of the fallback month when the key does not resolve."""
    week = key_to_week_info(key) if key else None
    if week is not None:
        return week
    return weeks_of_month(fallback_year, fallback_month)[0]


def days_of_week(week: WeekInfo) -> list[date]:
    return [week.start_date + timedelta(days=i) for i in range((week.end_date - week.start_date).days + 1)]


def _shift_month(year: int, month: int, step: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + step
    return index // 12, index % 12 + 1


def adjacent_week(week: WeekInfo, step: int = 1) -> WeekInfo:
    """Next (step=1) or previous (step=-1) owned week, rolling into the neighbouring month."""
    weeks = weeks_of_month(week.year, week.month)
    index = week.week_number - 1 + step
    if 0 <= index < len(weeks):
        return weeks[index]
    year, month = _shift_month(week.year, week.month, 1 if step > 0 else -1)
    neighbour = weeks_of_month(year, month)
    return neighbour[0] if step > 0 else neighbour[-1]
