"""Merged view of stored tasks and projected recurring occurrences.

Everything here is pure: callers load tasks from the store, pick a window for
the view being rendered and filter the merged list by scope.
"""

from collections.abc import Iterable, Sequence
from datetime import date

from .core.models import Entry, Scope, Task, VirtualOccurrence, WeekInfo
from .lib.calendar import calendar_days, year_month
from .lib.recurrence import project_virtual_occurrences
from .lib.weeks import week_info_to_key

__all__ = [
    "combined_tasks",
    "day_tasks",
    "day_window",
    "important_tasks",
    "month_tasks",
    "month_window",
    "tasks_by_day",
    "week_tasks",
    "week_window",
]

Window = tuple[date, date]


def month_window(year: int, month: int) -> Window:
    """The full calendar grid: leading and trailing days of neighbouring months included."""
    days = calendar_days(year, month)
    return days[0], days[-1]


def week_window(week: WeekInfo) -> Window:
    return week.start_date, week.end_date


def day_window(d: date) -> Window:
    return d, d


def combined_tasks(tasks: Sequence[Task], start: date, end: date) -> list[Entry]:
    virtual: list[VirtualOccurrence] = project_virtual_occurrences(tasks, start, end)
    return [*tasks, *virtual]


def month_tasks(items: Iterable[Entry], year: int, month: int) -> list[Entry]:
    key = year_month(date(year, month, 1))
    return [i for i in items if i.scope == Scope.MONTH and i.target_month == key]


def week_tasks(items: Iterable[Entry], week: WeekInfo) -> list[Entry]:
    key = week_info_to_key(week)
    return [i for i in items if i.scope == Scope.WEEK and i.target_week == key]


def day_tasks(items: Iterable[Entry], d: date) -> list[Entry]:
    dated = [i for i in items if i.scope == Scope.DATE and i.due_date == d]
    # untimed first, then by time
    return sorted(dated, key=lambda i: (i.due_time is not None, i.due_time or ""))


def tasks_by_day(items: Iterable[Entry], days: Iterable[date]) -> dict[date, list[Entry]]:
    pool = list(items)
    return {d: day_tasks(pool, d) for d in days}


def important_tasks(tasks: Iterable[Task]) -> list[Task]:
    return [t for t in tasks if t.is_important and not t.is_completed]
