import re

from dateutil.relativedelta import relativedelta

from agenda.core.models import Scope, TaskPatch

from . import clock
from .calendar import parse_year_month, year_month
from .dates import parse_due_date, weekday_from_name
from .weeks import adjacent_week, key_to_week_info, week_containing, week_info_to_key

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_WEEK_REF_RE = re.compile(r"^\d{4}-\d{2}-[Ww]\d+$")


def validate_title(title: str) -> None:
    """Raises ValueError for an empty or whitespace-only title."""
    if not title or not title.strip():
        raise ValueError("Title cannot be empty or whitespace-only")


def try_parse_time(s: str) -> str | None:
    m = _TIME_RE.match(s.strip())
    if m:
        h, mn = int(m.group(1)), int(m.group(2))
        if 0 <= h <= 23 and 0 <= mn <= 59:
            return f"{h:02d}:{mn:02d}"
    return None


def parse_time(time_str: str) -> str:
    parsed = try_parse_time(time_str)
    if parsed is None:
        raise ValueError(f"Invalid time '{time_str}' - use HH:MM")
    return parsed


def parse_weekdays(text: str) -> list[int]:
    """'mon,wed,fri' or '1,3,5' -> sorted Sunday=0 indices."""
    days: set[int] = set()
    for part in re.split(r"[,\s]+", text.strip()):
        if not part:
            continue
        if part.isdigit():
            idx = int(part)
            if not 0 <= idx <= 6:
                raise ValueError(f"Weekday index {idx} out of range 0-6")
        else:
            named = weekday_from_name(part)
            if named is None:
                raise ValueError(f"Unknown weekday '{part}'")
            idx = named
        days.add(idx)
    if not days:
        raise ValueError("No weekdays given")
    return sorted(days)


def parse_week_ref(text: str) -> str | None:
    """'YYYY-MM-Wn', 'week'/'this' (current week), 'next' or 'last' -> week key; None if unknown."""
    lowered = text.strip().lower().removesuffix("-week").removesuffix("week").rstrip("-") or "this"
    if lowered in ("this", "next", "last", "prev"):
        current = week_containing(clock.today())
        if current is None:
            return None
        step = {"this": 0, "next": 1, "last": -1, "prev": -1}[lowered]
        return week_info_to_key(adjacent_week(current, step) if step else current)
    key = text.strip().upper()
    info = key_to_week_info(key)
    return week_info_to_key(info) if info else None


def parse_month_ref(text: str) -> str | None:
    """'YYYY-MM', 'month'/'this' (current month) or 'next' -> month key; None if unknown."""
    lowered = text.strip().lower().removesuffix("-month").removesuffix("month").rstrip("-") or "this"
    today = clock.today()
    if lowered == "this":
        return year_month(today)
    if lowered == "next":
        return year_month(today + relativedelta(months=1))
    if lowered in ("last", "prev"):
        return year_month(today - relativedelta(months=1))
    parsed = parse_year_month(text.strip())
    return f"{parsed[0]:04d}-{parsed[1]:02d}" if parsed else None


def parse_when(text: str) -> TaskPatch:
    """Scheduling patch for a free-form target.

    'YYYY-MM-Wn', 'week', 'next-week' schedule a week goal; 'YYYY-MM', 'month',
    'next-month' a month goal; 'none' clears the date; anything else is a due date.
    Week and month targets leave due_date alone so a recurring goal keeps its anchor.
    """
    stripped = text.strip()
    lowered = stripped.lower()
    if lowered in ("none", "clear", "-"):
        return TaskPatch(scope=Scope.DATE, due_date=None, due_time=None, target_week=None, target_month=None)
    if _WEEK_REF_RE.match(stripped) or lowered.endswith("week"):
        key = parse_week_ref(stripped)
        if key is None:
            raise ValueError(f"Unknown week '{text}' - use YYYY-MM-Wn, week or next-week")
        return TaskPatch(scope=Scope.WEEK, target_week=key, target_month=None)
    if parse_year_month(stripped) or lowered.endswith("month"):
        month = parse_month_ref(stripped)
        if month is None:
            raise ValueError(f"Unknown month '{text}' - use YYYY-MM, month or next-month")
        return TaskPatch(scope=Scope.MONTH, target_month=month, target_week=None)
    due = parse_due_date(stripped)
    if due is None:
        raise ValueError(f"Could not parse date '{text}'")
    return TaskPatch(scope=Scope.DATE, due_date=due, target_week=None, target_month=None)
