import re
from datetime import date, datetime, timedelta

from dateutil import parser as dateutil_parser
from dateutil.parser import ParserError

from . import clock
from .calendar import weekday_index

_DAY_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]
_DAY_ALIASES = {
    "sunday": "sun",
    "monday": "mon",
    "tuesday": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "friday": "fri",
    "saturday": "sat",
}


def weekday_from_name(name: str) -> int | None:
    """Sunday=0 index for a day name or three-letter abbreviation."""
    key = name.strip().lower()
    key = _DAY_ALIASES.get(key, key)
    return _DAY_NAMES.index(key) if key in _DAY_NAMES else None


def parse_due_date(due_str: str) -> date | None:
    """Parse 'today', 'tomorrow', 'yesterday', a day name (next occurrence, today included)
    or any date dateutil understands (day-first, as in 25/12)."""
    lowered = due_str.strip().lower()
    today = clock.today()

    if lowered == "today":
        return today
    if lowered == "yesterday":
        return today - timedelta(days=1)
    if lowered == "tomorrow":
        return today + timedelta(days=1)
    target = weekday_from_name(lowered)
    if target is not None:
        return today + timedelta(days=(target - weekday_index(today)) % 7)
    if re.match(r"^\d{1,2}:\d{2}$", lowered):
        return None
    if re.match(r"^\d{4}-\d{2}-\d{2}$", lowered):
        try:
            return date.fromisoformat(lowered)
        except ValueError:
            return None
    try:
        return dateutil_parser.parse(
            due_str, dayfirst=True, default=datetime(today.year, today.month, today.day)
        ).date()
    except (ParserError, ValueError, OverflowError):
        return None
