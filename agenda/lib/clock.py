"""Single source of "now" so tests can pin the calendar."""

from datetime import date, datetime


def now() -> datetime:
    return datetime.now()


def today() -> date:
    return now().date()
