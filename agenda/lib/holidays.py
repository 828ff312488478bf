"""Holiday calendar: fixed national dates plus Easter-relative moveable feasts."""

from datetime import date, timedelta
from typing import Protocol

from agenda.core.models import Holiday

__all__ = ["HolidayProvider", "NationalHolidays", "easter", "holiday_on", "holidays", "parse_day_month"]

_FIXED: list[tuple[int, int, str]] = [
    (1, 1, "New Year's Day"),
    (4, 21, "Tiradentes"),
    (5, 1, "Labour Day"),
    (9, 7, "Independence Day"),
    (10, 12, "Our Lady of Aparecida"),
    (11, 2, "All Souls' Day"),
    (11, 15, "Republic Day"),
    (11, 20, "Black Consciousness Day"),
    (12, 25, "Christmas"),
]

# Offsets in days from Easter Sunday.
_MOVEABLE: list[tuple[int, str]] = [
    (-50, "Carnival Saturday"),
    (-49, "Carnival Sunday"),
    (-48, "Carnival Monday"),
    (-47, "Carnival"),
    (-46, "Ash Wednesday"),
    (-2, "Good Friday"),
    (0, "Easter"),
    (60, "Corpus Christi"),
]


class HolidayProvider(Protocol):
    def for_year(self, year: int) -> list[Holiday]: ...


def easter(year: int) -> date:
    """Gregorian Easter Sunday (Meeus/Jones/Butcher)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7  # noqa: E741
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def holidays(year: int, custom: list[dict[str, str]] | None = None, national: bool = True) -> list[Holiday]:
    """All holidays of a year, sorted by date.

    custom entries are {"name": ..., "date": "DD-MM"}; malformed ones are skipped.
    """
    result: list[Holiday] = []
    if national:
        result.extend(Holiday(date(year, m, d), name) for m, d, name in _FIXED)
        sunday = easter(year)
        result.extend(Holiday(sunday + timedelta(days=off), name) for off, name in _MOVEABLE)
    for entry in custom or []:
        parsed = parse_day_month(entry.get("date", ""), year)
        if parsed and entry.get("name"):
            result.append(Holiday(parsed, str(entry["name"]), kind="custom"))
    return sorted(result, key=lambda h: h.date)


def parse_day_month(value: str, year: int) -> date | None:
    parts = str(value).split("-")
    if len(parts) != 2:
        return None
    try:
        return date(year, int(parts[1]), int(parts[0]))
    except ValueError:
        return None


def holiday_on(d: date, pool: list[Holiday]) -> Holiday | None:
    return next((h for h in pool if h.date == d), None)


class NationalHolidays:
    """HolidayProvider backed by the built-in calendar plus config.yaml entries."""

    def __init__(self, custom: list[dict[str, str]] | None = None, national: bool = True):
        self._custom = custom or []
        self._national = national
        self._cache: dict[int, list[Holiday]] = {}

    @classmethod
    def from_config(cls) -> "NationalHolidays":
        from agenda import config

        return cls(custom=config.get_custom_holidays(), national=config.holidays_enabled())

    def for_year(self, year: int) -> list[Holiday]:
        if year not in self._cache:
            self._cache[year] = holidays(year, self._custom, self._national)
        return self._cache[year]
