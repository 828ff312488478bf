from collections.abc import Sequence
from datetime import date

from fncli import UsageError, cli

from . import config
from .core.errors import NotFoundError
from .core.models import Entry, Group, Holiday, Task, WeekInfo
from .groups import UNGROUPED, get_groups, group_counts
from .lib import ansi, clock
from .lib.calendar import (
    calendar_weeks_for_month,
    is_in_month,
    month_name,
    parse_year_month,
    weekday_index,
    weekday_labels,
)
from .lib.dates import parse_due_date
from .lib.format import format_holiday, format_status, format_task
from .lib.holidays import HolidayProvider, NationalHolidays, holiday_on, parse_day_month
from .lib.parsing import parse_week_ref
from .lib.weeks import (
    days_of_week,
    key_to_week_info,
    resolve_week_key,
    week_containing,
    week_info_to_key,
    week_owner_month,
)
from .tasks import get_tasks
from .timeline import (
    combined_tasks,
    day_tasks,
    day_window,
    important_tasks,
    month_tasks,
    month_window,
    tasks_by_day,
    week_tasks,
    week_window,
)

__all__ = [
    "render_dashboard",
    "render_day",
    "render_holidays",
    "render_month",
    "render_week",
]

_INDENT = "  "


def _holidays_between(provider: HolidayProvider, start: date, end: date) -> list[Holiday]:
    pool: list[Holiday] = []
    for year in range(start.year, end.year + 1):
        pool.extend(provider.for_year(year))
    return [h for h in pool if start <= h.date <= end]


def _task_lines(items: Sequence[Entry], groups: dict[str, Group], indent: str = _INDENT) -> list[str]:
    return [f"{indent}{format_task(i, groups, show_id=True)}" for i in items]


def _day_heading(d: date, holiday: Holiday | None, today: date) -> str:
    label = f"{weekday_labels()[weekday_index(d)]} {d.day:02d}/{d.month:02d}"
    label = ansi.bold(label) if d == today else label
    if holiday:
        label += f" {ansi.coral(holiday.name)}"
    return label


def _render_grid(year: int, month: int, holidays: Sequence[Holiday], busy: set[date], today: date) -> list[str]:
    lines = [" ".join(f"{name[:2]:>2}" for name in weekday_labels())]
    for row in calendar_weeks_for_month(year, month):
        cells = []
        for d in row:
            cell = f"{d.day:>2}"
            if not is_in_month(d, year, month):
                cell = ansi.dim(cell)
            elif holiday_on(d, holidays):
                cell = ansi.coral(cell)
            elif d in busy:
                cell = ansi.cyan(cell)
            if d == today:
                cell = ansi.bold(cell)
            cells.append(cell)
        lines.append(" ".join(cells))
    return lines


def render_month(
    year: int, month: int, tasks: Sequence[Task], groups: dict[str, Group], provider: HolidayProvider
) -> str:
    today = clock.today()
    start, end = month_window(year, month)
    items = combined_tasks(tasks, start, end)
    holidays = _holidays_between(provider, start, end)
    grid_weeks = calendar_weeks_for_month(year, month)
    by_day = tasks_by_day(items, [d for row in grid_weeks for d in row])

    lines = [ansi.bold(f"{month_name(month)} {year}")]
    lines.extend(_render_grid(year, month, holidays, {d for d, found in by_day.items() if found}, today))

    goals = month_tasks(items, year, month)
    if goals:
        lines.append("")
        lines.append(ansi.bold(ansi.purple("MONTH GOALS")))
        lines.extend(_task_lines(goals, groups))

    for row in grid_weeks:
        owner = week_owner_month(row[0], row[-1])
        week = week_containing(row[0]) if owner == (year, month) else None
        days = [d for d in row if is_in_month(d, year, month) and (by_day[d] or holiday_on(d, holidays))]
        goals = week_tasks(items, week) if week else []
        if not days and not goals:
            continue
        lines.append("")
        heading = week.label if week else f"({row[0].day}/{row[0].month:02d} - {row[-1].day}/{row[-1].month:02d})"
        lines.append(ansi.bold(heading))
        lines.extend(_task_lines(goals, groups))
        for d in days:
            lines.append(f"{_INDENT}{_day_heading(d, holiday_on(d, holidays), today)}")
            lines.extend(_task_lines(by_day[d], groups, _INDENT * 2))
    return "\n".join(lines)


def render_week(week: WeekInfo, tasks: Sequence[Task], groups: dict[str, Group], provider: HolidayProvider) -> str:
    today = clock.today()
    start, end = week_window(week)
    items = combined_tasks(tasks, start, end)
    holidays = _holidays_between(provider, start, end)

    lines = [f"{ansi.bold(week.label)} {ansi.muted(week_info_to_key(week))}"]
    goals = week_tasks(items, week)
    if goals:
        lines.append(ansi.bold(ansi.purple("WEEK GOALS")))
        lines.extend(_task_lines(goals, groups))
    for d, found in tasks_by_day(items, days_of_week(week)).items():
        lines.append(_day_heading(d, holiday_on(d, holidays), today))
        lines.extend(_task_lines(found, groups))
    return "\n".join(lines)


def render_day(d: date, tasks: Sequence[Task], groups: dict[str, Group], provider: HolidayProvider) -> str:
    start, end = day_window(d)
    items = combined_tasks(tasks, start, end)
    lines = [_day_heading(d, holiday_on(d, provider.for_year(d.year)), clock.today())]
    found = day_tasks(items, d)
    if not found:
        lines.append(ansi.muted(f"{_INDENT}nothing scheduled"))
    lines.extend(_task_lines(found, groups))
    return "\n".join(lines)


def render_holidays(year: int, provider: HolidayProvider) -> str:
    found = provider.for_year(year)
    if not found:
        return "no holidays"
    lines = [ansi.bold(str(year))]
    for h in found:
        kind = f" {ansi.muted('(custom)')}" if h.kind == "custom" else ""
        lines.append(f"{_INDENT}{format_holiday(h)}{kind}")
    return "\n".join(lines)


def render_dashboard(tasks: Sequence[Task], groups: dict[str, Group], provider: HolidayProvider) -> str:
    today = clock.today()
    week = week_containing(today)
    start, end = week_window(week) if week else day_window(today)
    items = combined_tasks(tasks, start, end)

    holiday = holiday_on(today, provider.for_year(today.year))
    lines = [f"\n{ansi.bold(today.strftime('%a') + ' · ' + today.strftime('%-d %b %Y'))}"]
    if holiday:
        lines[0] += f" {ansi.coral(holiday.name)}"

    pending = [t for t in tasks if not t.is_completed]
    counts = group_counts(pending)
    summary = [
        ansi.hex_color(g.color, f"{g.name} {counts[g.id]}") for g in groups.values() if counts.get(g.id)
    ]
    if counts.get(UNGROUPED):
        summary.append(ansi.muted(f"{UNGROUPED} {counts[UNGROUPED]}"))
    if summary:
        lines.append(" · ".join(summary))

    sections: list[tuple[str, Sequence[Entry]]] = [
        ("TODAY", day_tasks(items, today)),
        ("THIS WEEK", week_tasks(items, week) if week else []),
        ("THIS MONTH", month_tasks(items, today.year, today.month)),
        ("IMPORTANT", important_tasks(tasks)),
    ]
    for title, found in sections:
        if not found:
            continue
        lines.append("")
        lines.append(ansi.bold(title))
        lines.extend(_task_lines(found, groups))
    if not any(found for _, found in sections):
        lines.append("")
        lines.append(ansi.muted("nothing planned"))
    return "\n".join(lines)


# ── cli ──────────────────────────────────────────────────────────────────────


def _groups_by_id() -> dict[str, Group]:
    return {g.id: g for g in get_groups()}


@cli("agenda", name="dash", default=True)
def dashboard() -> None:
    """Today, this week's and this month's goals, important goals"""
    print(render_dashboard(get_tasks(), _groups_by_id(), NationalHolidays.from_config()))


@cli("agenda", flags={"key": []})
def month(key: str | None = None) -> None:
    """Month agenda: `agenda month 2024-06`"""
    today = clock.today()
    ym = parse_year_month(key) if key else (today.year, today.month)
    if ym is None:
        raise UsageError(f"Unknown month '{key}' - use YYYY-MM")
    print(render_month(ym[0], ym[1], get_tasks(), _groups_by_id(), NationalHolidays.from_config()))


@cli("agenda", flags={"key": []})
def week(key: str | None = None) -> None:
    """Week agenda: `agenda week 2024-06-W2`, `agenda week next`"""
    today = clock.today()
    if key is None:
        found = week_containing(today)
    else:
        resolved = parse_week_ref(key)
        found = key_to_week_info(resolved) if resolved else None
        if found is None:
            parsed = parse_year_month(key)
            if parsed is None:
                raise UsageError(f"Unknown week '{key}' - use YYYY-MM-Wn, this, next or last")
            found = resolve_week_key(None, parsed[0], parsed[1])
    if found is None:
        raise UsageError("Could not place today in a week")
    print(render_week(found, get_tasks(), _groups_by_id(), NationalHolidays.from_config()))


@cli("agenda", flags={"when": []})
def day(when: str | None = None) -> None:
    """Day agenda: `agenda day`, `agenda day tomorrow`"""
    d = parse_due_date(when) if when else clock.today()
    if d is None:
        raise UsageError(f"Could not parse date '{when}'")
    print(render_day(d, get_tasks(), _groups_by_id(), NationalHolidays.from_config()))


@cli("agenda", flags={"year": []})
def holidays(year: int | None = None) -> None:
    """Holidays for a year (national list plus custom entries from config)"""
    print(render_holidays(year or clock.today().year, NationalHolidays.from_config()))


@cli("agenda holiday", name="add")
def holiday_add(day_month: str, name: list[str]) -> None:
    """Add a yearly custom holiday: `agenda holiday add 24-06 Festa Junina`"""
    text = " ".join(name).strip()
    if not text:
        raise UsageError("Usage: agenda holiday add <DD-MM> <name>")
    # leap year so 29-02 is accepted
    if parse_day_month(day_month, 2024) is None:
        raise UsageError(f"Invalid date '{day_month}' - use DD-MM")
    config.add_custom_holiday(text, day_month)
    print(format_status(ansi.coral("✦"), f"{text} {day_month}"))


@cli("agenda holiday", name="rm")
def holiday_rm(name: list[str]) -> None:
    """Remove a custom holiday by name"""
    text = " ".join(name).strip()
    if not config.remove_custom_holiday(text):
        raise NotFoundError(f"No custom holiday named '{text}'")
    print(format_status(ansi.red("✗"), text))
