from datetime import date

from agenda.core.models import Entry, Group, Holiday, Subtask, Task, VirtualOccurrence

from . import ansi

__all__ = [
    "format_due",
    "format_group",
    "format_recurrence",
    "format_status",
    "format_subtask",
    "format_task",
]

_WEEKDAY_SHORT = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


def format_due(due_date: date | None, due_time: str | None = None, colorize: bool = True) -> str:
    if not due_date:
        return ""
    text = f"{due_date.day:02d}/{due_date.month:02d}"
    if due_time:
        text += f" {due_time}"
    return ansi.muted(f"{text}·") if colorize else f"{text}·"


def format_recurrence(task: Task) -> str:
    """Short rule description, e.g. 'every 2 weeks on mon,wed until 2024-06-30'."""
    if not task.is_recurring or not task.recurrence_pattern:
        return ""
    interval = task.recurrence_interval or 1
    unit = {"daily": "day", "weekly": "week", "monthly": "month", "yearly": "year"}.get(
        task.recurrence_pattern, task.recurrence_pattern
    )
    text = f"every {unit}" if interval == 1 else f"every {interval} {unit}s"
    if task.recurrence_pattern == "weekly" and task.recurrence_days:
        text += " on " + ",".join(_WEEKDAY_SHORT[d] for d in task.recurrence_days)
    if task.recurrence_end_date:
        text += f" until {task.recurrence_end_date.isoformat()}"
    return text


def format_task(item: Entry, groups: dict[str, Group] | None = None, show_id: bool = False) -> str:
    """Format a task for display. Returns: [✓|□|◌] [★] [due] title [group] [↻] [id]"""
    virtual = isinstance(item, VirtualOccurrence)
    parts = []

    if virtual:
        parts.append(ansi.muted("◌"))
    elif item.is_completed:
        parts.append(ansi.green("✓"))
    else:
        parts.append("□")

    if item.is_important:
        parts.append(ansi.gold("★"))

    if item.due_date:
        parts.append(format_due(item.due_date, item.due_time))

    parts.append(ansi.muted(item.title) if item.is_completed else item.title)

    if groups and item.group_id and item.group_id in groups:
        group = groups[item.group_id]
        parts.append(ansi.hex_color(group.color, f"@{group.name}"))

    if virtual or (isinstance(item, Task) and item.is_recurring):
        parts.append(ansi.muted("↻"))

    if show_id and not virtual:
        parts.append(ansi.muted(f"[{item.id[:8]}]"))

    return " ".join(parts)


def format_subtask(subtask: Subtask, index: int) -> str:
    box = ansi.green("✓") if subtask.is_completed else "□"
    title = ansi.muted(subtask.title) if subtask.is_completed else subtask.title
    return f"    {index}. {box} {title}"


def format_group(group: Group, count: int = 0) -> str:
    swatch = ansi.hex_color(group.color, "●")
    return f"{swatch} {group.name} {ansi.muted(f'({count})')} {ansi.muted(f'[{group.id[:8]}]')}"


def format_holiday(holiday: Holiday) -> str:
    return f"{holiday.date.day:02d}/{holiday.date.month:02d} {ansi.coral(holiday.name)}"


def format_status(symbol: str, content: str, item_id: str | None = None) -> str:
    """Format status message for action confirmations."""
    if item_id:
        return f"{symbol} {content} {ansi.muted(f'[{item_id[:8]}]')}"
    return f"{symbol} {content}"
