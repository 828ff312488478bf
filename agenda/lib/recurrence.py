"""Recurring task projection.

A recurring task carries a rule (pattern, interval, optional weekday set, optional
end date) anchored at its due date. ``advance_one`` yields the next concrete date
used when the task is completed; ``project_virtual_occurrences`` enumerates the
dates inside a display window without persisting anything.

Month and year steps use ``relativedelta``: when the target month is shorter, the
day is clamped to its last day (Jan 31 + 1 month = Feb 29 in 2024). Steps are
always applied to the previous occurrence, so projected dates match what repeated
completion would materialize.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from agenda.core.models import (
    Pattern,
    SubtaskDraft,
    Task,
    TaskDraft,
    VirtualOccurrence,
)

from .calendar import weekday_index

__all__ = [
    "advance_one",
    "materialize_next",
    "next_occurrence",
    "occurrence_dates",
    "project_virtual_occurrences",
]

logger = logging.getLogger(__name__)

_KNOWN_PATTERNS = {p.value for p in Pattern}


def _valid_weekdays(days: Iterable[int]) -> bool:
    return all(isinstance(d, int) and 0 <= d <= 6 for d in days)


def _next_weekday_in_set(anchor: date, days: Iterable[int], interval: int) -> date:
    selected = sorted(set(days))
    current = weekday_index(anchor)
    later = next((d for d in selected if d > current), None)
    if later is not None:
        # Stays inside the current week; interval only applies on wrap-around.
        return anchor + timedelta(days=later - current)
    return anchor + timedelta(days=(7 - current) + (interval - 1) * 7 + selected[0])


def next_occurrence(
    anchor: date,
    pattern: str | None,
    interval: int | None = 1,
    days: Sequence[int] | None = None,
    end_date: date | None = None,
) -> date | None:
    """One step of the rule from anchor, or None when the series is over or the rule is unusable."""
    step = interval or 1
    if step < 1:
        logger.warning("recurrence interval %s is not positive; no occurrence computed", interval)
        return None

    if pattern not in _KNOWN_PATTERNS:
        logger.warning("unknown recurrence pattern %r; no occurrence computed", pattern)
        return None
    if pattern == Pattern.WEEKLY and days and not _valid_weekdays(days):
        logger.warning("recurrence weekdays %r outside 0..6; no occurrence computed", list(days))
        return None

    try:
        if pattern == Pattern.DAILY:
            nxt = anchor + timedelta(days=step)
        elif pattern == Pattern.WEEKLY:
            if days:
                nxt = _next_weekday_in_set(anchor, days, step)
            else:
                nxt = anchor + timedelta(days=7 * step)
        elif pattern == Pattern.MONTHLY:
            nxt = anchor + relativedelta(months=step)
        else:
            nxt = anchor + relativedelta(years=step)
    except (ValueError, OverflowError):
        logger.warning(
            "recurrence step of %s %s from %s leaves the calendar; no occurrence computed",
            step,
            pattern,
            anchor,
        )
        return None

    if end_date is not None and nxt > end_date:
        return None
    return nxt


def _rule_ready(task: Task) -> bool:
    if not task.is_recurring:
        return False
    if task.due_date is None:
        logger.warning("recurring task %s has no due date; nothing to project", task.id)
        return False
    if task.recurrence_pattern not in _KNOWN_PATTERNS:
        logger.warning(
            "recurring task %s has unknown pattern %r", task.id, task.recurrence_pattern
        )
        return False
    if task.recurrence_days and not _valid_weekdays(task.recurrence_days):
        logger.warning(
            "recurring task %s has weekdays %r outside 0..6", task.id, task.recurrence_days
        )
        return False
    return True


def advance_one(task: Task) -> date | None:
    if not _rule_ready(task):
        return None
    assert task.due_date is not None
    return next_occurrence(
        task.due_date,
        task.recurrence_pattern,
        task.recurrence_interval,
        task.recurrence_days,
        task.recurrence_end_date,
    )


def occurrence_dates(task: Task, window_start: date, window_end: date) -> list[date]:
    """Dates after the anchor produced by the rule that fall inside [window_start, window_end]."""
    if not _rule_ready(task):
        return []
    assert task.due_date is not None

    dates: list[date] = []
    current = task.due_date
    while True:
        nxt = next_occurrence(
            current,
            task.recurrence_pattern,
            task.recurrence_interval,
            task.recurrence_days,
            task.recurrence_end_date,
        )
        if nxt is None or nxt > window_end:
            break
        if nxt <= current:
            logger.warning("recurring task %s does not advance past %s; projection stopped", task.id, current)
            break
        if nxt >= window_start:
            dates.append(nxt)
        current = nxt
    return dates


def project_virtual_occurrences(
    tasks: Sequence[Task], window_start: date, window_end: date
) -> list[VirtualOccurrence]:
    """Virtual occurrences of every recurring task inside the window.

    A (date, title) slot already taken by a stored task, or by an earlier
    projection, is skipped.
    """
    taken = {(t.due_date, t.title) for t in tasks if t.due_date is not None}
    projected: list[VirtualOccurrence] = []
    for task in tasks:
        if not task.is_recurring:
            continue
        for on in occurrence_dates(task, window_start, window_end):
            key = (on, task.title)
            if key in taken:
                continue
            taken.add(key)
            projected.append(VirtualOccurrence.project(task, on))
    return projected


def materialize_next(task: Task) -> TaskDraft | None:
    """Draft of the task that replaces a completed recurring task, or None if the series ended."""
    nxt = advance_one(task)
    if nxt is None:
        return None
    return TaskDraft(
        title=task.title,
        description=task.description,
        is_completed=False,
        is_important=task.is_important,
        group_id=task.group_id,
        scope=task.scope,
        due_date=nxt,
        due_time=task.due_time,
        target_week=task.target_week,
        target_month=task.target_month,
        is_recurring=True,
        recurrence_pattern=task.recurrence_pattern,
        recurrence_interval=task.recurrence_interval,
        recurrence_days=list(task.recurrence_days),
        recurrence_end_date=task.recurrence_end_date,
        parent_task_id=task.id,
        subtasks=[SubtaskDraft(title=s.title, position=s.position) for s in task.subtasks],
    )
