import logging
import sqlite3
import uuid
from collections.abc import Sequence
from datetime import date

from fncli import UsageError, cli

from . import config, db
from .core.errors import ConflictError, NotFoundError, ReadOnlyError, ValidationError
from .core.models import Pattern, Scope, SubtaskDraft, Task, TaskDraft, TaskPatch, is_virtual_id
from .lib import ansi, clock
from .lib.calendar import parse_year_month
from .lib.converters import SUBTASK_COLS, TASK_COLS, dump_recurrence_days, row_to_subtask, row_to_task
from .lib.dates import parse_due_date
from .lib.format import format_recurrence, format_status, format_subtask, format_task
from .lib.fuzzy import find_in_pool, find_in_pool_exact
from .lib.parsing import (
    parse_month_ref,
    parse_time,
    parse_week_ref,
    parse_weekdays,
    parse_when,
    try_parse_time,
    validate_title,
)
from .lib.recurrence import materialize_next
from .lib.weeks import key_to_week_info

__all__ = [
    "add_task",
    "complete_task",
    "delete_task",
    "find_task",
    "find_task_exact",
    "get_task",
    "get_tasks",
    "toggle_important",
    "toggle_task",
    "update_task",
]

logger = logging.getLogger(__name__)


# ── domain ───────────────────────────────────────────────────────────────────

# Stored columns besides id and created_at, in TASK_COLS order.
_RECORD_FIELDS = (
    "title",
    "description",
    "is_completed",
    "is_important",
    "group_id",
    "scope",
    "due_date",
    "due_time",
    "target_week",
    "target_month",
    "is_recurring",
    "recurrence_pattern",
    "recurrence_interval",
    "recurrence_days",
    "recurrence_end_date",
    "parent_task_id",
)
_RECURRENCE_FIELDS = (
    "recurrence_pattern",
    "recurrence_interval",
    "recurrence_days",
    "recurrence_end_date",
)
_KNOWN_PATTERNS = {p.value for p in Pattern}
_KNOWN_SCOPES = {s.value for s in Scope}


def _guard(task_id: str) -> None:
    if is_virtual_id(task_id):
        raise ReadOnlyError(task_id)


def _load_subtasks(conn: sqlite3.Connection, task_ids: Sequence[str]) -> dict[str, list]:
    if not task_ids:
        return {}
    placeholders = ",".join("?" * len(task_ids))
    rows = conn.execute(
        f"SELECT {SUBTASK_COLS} FROM subtasks WHERE task_id IN ({placeholders}) ORDER BY position",  # noqa: S608
        tuple(task_ids),
    ).fetchall()
    grouped: dict[str, list] = {}
    for row in rows:
        sub = row_to_subtask(row)
        grouped.setdefault(sub.task_id, []).append(sub)
    return grouped


def _fetch_tasks(
    conn: sqlite3.Connection, where: str = "1 = 1", params: tuple[object, ...] = ()
) -> list[Task]:
    rows = conn.execute(f"SELECT {TASK_COLS} FROM tasks WHERE {where}", params).fetchall()  # noqa: S608
    subtasks = _load_subtasks(conn, [r[0] for r in rows])
    return [row_to_task(row, subtasks.get(row[0])) for row in rows]


def _fetch_one(conn: sqlite3.Connection, task_id: str) -> Task | None:
    found = _fetch_tasks(conn, "id = ?", (task_id,))
    return found[0] if found else None


def _task_sort_key(task: Task) -> tuple[bool, bool, object, object]:
    return (
        task.is_completed,
        task.due_date is None,
        task.due_date or date.min,
        task.created_at,
    )


def _record_of(item: Task | TaskDraft) -> dict[str, object]:
    return {name: getattr(item, name) for name in _RECORD_FIELDS}


def _normalize(record: dict[str, object]) -> dict[str, object]:
    """Recurrence columns are NULL unless the task recurs; a recurring task defaults to interval 1."""
    record = dict(record)
    if not record["is_recurring"]:
        for name in _RECURRENCE_FIELDS:
            record[name] = None
        record["recurrence_days"] = []
    else:
        if record["recurrence_interval"] is None:
            record["recurrence_interval"] = 1
        record["recurrence_days"] = sorted(set(record["recurrence_days"] or []))  # type: ignore[arg-type]
    if isinstance(record["title"], str):
        record["title"] = record["title"].strip()
    return record


def _validate(record: dict[str, object]) -> None:
    try:
        validate_title(record["title"])  # type: ignore[arg-type]
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if record["scope"] not in _KNOWN_SCOPES:
        raise ValidationError(f"Unknown scope '{record['scope']}'")
    due_time = record["due_time"]
    if due_time is not None and try_parse_time(str(due_time)) != due_time:
        raise ValidationError(f"Invalid due time '{due_time}' - use HH:MM")
    week = record["target_week"]
    if week is not None and key_to_week_info(str(week)) is None:
        raise ValidationError(f"Unknown week '{week}' - use YYYY-MM-Wn")
    month = record["target_month"]
    if month is not None and parse_year_month(str(month)) is None:
        raise ValidationError(f"Invalid month '{month}' - use YYYY-MM")
    if not record["is_recurring"]:
        return
    if record["recurrence_pattern"] not in _KNOWN_PATTERNS:
        raise ValidationError(f"Unknown recurrence pattern '{record['recurrence_pattern']}'")
    interval = record["recurrence_interval"]
    if not isinstance(interval, int) or interval < 1:
        raise ValidationError(f"Recurrence interval must be a positive integer, got {interval!r}")
    days = record["recurrence_days"] or []
    if any(not isinstance(d, int) or not 0 <= d <= 6 for d in days):  # type: ignore[union-attr]
        raise ValidationError(f"Recurrence weekdays must be 0-6, got {days}")


def _column_values(record: dict[str, object]) -> list[object]:
    values: list[object] = []
    for name in _RECORD_FIELDS:
        val = record[name]
        if name == "recurrence_days":
            val = dump_recurrence_days(val)  # type: ignore[arg-type]
        elif isinstance(val, date):
            val = val.isoformat()
        elif isinstance(val, Scope):
            val = val.value
        elif isinstance(val, bool):
            val = int(val)
        values.append(val)
    return values


def _insert_subtasks(conn: sqlite3.Connection, task_id: str, drafts: Sequence[SubtaskDraft]) -> None:
    for index, draft in enumerate(drafts):
        try:
            validate_title(draft.title)
        except ValueError as e:
            raise ValidationError(f"Subtask {index + 1}: {e}") from e
        position = draft.position if draft.position is not None else index
        try:
            conn.execute(
                "INSERT INTO subtasks (id, task_id, title, is_completed, position) VALUES (?, ?, ?, 0, ?)",
                (str(uuid.uuid4()), task_id, draft.title.strip(), position),
            )
        except sqlite3.IntegrityError as e:
            raise ConflictError(f"Subtask position {position} used twice") from e


def _insert_task(conn: sqlite3.Connection, draft: TaskDraft) -> str:
    record = _normalize(_record_of(draft))
    _validate(record)
    task_id = str(uuid.uuid4())
    columns = ", ".join(("id", "created_at", *_RECORD_FIELDS))
    placeholders = ", ".join("?" * (len(_RECORD_FIELDS) + 2))
    try:
        conn.execute(
            f"INSERT INTO tasks ({columns}) VALUES ({placeholders})",  # noqa: S608
            (task_id, clock.now().isoformat(timespec="seconds"), *_column_values(record)),
        )
        _insert_subtasks(conn, task_id, draft.subtasks)
    except sqlite3.IntegrityError as e:
        raise ValidationError(f"Failed to add task: {e}") from e
    return task_id


def _spawn_next(conn: sqlite3.Connection, task: Task) -> str | None:
    if not task.is_recurring:
        return None
    existing = conn.execute("SELECT 1 FROM tasks WHERE parent_task_id = ? LIMIT 1", (task.id,)).fetchone()
    if existing:
        logger.debug("next occurrence of %s already exists", task.id)
        return None
    draft = materialize_next(task)
    if draft is None:
        logger.info("recurring series %s has ended", task.id)
        return None
    spawned = _insert_task(conn, draft)
    logger.info("spawned %s for %s from %s", spawned, draft.due_date, task.id)
    return spawned


def add_task(draft: TaskDraft) -> Task:
    with db.get_db() as conn:
        task_id = _insert_task(conn, draft)
        task = _fetch_one(conn, task_id)
    assert task is not None
    return task


def get_task(task_id: str) -> Task | None:
    if is_virtual_id(task_id):
        return None
    with db.get_db() as conn:
        return _fetch_one(conn, task_id)


def get_tasks(include_completed: bool = True) -> list[Task]:
    where = "1 = 1" if include_completed else "is_completed = 0"
    with db.get_db() as conn:
        tasks = _fetch_tasks(conn, where)
    return sorted(tasks, key=_task_sort_key)


def update_task(task_id: str, patch: TaskPatch) -> Task | None:
    """Apply a partial update. Returns None when the task does not exist.

    Completing a recurring task (incomplete -> complete) stores its next
    occurrence in the same transaction, once per completed task.
    """
    _guard(task_id)
    changes = patch.fields_set()
    subtasks = changes.pop("subtasks", None)
    with db.get_db() as conn:
        old = _fetch_one(conn, task_id)
        if old is None:
            return None
        record = _normalize({**_record_of(old), **changes})
        _validate(record)
        assignments = ", ".join(f"{name} = ?" for name in _RECORD_FIELDS)
        try:
            conn.execute(
                f"UPDATE tasks SET {assignments} WHERE id = ?",  # noqa: S608
                (*_column_values(record), task_id),
            )
            if subtasks is not None:
                conn.execute("DELETE FROM subtasks WHERE task_id = ?", (task_id,))
                _insert_subtasks(conn, task_id, subtasks)  # type: ignore[arg-type]
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Failed to update task: {e}") from e
        updated = _fetch_one(conn, task_id)
        assert updated is not None
        if updated.is_completed and not old.is_completed:
            _spawn_next(conn, updated)
    return updated


def delete_task(task_id: str) -> bool:
    _guard(task_id)
    with db.get_db() as conn:
        cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        return cursor.rowcount > 0


def _require(task_id: str) -> Task:
    _guard(task_id)
    task = get_task(task_id)
    if task is None:
        raise NotFoundError(f"No task with id '{task_id}'")
    return task


def complete_task(task_id: str) -> Task:
    task = _require(task_id)
    if task.is_completed:
        return task
    updated = update_task(task_id, TaskPatch(is_completed=True))
    assert updated is not None
    return updated


def toggle_task(task_id: str) -> Task:
    task = _require(task_id)
    updated = update_task(task_id, TaskPatch(is_completed=not task.is_completed))
    assert updated is not None
    return updated


def toggle_important(task_id: str) -> Task:
    task = _require(task_id)
    updated = update_task(task_id, TaskPatch(is_important=not task.is_important))
    assert updated is not None
    return updated


def find_task(ref: str) -> Task | None:
    """Pending tasks first, then the whole history."""
    return find_in_pool(ref, get_tasks(include_completed=False)) or find_in_pool(ref, get_tasks())


def find_task_exact(ref: str) -> Task | None:
    return find_in_pool_exact(ref, get_tasks())


def _spawned_from(task_id: str) -> Task | None:
    with db.get_db() as conn:
        found = _fetch_tasks(conn, "parent_task_id = ?", (task_id,))
    return found[0] if found else None


# ── cli ──────────────────────────────────────────────────────────────────────


def _join_ref(ref: list[str], usage: str) -> str:
    item_ref = " ".join(ref) if ref else ""
    if not item_ref:
        raise UsageError(f"Usage: {usage}")
    return item_ref


def _period_anchor(target_week: str | None, target_month: str | None) -> date:
    """First day of the targeted week or month; today for a plain task."""
    if target_week and (w := key_to_week_info(target_week)):
        return w.start_date
    if target_month and (ym := parse_year_month(target_month)):
        return date(ym[0], ym[1], 1)
    return clock.today()


@cli("agenda")
def add(
    title: list[str],
    due: str | None = None,
    at: str | None = None,
    week: str | None = None,
    month: str | None = None,
    group: str | None = None,
    important: bool = False,
    desc: str | None = None,
    every: str | None = None,
    interval: int | None = None,
    on: str | None = None,
    until: str | None = None,
    sub: list[str] | None = None,
) -> None:
    """Add a task, week goal or month goal"""
    from .lib.resolve import resolve_group

    text = _join_ref(title, "agenda add <title> [--due D | --week KEY | --month YYYY-MM]")
    if sum(x is not None for x in (due, week, month)) > 1:
        raise UsageError("Use only one of --due, --week, --month")

    scope, target_week, target_month, due_date = Scope.DATE, None, None, None
    if week is not None:
        target_week = parse_week_ref(week)
        if target_week is None:
            raise UsageError(f"Unknown week '{week}' - use YYYY-MM-Wn, this or next")
        scope = Scope.WEEK
    elif month is not None:
        target_month = parse_month_ref(month)
        if target_month is None:
            raise UsageError(f"Unknown month '{month}' - use YYYY-MM, this or next")
        scope = Scope.MONTH
    elif due is not None:
        due_date = parse_due_date(due)
        if due_date is None:
            raise UsageError(f"Could not parse --due '{due}'")

    try:
        due_time = parse_time(at) if at else None
        days = parse_weekdays(on) if on else []
    except ValueError as e:
        raise UsageError(str(e)) from None

    end_date = None
    if until is not None:
        end_date = parse_due_date(until)
        if end_date is None:
            raise UsageError(f"Could not parse --until '{until}'")

    if every is not None:
        if every not in _KNOWN_PATTERNS:
            raise UsageError(f"--every must be one of: {', '.join(p.value for p in Pattern)}")
        if due_date is None:
            due_date = _period_anchor(target_week, target_month)
    elif interval is not None or on is not None or until is not None:
        raise UsageError("--interval, --on and --until need --every")

    group_id = resolve_group(group).id if group else config.get_default_group()

    draft = TaskDraft(
        title=text,
        description=desc,
        is_important=important,
        group_id=group_id,
        scope=scope,
        due_date=due_date,
        due_time=due_time,
        target_week=target_week,
        target_month=target_month,
        is_recurring=every is not None,
        recurrence_pattern=every,
        recurrence_interval=interval,
        recurrence_days=days,
        recurrence_end_date=end_date,
        subtasks=[SubtaskDraft(title=s) for s in sub or []],
    )
    task = add_task(draft)
    print(format_status("□", task.title, task.id))


@cli("agenda", name="ls")
def list_tasks(all_: bool = False) -> None:
    """List pending tasks (--all includes completed)"""
    from .groups import get_groups

    tasks = get_tasks(include_completed=all_)
    if not tasks:
        print("no tasks")
        return
    groups = {g.id: g for g in get_groups()}
    for task in tasks:
        print(format_task(task, groups, show_id=True))


@cli("agenda")
def show(ref: list[str]) -> None:
    """Show full task detail"""
    from .groups import get_group
    from .lib.resolve import resolve_task

    t = resolve_task(_join_ref(ref, "agenda show <task>"))
    print(format_task(t, show_id=True))
    if t.description:
        print(f"  {t.description}")
    if t.scope == Scope.WEEK and t.target_week:
        w = key_to_week_info(t.target_week)
        print(f"  {ansi.muted('week')}   {w.label if w else t.target_week}")
    elif t.scope == Scope.MONTH and t.target_month:
        print(f"  {ansi.muted('month')}  {t.target_month}")
    elif t.due_date:
        when = t.due_date.isoformat() + (f" {t.due_time}" if t.due_time else "")
        print(f"  {ansi.muted('due')}    {when}")
    if t.group_id:
        g = get_group(t.group_id)
        if g:
            print(f"  {ansi.muted('group')}  {ansi.hex_color(g.color, g.name)}")
    if t.is_recurring:
        print(f"  {ansi.muted('repeat')} {format_recurrence(t)}")
    for index, s in enumerate(t.subtasks, 1):
        print(format_subtask(s, index))


@cli("agenda")
def done(ref: list[str]) -> None:
    """Toggle a task complete (completing a recurring task schedules the next one)"""
    from .lib.resolve import resolve_task

    t = resolve_task(_join_ref(ref, "agenda done <task>"))
    updated = toggle_task(t.id)
    if not updated.is_completed:
        print(format_status("□", updated.title, updated.id))
        return
    print(format_status(ansi.green("✓"), updated.title, updated.id))
    spawned = _spawned_from(updated.id) if updated.is_recurring else None
    if spawned and spawned.due_date:
        print(format_status(ansi.muted("↻"), f"next {spawned.due_date.isoformat()}", spawned.id))


@cli("agenda")
def star(ref: list[str]) -> None:
    """Toggle a task important"""
    from .lib.resolve import resolve_task

    t = resolve_task(_join_ref(ref, "agenda star <task>"))
    updated = toggle_important(t.id)
    symbol = ansi.gold("★") if updated.is_important else "☆"
    print(format_status(symbol, updated.title, updated.id))


@cli("agenda")
def rm(ref: list[str]) -> None:
    """Delete a task and its subtasks"""
    from .lib.resolve import resolve_task

    t = resolve_task(_join_ref(ref, "agenda rm <task>"))
    delete_task(t.id)
    print(format_status(ansi.red("✗"), t.title, t.id))


@cli("agenda")
def move(when: str, ref: list[str], at: str | None = None) -> None:
    """Reschedule: a date, a week (YYYY-MM-Wn, week, next-week) or a month (YYYY-MM, month)"""
    from .lib.resolve import resolve_task

    t = resolve_task(_join_ref(ref, "agenda move <when> <task>"))
    try:
        patch = parse_when(when)
        if at is not None:
            patch = TaskPatch(**{**patch.fields_set(), "due_time": parse_time(at)})
    except ValueError as e:
        raise UsageError(str(e)) from None
    updated = update_task(t.id, patch)
    assert updated is not None
    if updated.scope == Scope.WEEK:
        label = updated.target_week or ""
    elif updated.scope == Scope.MONTH:
        label = updated.target_month or ""
    else:
        label = updated.due_date.isoformat() if updated.due_date else "unscheduled"
    print(format_status(ansi.muted(label), updated.title, updated.id))
