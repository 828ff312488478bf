import sqlite3
import uuid

from fncli import UsageError, cli

from . import db
from .core.errors import ConflictError, NotFoundError, ReadOnlyError, ValidationError
from .core.models import Subtask, is_virtual_id
from .core.types import UNSET, Maybe, is_set
from .lib import ansi
from .lib.converters import SUBTASK_COLS, row_to_subtask
from .lib.format import format_status
from .lib.parsing import validate_title

__all__ = [
    "add_subtask",
    "delete_subtask",
    "get_subtask",
    "get_subtasks",
    "toggle_subtask",
    "update_subtask",
]


def _position_conflict(e: sqlite3.IntegrityError) -> bool:
    return "subtasks.task_id, subtasks.position" in str(e) or "idx_subtasks_position" in str(e)


def get_subtasks(task_id: str) -> list[Subtask]:
    with db.get_db() as conn:
        rows = conn.execute(
            f"SELECT {SUBTASK_COLS} FROM subtasks WHERE task_id = ? ORDER BY position",  # noqa: S608
            (task_id,),
        ).fetchall()
    return [row_to_subtask(r) for r in rows]


def get_subtask(subtask_id: str) -> Subtask | None:
    with db.get_db() as conn:
        row = conn.execute(
            f"SELECT {SUBTASK_COLS} FROM subtasks WHERE id = ?",  # noqa: S608
            (subtask_id,),
        ).fetchone()
    return row_to_subtask(row) if row else None


def add_subtask(task_id: str, title: str, position: int | None = None) -> Subtask:
    """Append a checklist item. Without a position it goes after the current last one."""
    if is_virtual_id(task_id):
        raise ReadOnlyError(task_id)
    try:
        validate_title(title)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    subtask_id = str(uuid.uuid4())
    with db.get_db() as conn:
        if not conn.execute("SELECT 1 FROM tasks WHERE id = ?", (task_id,)).fetchone():
            raise NotFoundError(f"No task with id '{task_id}'")
        if position is None:
            row = conn.execute(
                "SELECT COALESCE(MAX(position), -1) FROM subtasks WHERE task_id = ?", (task_id,)
            ).fetchone()
            position = int(row[0]) + 1
        try:
            conn.execute(
                "INSERT INTO subtasks (id, task_id, title, is_completed, position) VALUES (?, ?, ?, 0, ?)",
                (subtask_id, task_id, title.strip(), position),
            )
        except sqlite3.IntegrityError as e:
            if _position_conflict(e):
                raise ConflictError(f"Position {position} is taken on task '{task_id}'") from e
            raise ValidationError(f"Failed to add subtask: {e}") from e
    return Subtask(id=subtask_id, task_id=task_id, title=title.strip(), is_completed=False, position=position)


def update_subtask(
    subtask_id: str,
    title: Maybe[str] = UNSET,
    is_completed: Maybe[bool] = UNSET,
    position: Maybe[int] = UNSET,
) -> Subtask | None:
    if is_virtual_id(subtask_id):
        raise ReadOnlyError(subtask_id)
    updates: dict[str, object] = {}
    if is_set(title):
        try:
            validate_title(title)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        updates["title"] = title.strip()
    if is_set(is_completed):
        updates["is_completed"] = int(is_completed)
    if is_set(position):
        updates["position"] = position

    if updates:
        set_clauses = ", ".join(f"{k} = ?" for k in updates)
        with db.get_db() as conn:
            try:
                conn.execute(
                    f"UPDATE subtasks SET {set_clauses} WHERE id = ?",  # noqa: S608
                    (*updates.values(), subtask_id),
                )
            except sqlite3.IntegrityError as e:
                if _position_conflict(e):
                    raise ConflictError(f"Position {position} is taken") from e
                raise ValidationError(f"Failed to update subtask: {e}") from e
    return get_subtask(subtask_id)


def toggle_subtask(subtask_id: str) -> Subtask:
    if is_virtual_id(subtask_id):
        raise ReadOnlyError(subtask_id)
    current = get_subtask(subtask_id)
    if current is None:
        raise NotFoundError(f"No subtask with id '{subtask_id}'")
    updated = update_subtask(subtask_id, is_completed=not current.is_completed)
    assert updated is not None
    return updated


def delete_subtask(subtask_id: str) -> bool:
    if is_virtual_id(subtask_id):
        raise ReadOnlyError(subtask_id)
    with db.get_db() as conn:
        return conn.execute("DELETE FROM subtasks WHERE id = ?", (subtask_id,)).rowcount > 0


# ── cli ──────────────────────────────────────────────────────────────────────


def _pick(task_ref: str, index: int) -> Subtask:
    from .lib.resolve import resolve_task

    task = resolve_task(task_ref)
    if not 1 <= index <= len(task.subtasks):
        raise UsageError(f"'{task.title}' has {len(task.subtasks)} subtasks; got #{index}")
    return task.subtasks[index - 1]


@cli("agenda sub", name="add")
def sub_add(task: str, title: list[str]) -> None:
    """Add a checklist item to a task"""
    from .lib.resolve import resolve_task

    text = " ".join(title)
    if not text:
        raise UsageError("Usage: agenda sub add <task> <title>")
    parent = resolve_task(task)
    s = add_subtask(parent.id, text)
    print(format_status("  └ □", s.title, parent.id))


@cli("agenda sub", name="done")
def sub_done(task: str, index: int) -> None:
    """Toggle checklist item N (1-based) on a task"""
    s = toggle_subtask(_pick(task, index).id)
    box = ansi.green("✓") if s.is_completed else "□"
    print(format_status(f"  └ {box}", s.title))


@cli("agenda sub", name="rm")
def sub_rm(task: str, index: int) -> None:
    """Remove checklist item N (1-based) from a task"""
    s = _pick(task, index)
    delete_subtask(s.id)
    print(format_status(f"  └ {ansi.red('✗')}", s.title))
