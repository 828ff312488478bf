import re
import uuid
from collections import Counter
from collections.abc import Iterable

from fncli import UsageError, cli

from . import config, db
from .core.errors import NotFoundError, ValidationError
from .core.models import Entry, Group
from .core.types import UNSET, Maybe, is_set
from .lib.converters import GROUP_COLS, row_to_group
from .lib.format import format_group, format_status
from .lib.fuzzy import find_in_pool

__all__ = [
    "UNGROUPED",
    "add_group",
    "delete_group",
    "find_group",
    "get_group",
    "get_groups",
    "group_counts",
    "update_group",
]

UNGROUPED = "ungrouped"

_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


def _check_color(color: str) -> str:
    if not _COLOR_RE.match(color):
        raise ValidationError(f"Invalid color '{color}' - use #rrggbb")
    return color.lower()


def _check_name(name: str) -> str:
    if not name or not name.strip():
        raise ValidationError("Group name cannot be empty")
    return name.strip()


def get_groups() -> list[Group]:
    with db.get_db() as conn:
        rows = conn.execute(f"SELECT {GROUP_COLS} FROM groups ORDER BY rowid").fetchall()  # noqa: S608
    return [row_to_group(r) for r in rows]


def get_group(group_id: str) -> Group | None:
    with db.get_db() as conn:
        row = conn.execute(
            f"SELECT {GROUP_COLS} FROM groups WHERE id = ?",  # noqa: S608
            (group_id,),
        ).fetchone()
    return row_to_group(row) if row else None


def add_group(name: str, color: str = config.DEFAULT_GROUP_COLOR) -> Group:
    group = Group(id=str(uuid.uuid4()), name=_check_name(name), color=_check_color(color))
    with db.get_db() as conn:
        conn.execute(
            "INSERT INTO groups (id, name, color) VALUES (?, ?, ?)",
            (group.id, group.name, group.color),
        )
    return group


def update_group(group_id: str, name: Maybe[str] = UNSET, color: Maybe[str] = UNSET) -> Group | None:
    updates: dict[str, str] = {}
    if is_set(name):
        updates["name"] = _check_name(name)
    if is_set(color):
        updates["color"] = _check_color(color)
    if updates:
        set_clauses = ", ".join(f"{k} = ?" for k in updates)
        with db.get_db() as conn:
            conn.execute(
                f"UPDATE groups SET {set_clauses} WHERE id = ?",  # noqa: S608
                (*updates.values(), group_id),
            )
    return get_group(group_id)


def delete_group(group_id: str) -> bool:
    """Delete a user group. Built-in groups are refused; member tasks become ungrouped."""
    if group_id in config.PROTECTED_GROUP_IDS:
        return False
    with db.get_db() as conn:
        conn.execute("UPDATE tasks SET group_id = NULL WHERE group_id = ?", (group_id,))
        cursor = conn.execute("DELETE FROM groups WHERE id = ?", (group_id,))
        return cursor.rowcount > 0


def group_counts(items: Iterable[Entry]) -> dict[str, int]:
    """Task totals per group id; tasks without a group count under 'ungrouped'."""
    return dict(Counter(item.group_id or UNGROUPED for item in items))


def find_group(ref: str) -> Group | None:
    return find_in_pool(ref, get_groups())


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("agenda group", name="ls")
def group_ls() -> None:
    """List groups with task counts"""
    from .tasks import get_tasks

    counts = group_counts(get_tasks(include_completed=False))
    for g in get_groups():
        print(format_group(g, counts.get(g.id, 0)))
    if counts.get(UNGROUPED):
        print(f"  {UNGROUPED} ({counts[UNGROUPED]})")


@cli("agenda group", name="add")
def group_add(name: list[str], color: str = config.DEFAULT_GROUP_COLOR) -> None:
    """Create a group"""
    text = " ".join(name)
    if not text:
        raise UsageError("Usage: agenda group add <name> [--color #rrggbb]")
    g = add_group(text, color)
    print(format_status("●", g.name, g.id))


@cli("agenda group", name="rm")
def group_rm(ref: list[str]) -> None:
    """Delete a group (its tasks become ungrouped)"""
    from .lib.resolve import resolve_group

    g = resolve_group(" ".join(ref))
    if not delete_group(g.id):
        raise UsageError(f"'{g.name}' is a built-in group and cannot be deleted")
    print(format_status("✗", g.name, g.id))


@cli("agenda group", name="rename")
def group_rename(ref: str, name: list[str], color: str | None = None) -> None:
    """Rename a group, optionally recoloring it"""
    from .lib.resolve import resolve_group

    g = resolve_group(ref)
    updated = update_group(g.id, name=" ".join(name), color=color if color is not None else UNSET)
    if updated is None:
        raise NotFoundError(f"No group found: '{ref}'")
    print(format_status("●", updated.name, updated.id))
