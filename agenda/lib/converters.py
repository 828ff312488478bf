import json
import logging
from datetime import date, datetime
from typing import cast

from agenda.core.models import Group, Scope, Subtask, Task

logger = logging.getLogger(__name__)

Row = tuple[object, ...]

TASK_COLS = (
    "id, title, created_at, description, is_completed, is_important, group_id, scope, "
    "due_date, due_time, target_week, target_month, is_recurring, recurrence_pattern, "
    "recurrence_interval, recurrence_days, recurrence_end_date, parent_task_id"
)
SUBTASK_COLS = "id, task_id, title, is_completed, position"
GROUP_COLS = "id, name, color"


def _parse_date(val) -> date | None:
    """Parse a stored ISO date; tolerates full ISO datetimes."""
    if isinstance(val, str) and val:
        return date.fromisoformat(val.split("T")[0])
    return None


def _parse_datetime(val) -> datetime:
    if isinstance(val, (int, float)):
        return datetime.fromtimestamp(val)
    if isinstance(val, str) and val:
        try:
            return datetime.fromisoformat(val.replace("Z", "+00:00")).replace(tzinfo=None)
        except ValueError:
            return datetime.combine(date.fromisoformat(val), datetime.min.time())
    return datetime.min


def _parse_scope(val) -> Scope:
    try:
        return Scope(val) if val else Scope.DATE
    except ValueError:
        logger.warning("unknown scope %r; treating as date", val)
        return Scope.DATE


def parse_recurrence_days(val) -> list[int]:
    """Stored as a JSON list of Sunday=0 weekday indices. Absent or bad data = no restriction."""
    if not val:
        return []
    try:
        days = json.loads(cast(str, val))
    except (TypeError, ValueError):
        logger.warning("malformed recurrence_days %r ignored", val)
        return []
    if not isinstance(days, list):
        return []
    return sorted({d for d in days if isinstance(d, int) and 0 <= d <= 6})


def dump_recurrence_days(days: list[int] | None) -> str | None:
    return json.dumps(sorted(set(days))) if days else None


def row_to_task(row: Row, subtasks: list[Subtask] | None = None) -> Task:
    """
    Converts a raw database row from the tasks table into a Task object.
    Expected row format: TASK_COLS order.
    """
    is_recurring = bool(row[12])
    return Task(
        id=cast(str, row[0]),
        title=cast(str, row[1]),
        created_at=_parse_datetime(row[2]),
        description=cast(str, row[3]) if row[3] is not None else None,
        is_completed=bool(row[4]),
        is_important=bool(row[5]),
        group_id=cast(str, row[6]) if row[6] is not None else None,
        scope=_parse_scope(row[7]),
        due_date=_parse_date(row[8]),
        due_time=cast(str, row[9]) if row[9] is not None else None,
        target_week=cast(str, row[10]) if row[10] is not None else None,
        target_month=cast(str, row[11]) if row[11] is not None else None,
        is_recurring=is_recurring,
        recurrence_pattern=cast(str, row[13]) if is_recurring and row[13] is not None else None,
        recurrence_interval=int(cast(int, row[14])) if is_recurring and row[14] is not None else None,
        recurrence_days=parse_recurrence_days(row[15]) if is_recurring else [],
        recurrence_end_date=_parse_date(row[16]) if is_recurring else None,
        parent_task_id=cast(str, row[17]) if row[17] is not None else None,
        subtasks=subtasks or [],
    )


def row_to_subtask(row: Row) -> Subtask:
    return Subtask(
        id=cast(str, row[0]),
        task_id=cast(str, row[1]),
        title=cast(str, row[2]),
        is_completed=bool(row[3]),
        position=int(cast(int, row[4])),
    )


def row_to_group(row: Row) -> Group:
    return Group(id=cast(str, row[0]), name=cast(str, row[1]), color=cast(str, row[2]))
