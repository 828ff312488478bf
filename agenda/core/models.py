import dataclasses
from datetime import date, datetime
from enum import StrEnum

from .types import UNSET, Maybe

VIRTUAL_PREFIX = "virtual-"


class Scope(StrEnum):
    DATE = "date"
    WEEK = "week"
    MONTH = "month"


class Pattern(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclasses.dataclass(frozen=True)
class Subtask:
    id: str
    task_id: str
    title: str
    is_completed: bool
    position: int


@dataclasses.dataclass(frozen=True)
class Group:
    id: str
    name: str
    color: str


@dataclasses.dataclass(frozen=True)
class Task:
    id: str
    title: str
    created_at: datetime
    description: str | None = None
    is_completed: bool = False
    is_important: bool = False
    group_id: str | None = None
    scope: Scope = Scope.DATE
    due_date: date | None = None
    due_time: str | None = None
    target_week: str | None = None
    target_month: str | None = None
    is_recurring: bool = False
    recurrence_pattern: str | None = None
    recurrence_interval: int | None = None
    recurrence_days: list[int] = dataclasses.field(default_factory=list, hash=False)
    recurrence_end_date: date | None = None
    parent_task_id: str | None = None
    subtasks: list[Subtask] = dataclasses.field(default_factory=list, hash=False)


@dataclasses.dataclass(frozen=True)
class SubtaskDraft:
    title: str
    position: int | None = None


@dataclasses.dataclass(frozen=True)
class TaskDraft:
    """Everything needed to create a task; id and created_at are assigned by the store."""

    title: str
    description: str | None = None
    is_completed: bool = False
    is_important: bool = False
    group_id: str | None = None
    scope: Scope = Scope.DATE
    due_date: date | None = None
    due_time: str | None = None
    target_week: str | None = None
    target_month: str | None = None
    is_recurring: bool = False
    recurrence_pattern: str | None = None
    recurrence_interval: int | None = None
    recurrence_days: list[int] = dataclasses.field(default_factory=list, hash=False)
    recurrence_end_date: date | None = None
    parent_task_id: str | None = None
    subtasks: list[SubtaskDraft] = dataclasses.field(default_factory=list, hash=False)


@dataclasses.dataclass(frozen=True)
class TaskPatch:
    """Partial update. UNSET fields are left alone; None clears a nullable column."""

    title: Maybe[str] = UNSET
    description: Maybe[str | None] = UNSET
    is_completed: Maybe[bool] = UNSET
    is_important: Maybe[bool] = UNSET
    group_id: Maybe[str | None] = UNSET
    scope: Maybe[Scope] = UNSET
    due_date: Maybe[date | None] = UNSET
    due_time: Maybe[str | None] = UNSET
    target_week: Maybe[str | None] = UNSET
    target_month: Maybe[str | None] = UNSET
    is_recurring: Maybe[bool] = UNSET
    recurrence_pattern: Maybe[str | None] = UNSET
    recurrence_interval: Maybe[int | None] = UNSET
    recurrence_days: Maybe[list[int] | None] = UNSET
    recurrence_end_date: Maybe[date | None] = UNSET
    subtasks: Maybe[list[SubtaskDraft]] = UNSET

    def fields_set(self) -> dict[str, object]:
        return {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if getattr(self, f.name) is not UNSET
        }


@dataclasses.dataclass(frozen=True)
class WeekInfo:
    week_number: int
    year: int
    month: int
    start_date: date
    end_date: date
    label: str


@dataclasses.dataclass(frozen=True)
class VirtualOccurrence:
    """A recurring task projected onto a date. Never stored.

    Carries a copy of the origin's display fields rather than being a Task, so the
    stores (which only accept Task ids) cannot persist it by accident.
    """

    id: str
    origin_id: str
    title: str
    due_date: date
    created_at: datetime
    description: str | None = None
    is_important: bool = False
    group_id: str | None = None
    scope: Scope = Scope.DATE
    due_time: str | None = None
    target_week: str | None = None
    target_month: str | None = None
    recurrence_pattern: str | None = None
    recurrence_interval: int | None = None
    subtasks: list[Subtask] = dataclasses.field(default_factory=list, hash=False)
    is_completed: bool = dataclasses.field(default=False, init=False)
    is_virtual: bool = dataclasses.field(default=True, init=False)

    @classmethod
    def project(cls, origin: Task, on: date) -> "VirtualOccurrence":
        occurrence_id = virtual_id(origin.id, on)
        subtasks = [
            dataclasses.replace(s, id=f"{occurrence_id}-{i}", task_id=occurrence_id, is_completed=False)
            for i, s in enumerate(origin.subtasks)
        ]
        return cls(
            id=occurrence_id,
            origin_id=origin.id,
            title=origin.title,
            due_date=on,
            created_at=origin.created_at,
            description=origin.description,
            is_important=origin.is_important,
            group_id=origin.group_id,
            scope=origin.scope,
            due_time=origin.due_time,
            target_week=origin.target_week,
            target_month=origin.target_month,
            recurrence_pattern=origin.recurrence_pattern,
            recurrence_interval=origin.recurrence_interval,
            subtasks=subtasks,
        )


def virtual_id(origin_id: str, on: date) -> str:
    return f"{VIRTUAL_PREFIX}{origin_id}-{on.isoformat()}"


def is_virtual_id(item_id: str) -> bool:
    return item_id.startswith(VIRTUAL_PREFIX)


@dataclasses.dataclass(frozen=True)
class Holiday:
    date: date
    name: str
    kind: str = "national"


Entry = Task | VirtualOccurrence
