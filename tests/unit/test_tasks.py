from datetime import date

import pytest

from agenda import db
from agenda.core.errors import ConflictError, NotFoundError, ReadOnlyError, ValidationError
from agenda.core.models import Scope, SubtaskDraft, TaskDraft, TaskPatch, virtual_id
from agenda.tasks import (
    add_task,
    complete_task,
    delete_task,
    find_task,
    get_task,
    get_tasks,
    toggle_important,
    toggle_task,
    update_task,
)


def _recurring(**overrides) -> TaskDraft:
    fields = {
        "title": "water plants",
        "due_date": date(2024, 6, 10),
        "is_recurring": True,
        "recurrence_pattern": "weekly",
    }
    fields.update(overrides)
    return TaskDraft(**fields)


def _children(task_id: str) -> list[str]:
    with db.get_db() as conn:
        return [r[0] for r in conn.execute("SELECT id FROM tasks WHERE parent_task_id = ?", (task_id,))]


def test_add_and_get(tmp_agenda_dir, frozen_today):
    task = add_task(TaskDraft(title="  buy milk ", due_date=date(2024, 6, 12), due_time="08:00"))
    assert task.title == "buy milk"
    assert task.scope == Scope.DATE
    assert task.created_at.date() == frozen_today
    assert get_task(task.id) == task


def test_add_with_subtasks_keeps_order(tmp_agenda_dir):
    task = add_task(TaskDraft(title="trip", subtasks=[SubtaskDraft("pack"), SubtaskDraft("tickets")]))
    assert [s.title for s in task.subtasks] == ["pack", "tickets"]
    assert [s.position for s in task.subtasks] == [0, 1]


def test_add_rejects_duplicate_subtask_positions(tmp_agenda_dir):
    drafts = [SubtaskDraft("a", position=1), SubtaskDraft("b", position=1)]
    with pytest.raises(ConflictError):
        add_task(TaskDraft(title="x", subtasks=drafts))
    assert get_tasks() == []


@pytest.mark.parametrize(
    "draft",
    [
        TaskDraft(title="   "),
        TaskDraft(title="x", due_time="25:00"),
        TaskDraft(title="x", scope=Scope.WEEK, target_week="2024-06-W9"),
        TaskDraft(title="x", scope=Scope.MONTH, target_month="2024-13"),
        TaskDraft(title="x", is_recurring=True, recurrence_pattern="hourly"),
        TaskDraft(title="x", is_recurring=True, recurrence_pattern="daily", recurrence_interval=0),
        TaskDraft(title="x", is_recurring=True, recurrence_pattern="weekly", recurrence_days=[7]),
        TaskDraft(title="x", group_id="no-such-group"),
    ],
)
def test_add_validation(tmp_agenda_dir, draft):
    with pytest.raises(ValidationError):
        add_task(draft)


def test_recurring_defaults_interval_and_sorts_days(tmp_agenda_dir):
    task = add_task(_recurring(recurrence_days=[5, 1, 5]))
    assert task.recurrence_interval == 1
    assert task.recurrence_days == [1, 5]


def test_non_recurring_task_drops_rule(tmp_agenda_dir):
    task = add_task(TaskDraft(title="x", recurrence_pattern="daily", recurrence_interval=3))
    assert task.recurrence_pattern is None
    assert task.recurrence_interval is None


def test_update_patch_unset_vs_none(tmp_agenda_dir):
    task = add_task(TaskDraft(title="x", description="notes", due_date=date(2024, 6, 1)))
    updated = update_task(task.id, TaskPatch(title="y"))
    assert updated.description == "notes"
    assert updated.due_date == date(2024, 6, 1)
    cleared = update_task(task.id, TaskPatch(description=None, due_date=None))
    assert cleared.description is None
    assert cleared.due_date is None
    assert cleared.title == "y"


def test_update_turning_off_recurrence_clears_rule(tmp_agenda_dir):
    task = add_task(_recurring(recurrence_days=[1]))
    updated = update_task(task.id, TaskPatch(is_recurring=False))
    assert updated.recurrence_pattern is None
    assert updated.recurrence_days == []


def test_update_missing_returns_none(tmp_agenda_dir):
    assert update_task("nope", TaskPatch(title="x")) is None


def test_update_replaces_subtasks(tmp_agenda_dir):
    task = add_task(TaskDraft(title="x", subtasks=[SubtaskDraft("old")]))
    updated = update_task(task.id, TaskPatch(subtasks=[SubtaskDraft("new 1"), SubtaskDraft("new 2")]))
    assert [s.title for s in updated.subtasks] == ["new 1", "new 2"]


def test_completing_recurring_task_spawns_next(tmp_agenda_dir):
    task = add_task(_recurring(subtasks=[SubtaskDraft("soil")]))
    done = complete_task(task.id)
    assert done.is_completed
    spawned_ids = _children(task.id)
    assert len(spawned_ids) == 1
    nxt = get_task(spawned_ids[0])
    assert nxt.due_date == date(2024, 6, 17)
    assert nxt.is_completed is False
    assert nxt.parent_task_id == task.id
    assert [s.title for s in nxt.subtasks] == ["soil"]
    assert nxt.subtasks[0].is_completed is False


def test_retoggling_does_not_spawn_twice(tmp_agenda_dir):
    task = add_task(_recurring())
    toggle_task(task.id)
    toggle_task(task.id)
    toggle_task(task.id)
    assert len(_children(task.id)) == 1


def test_completing_after_end_date_spawns_nothing(tmp_agenda_dir):
    task = add_task(_recurring(recurrence_end_date=date(2024, 6, 12)))
    complete_task(task.id)
    assert _children(task.id) == []


def test_completing_plain_task_spawns_nothing(tmp_agenda_dir):
    task = add_task(TaskDraft(title="x", due_date=date(2024, 6, 10)))
    complete_task(task.id)
    assert len(get_tasks()) == 1


def test_virtual_ids_are_read_only(tmp_agenda_dir):
    task = add_task(_recurring())
    vid = virtual_id(task.id, date(2024, 6, 17))
    with pytest.raises(ReadOnlyError):
        update_task(vid, TaskPatch(is_completed=True))
    with pytest.raises(ReadOnlyError):
        delete_task(vid)
    with pytest.raises(ReadOnlyError):
        toggle_task(vid)
    assert get_task(vid) is None


def test_toggle_important(tmp_agenda_dir):
    task = add_task(TaskDraft(title="x"))
    assert toggle_important(task.id).is_important is True
    assert toggle_important(task.id).is_important is False


def test_toggle_missing_raises(tmp_agenda_dir):
    with pytest.raises(NotFoundError):
        toggle_task("missing")


def test_delete_cascades_subtasks(tmp_agenda_dir):
    task = add_task(TaskDraft(title="x", subtasks=[SubtaskDraft("a")]))
    assert delete_task(task.id) is True
    assert delete_task(task.id) is False
    with db.get_db() as conn:
        assert conn.execute("SELECT COUNT(*) FROM subtasks").fetchone()[0] == 0


def test_get_tasks_sorting_and_filter(tmp_agenda_dir):
    later = add_task(TaskDraft(title="later", due_date=date(2024, 6, 20)))
    sooner = add_task(TaskDraft(title="sooner", due_date=date(2024, 6, 1)))
    undated = add_task(TaskDraft(title="undated"))
    finished = add_task(TaskDraft(title="finished", is_completed=True))
    assert [t.id for t in get_tasks()] == [sooner.id, later.id, undated.id, finished.id]
    assert finished.id not in [t.id for t in get_tasks(include_completed=False)]


def test_find_task_prefers_pending(tmp_agenda_dir):
    add_task(TaskDraft(title="report", is_completed=True))
    pending = add_task(TaskDraft(title="report draft"))
    assert find_task("report").id == pending.id
