from datetime import date, datetime

import pytest

from agenda.core.errors import ValidationError
from agenda.core.models import Task, TaskDraft
from agenda.groups import (
    UNGROUPED,
    add_group,
    delete_group,
    find_group,
    get_group,
    get_groups,
    group_counts,
    update_group,
)
from agenda.tasks import add_task, get_task


def test_builtin_groups_listed_first(tmp_agenda_dir):
    add_group("Work", "#FF0000")
    assert [g.name for g in get_groups()] == ["General", "Completed", "Work"]


def test_add_normalizes_color(tmp_agenda_dir):
    group = add_group("  Home ", "#ABCDEF")
    assert group.name == "Home"
    assert get_group(group.id).color == "#abcdef"


@pytest.mark.parametrize(("name", "color"), [("", "#000000"), ("Home", "red"), ("Home", "#12345")])
def test_add_validation(tmp_agenda_dir, name, color):
    with pytest.raises(ValidationError):
        add_group(name, color)


def test_update_partial(tmp_agenda_dir):
    group = add_group("Home", "#000000")
    updated = update_group(group.id, name="House")
    assert updated.name == "House"
    assert updated.color == "#000000"
    assert update_group("missing", name="x") is None


def test_delete_ungroups_member_tasks(tmp_agenda_dir):
    group = add_group("Home")
    task = add_task(TaskDraft(title="fix tap", group_id=group.id))
    assert delete_group(group.id) is True
    assert get_task(task.id).group_id is None
    assert delete_group(group.id) is False


def test_builtin_groups_are_protected(tmp_agenda_dir):
    assert delete_group("default") is False
    assert delete_group("completed") is False
    assert get_group("default") is not None


def test_find_group_by_name(tmp_agenda_dir):
    work = add_group("Work")
    assert find_group("work").id == work.id
    assert find_group("general").id == "default"


def test_group_counts():
    created = datetime(2024, 1, 1)
    items = [
        Task(id="1", title="a", created_at=created, group_id="g1"),
        Task(id="2", title="b", created_at=created, group_id="g1", due_date=date(2024, 1, 2)),
        Task(id="3", title="c", created_at=created),
    ]
    assert group_counts(items) == {"g1": 2, UNGROUPED: 1}
    assert group_counts([]) == {}
