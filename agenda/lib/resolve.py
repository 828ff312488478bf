from agenda.core.errors import NotFoundError, ReadOnlyError
from agenda.core.models import Group, Task, is_virtual_id

__all__ = ["resolve_group", "resolve_task"]


def resolve_task(ref: str) -> Task:
    from agenda.tasks import find_task

    if is_virtual_id(ref):
        raise ReadOnlyError(ref)
    task = find_task(ref)
    if not task:
        raise NotFoundError(f"No task found: '{ref}'")
    return task


def resolve_group(ref: str) -> Group:
    from agenda.groups import find_group

    group = find_group(ref)
    if not group:
        raise NotFoundError(f"No group found: '{ref}'")
    return group
