from collections.abc import Callable, Sequence
from difflib import get_close_matches
from typing import TypeVar

from agenda.core.errors import AmbiguousError
from agenda.core.models import Group, Task

__all__ = ["find_in_pool", "find_in_pool_exact"]

FUZZY_MATCH_CUTOFF = 0.8

T = TypeVar("T", Task, Group)


def _label(item: Task | Group) -> str:
    return item.title if isinstance(item, Task) else item.name


def _match_id_prefix(ref: str, pool: Sequence[T]) -> T | None:
    ref_lower = ref.lower()
    exact = next((item for item in pool if item.id == ref), None)
    if exact:
        return exact
    if len(ref_lower) < 4:
        return None
    matches = [item for item in pool if item.id.lower().startswith(ref_lower)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        sample = [item.id[:8] for item in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_substring(ref: str, pool: Sequence[T], label: Callable[[T], str]) -> T | None:
    ref_lower = ref.lower()
    exact = [item for item in pool if label(item).lower() == ref_lower]
    if len(exact) == 1:
        return exact[0]
    matches = exact or [item for item in pool if ref_lower in label(item).lower()]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        sample = [label(item) for item in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_fuzzy(ref: str, pool: Sequence[T], label: Callable[[T], str]) -> T | None:
    labels = [label(item).lower() for item in pool]
    matches = get_close_matches(ref.lower(), labels, n=1, cutoff=FUZZY_MATCH_CUTOFF)
    if matches:
        return pool[labels.index(matches[0])]
    return None


def find_in_pool(ref: str, pool: Sequence[T]) -> T | None:
    """id (or id prefix of 4+ chars), then exact/substring title, then fuzzy title."""
    if not pool or not ref.strip():
        return None
    return (
        _match_id_prefix(ref, pool)
        or _match_substring(ref, pool, _label)
        or _match_fuzzy(ref, pool, _label)
    )


def find_in_pool_exact(ref: str, pool: Sequence[T]) -> T | None:
    if not pool or not ref.strip():
        return None
    return _match_id_prefix(ref, pool) or _match_substring(ref, pool, _label)
