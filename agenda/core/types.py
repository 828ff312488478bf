"""Core type definitions."""

from enum import Enum
from typing import Literal, TypeVar

T = TypeVar("T")


class _Unset(Enum):
    UNSET = "UNSET"


UNSET: Literal[_Unset.UNSET] = _Unset.UNSET
Unset = Literal[_Unset.UNSET]

# A patch field: either a new value (None included, meaning "clear") or UNSET ("leave alone").
Maybe = T | Unset


def is_set(value: object) -> bool:
    return value is not UNSET
