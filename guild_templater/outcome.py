"""Tagged success/failure values passed between backend, steps and retry engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err:
    reason: str

    @property
    def ok(self) -> bool:
        return False


Outcome = Union[Ok[T], Err]
