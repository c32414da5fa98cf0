from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .errors import SyncError

T = TypeVar("T")


@dataclass(frozen=True)
class Pending:
    pass


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: SyncError

    @property
    def reason(self) -> str:
        return self.error.reason

    @property
    def offline(self) -> bool:
        return self.error.offline


Result = Union[Ok[T], Err]
OperationState = Union[Pending, Ok, Err]


@dataclass(frozen=True)
class Outcome:
    ok: bool
    reason: str | None = None
    queued: bool = False
    task_id: str | None = None

    @classmethod
    def success(cls, task_id: str | None = None, queued: bool = False) -> Outcome:
        return cls(ok=True, queued=queued, task_id=task_id)

    @classmethod
    def failure(cls, reason: str, task_id: str | None = None) -> Outcome:
        return cls(ok=False, reason=reason, task_id=task_id)
