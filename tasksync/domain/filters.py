from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from .entities import Task
from .enums import SortDirection, SortField, TaskStatus

STATUS_ALL = "all"


@dataclass(frozen=True)
class TaskFilters:
    search: str = ""
    sort_by: SortField = SortField.ASSIGNED_DATE
    sort_direction: SortDirection = SortDirection.ASC
    status: str = STATUS_ALL

    def __post_init__(self) -> None:
        object.__setattr__(self, "sort_by", SortField(self.sort_by))
        object.__setattr__(self, "sort_direction", SortDirection(self.sort_direction))
        if self.status != STATUS_ALL:
            object.__setattr__(self, "status", TaskStatus(self.status))

    def merge(self, changes: dict[str, Any]) -> TaskFilters:
        return replace(self, **changes)

    def matches(self, task: Task) -> bool:
        if self.status != STATUS_ALL and task.status != self.status:
            return False
        return self.search.lower() in task.title.lower()

    def sort_key(self, task: Task) -> datetime:
        value = getattr(task, self.sort_by.value)
        return value if value is not None else task.updated_at


DEFAULT_FILTERS = TaskFilters()
