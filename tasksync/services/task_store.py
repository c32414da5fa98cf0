from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

from tasksync.domain.entities import Task
from tasksync.domain.enums import SortDirection
from tasksync.domain.filters import DEFAULT_FILTERS, TaskFilters


@dataclass(frozen=True)
class TaskState:
    """Immutable snapshot of the task collection and the view filters."""

    entities: Mapping[str, Task] = field(default_factory=lambda: MappingProxyType({}))
    ids: tuple[str, ...] = ()
    filters: TaskFilters = DEFAULT_FILTERS


def select_task(state: TaskState, task_id: str) -> Task | None:
    return state.entities.get(task_id)


def select_all(state: TaskState) -> list[Task]:
    return [state.entities[task_id] for task_id in state.ids if task_id in state.entities]


def select_visible(state: TaskState) -> Iterator[Task]:
    filters = state.filters
    visible = [task for task in select_all(state) if filters.matches(task)]
    # sorted() is stable, ties keep the id order, also with reverse=True
    yield from sorted(
        visible,
        key=filters.sort_key,
        reverse=filters.sort_direction == SortDirection.DESC,
    )


class TaskStore:
    def __init__(self, state: TaskState | None = None) -> None:
        self._state = state or TaskState()

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def filters(self) -> TaskFilters:
        return self._state.filters

    def get(self, task_id: str) -> Task | None:
        return select_task(self._state, task_id)

    def all(self) -> list[Task]:
        return select_all(self._state)

    def select_visible(self) -> Iterator[Task]:
        return select_visible(self._state)

    def __len__(self) -> int:
        return len(self._state.entities)

    def upsert_many(self, tasks: Iterable[Task]) -> None:
        entities = dict(self._state.entities)
        for task in tasks:
            entities[task.id] = task
        ids = sorted(entities, key=lambda task_id: entities[task_id].updated_at, reverse=True)
        self._replace(entities, tuple(ids))

    def apply_partial_update(self, task_id: str, changes: Mapping[str, Any]) -> Task | None:
        existing = self._state.entities.get(task_id)
        if existing is None:
            return None
        values = {key: value for key, value in changes.items() if key != "id"}
        updated = replace(existing, **values)
        entities = dict(self._state.entities)
        entities[task_id] = updated
        self._replace(entities, self._state.ids)
        return updated

    def remove(self, task_id: str) -> Task | None:
        existing = self._state.entities.get(task_id)
        if existing is None:
            return None
        entities = dict(self._state.entities)
        del entities[task_id]
        ids = tuple(existing_id for existing_id in self._state.ids if existing_id != task_id)
        self._replace(entities, ids)
        return existing

    def set_filters(self, **changes: Any) -> TaskFilters:
        self._state = replace(self._state, filters=self._state.filters.merge(changes))
        return self._state.filters

    def reset_filters(self) -> TaskFilters:
        self._state = replace(self._state, filters=DEFAULT_FILTERS)
        return self._state.filters

    def reset(self) -> None:
        self._state = TaskState()

    def _replace(self, entities: dict[str, Task], ids: tuple[str, ...]) -> None:
        self._state = replace(self._state, entities=MappingProxyType(entities), ids=ids)
