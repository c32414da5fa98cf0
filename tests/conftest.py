from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest
from sqlalchemy.pool import StaticPool

from tasksync.domain.entities import OfflineMutation, Task
from tasksync.domain.enums import MutationType, TaskStatus
from tasksync.domain.errors import BackendRejectedError, SyncError, UnreachableError
from tasksync.domain.results import Err, Ok
from tasksync.infra.cache import CacheBridge
from tasksync.infra.db import init_db, make_engine, make_sessionmaker
from tasksync.infra.gateway import ReplayReport

BASE_TIME = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


def make_task(task_id: str = "task-1", minutes: int = 0, **overrides: Any) -> Task:
    stamp = BASE_TIME + timedelta(minutes=minutes)
    values = dict(
        id=task_id,
        title="Sample",
        description="Test task",
        assigned_to="user@example.com",
        assigned_date=stamp,
        due_date=None,
        completed=False,
        status=TaskStatus.NOT_STARTED,
        created_at=stamp,
        updated_at=stamp,
        created_by="admin",
    )
    values.update(overrides)
    return Task(**values)


class MemoryKeyValueStore:
    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.fail_writes = False

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class FakeGateway:
    """In-memory stand-in for the remote store.

    ``failure`` makes every call fail with that error; ``fail_replay_at``
    makes replay fail on the entry with that index.
    """

    def __init__(self) -> None:
        self.rows: dict[str, Task] = {}
        self.failure: SyncError | None = None
        self.fail_replay_at: int | None = None
        self.calls: list[str] = []
        self.on_call: Callable[[str], None] | None = None
        self.server_time = BASE_TIME + timedelta(days=1)

    def _enter(self, name: str) -> Err | None:
        self.calls.append(name)
        if self.on_call is not None:
            self.on_call(name)
        if self.failure is not None:
            return Err(self.failure)
        return None

    def fetch_all(self):
        failed = self._enter("fetch_all")
        if failed:
            return failed
        return Ok(sorted(self.rows.values(), key=lambda t: t.updated_at, reverse=True))

    def create(self, task: Task):
        failed = self._enter("create")
        if failed:
            return failed
        stored = replace(task, created_at=self.server_time, updated_at=self.server_time)
        self.rows[task.id] = stored
        return Ok(stored)

    def update(self, task_id: str, changes: dict):
        failed = self._enter("update")
        if failed:
            return failed
        if task_id not in self.rows:
            return Err(BackendRejectedError(f"Task {task_id} not found"))
        projection = {**changes, "updated_at": self.server_time}
        self.rows[task_id] = replace(self.rows[task_id], **projection)
        return Ok(projection)

    def delete(self, task_id: str):
        failed = self._enter("delete")
        if failed:
            return failed
        self.rows.pop(task_id, None)
        return Ok(None)

    def replay_queue(self, entries) -> ReplayReport:
        self.calls.append("replay_queue")
        replayed = []
        for index, entry in enumerate(entries):
            if self.failure is not None:
                return ReplayReport(tuple(replayed), self.failure)
            if self.fail_replay_at == index:
                return ReplayReport(tuple(replayed), UnreachableError("connection reset"))
            if entry.type == MutationType.DELETE:
                self.rows.pop(entry.task.id, None)
            else:
                self.rows[entry.task.id] = entry.task
            replayed.append(entry)
        return ReplayReport(tuple(replayed))


def mutation(kind: MutationType, task: Task, mutation_id: str) -> OfflineMutation:
    return OfflineMutation(kind, task, id=mutation_id)


@pytest.fixture
def db_engine():
    engine = make_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sessions(db_engine):
    return make_sessionmaker(db_engine)


@pytest.fixture
def kv_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def cache(kv_store) -> CacheBridge:
    return CacheBridge(kv_store)
