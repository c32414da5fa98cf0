from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session, sessionmaker

from tasksync.domain.entities import OfflineMutation, Task, ensure_utc, utcnow
from tasksync.domain.enums import MutationType, TaskStatus
from tasksync.domain.errors import (
    BackendRejectedError,
    ConfigurationError,
    SyncError,
    UnreachableError,
)
from tasksync.domain.results import Err, Ok, Result

from .models import TaskModel

logger = logging.getLogger(__name__)

_UNREACHABLE = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,
)


def _to_entity(model: TaskModel) -> Task:
    return Task(
        id=model.id,
        title=model.title,
        description=model.description,
        assigned_to=model.assigned_to,
        assigned_date=model.assigned_date,
        due_date=model.due_date,
        completed=model.completed,
        status=TaskStatus(model.status),
        created_at=model.created_at,
        updated_at=model.updated_at,
        created_by=model.created_by,
    )


def _to_row(task: Task, with_timestamps: bool = False) -> dict[str, Any]:
    row = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "assigned_to": task.assigned_to,
        "assigned_date": task.assigned_date,
        "due_date": task.due_date,
        "completed": task.completed,
        "status": task.status.value,
        "created_by": task.created_by,
    }
    if with_timestamps:
        row["created_at"] = task.created_at
        row["updated_at"] = task.updated_at
    return row


def _changes_to_row(changes: dict[str, Any]) -> dict[str, Any]:
    row = {}
    for key in ("title", "description", "assigned_to", "completed"):
        if changes.get(key) is not None:
            row[key] = changes[key]
    if "due_date" in changes:
        row["due_date"] = changes["due_date"]
    if changes.get("status") is not None:
        row["status"] = TaskStatus(changes["status"]).value
    return row


def classify_error(exc: BaseException) -> SyncError:
    if isinstance(exc, SyncError):
        return exc
    if isinstance(exc, _UNREACHABLE) or isinstance(exc, OSError):
        return UnreachableError(_describe(exc))
    if isinstance(exc, sa_exc.DBAPIError) and exc.connection_invalidated:
        return UnreachableError(_describe(exc))
    return BackendRejectedError(_describe(exc))


def _describe(exc: BaseException) -> str:
    original = getattr(exc, "orig", None)
    return str(original or exc)


@dataclass(frozen=True)
class ReplayReport:
    replayed: tuple[OfflineMutation, ...] = ()
    error: Optional[SyncError] = None

    @property
    def confirmed_ids(self) -> set[str]:
        return {entry.id for entry in self.replayed}

    @property
    def complete(self) -> bool:
        return self.error is None


class RemoteSyncGateway:
    """CRUD against the remote ``tasks`` table.

    Every call returns ``Ok`` or ``Err``; connection and configuration
    problems come back as offline errors so the caller can fall back to
    the cache or the offline queue.
    """

    def __init__(self, sessions: sessionmaker | None) -> None:
        self._sessions = sessions
        self._warned_unconfigured = False

    @property
    def configured(self) -> bool:
        return self._sessions is not None

    def fetch_all(self) -> Result[list[Task]]:
        try:
            with self._session() as session:
                stmt = select(TaskModel).order_by(TaskModel.updated_at.desc())
                return Ok([_to_entity(model) for model in session.scalars(stmt)])
        except (SyncError, sa_exc.SQLAlchemyError, OSError) as exc:
            return self._failure("fetch_all", exc)

    def create(self, task: Task) -> Result[Task]:
        try:
            with self._session() as session:
                model = TaskModel(**_to_row(task))
                session.add(model)
                session.commit()
                session.refresh(model)
                return Ok(_to_entity(model))
        except (SyncError, sa_exc.SQLAlchemyError, OSError) as exc:
            return self._failure("create", exc)

    def update(self, task_id: str, changes: dict[str, Any]) -> Result[dict[str, Any]]:
        row = _changes_to_row(changes)
        stamp = ensure_utc(changes.get("updated_at")) or utcnow()
        try:
            with self._session() as session:
                model = session.get(TaskModel, task_id)
                if model is None:
                    raise BackendRejectedError(f"Task {task_id} not found")
                # never move the stored stamp backwards
                row["updated_at"] = max(stamp, ensure_utc(model.updated_at)) if model.updated_at else stamp
                for key, value in row.items():
                    setattr(model, key, value)
                session.commit()
                session.refresh(model)
                task = _to_entity(model)
                return Ok({key: getattr(task, key) for key in row})
        except (SyncError, sa_exc.SQLAlchemyError, OSError) as exc:
            return self._failure("update", exc)

    def delete(self, task_id: str) -> Result[None]:
        try:
            with self._session() as session:
                self._delete_row(session, task_id)
                session.commit()
                return Ok(None)
        except (SyncError, sa_exc.SQLAlchemyError, OSError) as exc:
            return self._failure("delete", exc)

    def replay_queue(self, entries: Iterable[OfflineMutation]) -> ReplayReport:
        replayed: list[OfflineMutation] = []
        for entry in entries:
            try:
                self._replay_entry(entry)
            except (SyncError, sa_exc.SQLAlchemyError, OSError) as exc:
                error = classify_error(exc)
                logger.warning(
                    "Replay stopped at %s %s after %d entries: %s",
                    entry.type.value, entry.task.id, len(replayed), error.reason,
                )
                return ReplayReport(tuple(replayed), error)
            replayed.append(entry)
        logger.info("Replayed %d queued mutations", len(replayed))
        return ReplayReport(tuple(replayed))

    def _replay_entry(self, entry: OfflineMutation) -> None:
        with self._session() as session:
            if entry.type == MutationType.DELETE:
                self._delete_row(session, entry.task.id)
            else:
                session.merge(TaskModel(**_to_row(entry.task, with_timestamps=True)))
            session.commit()

    @staticmethod
    def _delete_row(session: Session, task_id: str) -> None:
        model = session.get(TaskModel, task_id)
        if model is not None:
            session.delete(model)

    def _session(self) -> Session:
        if self._sessions is None:
            if not self._warned_unconfigured:
                logger.warning("DATABASE_URL is not set, remote sync is disabled")
                self._warned_unconfigured = True
            raise ConfigurationError("DATABASE_URL is not set. Create a .env file with your connection string.")
        return self._sessions()

    def _failure(self, operation: str, exc: BaseException) -> Err:
        error = classify_error(exc)
        if error.offline:
            logger.info("Remote %s unavailable: %s", operation, error.reason)
        else:
            logger.error("Remote %s rejected: %s", operation, error.reason)
        return Err(error)
