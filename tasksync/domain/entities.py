from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Optional

from .enums import MutationType, TaskStatus

UPDATABLE_FIELDS = frozenset(
    {"title", "description", "due_date", "status", "completed", "assigned_to"}
)
_TIMESTAMP_FIELDS = ("assigned_date", "due_date", "created_at", "updated_at")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | str | None) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    description: str
    assigned_to: str
    assigned_date: datetime
    due_date: Optional[datetime]
    completed: bool
    status: TaskStatus
    created_at: datetime
    updated_at: datetime
    created_by: str

    def __post_init__(self) -> None:
        # status is the source of truth, completed mirrors it
        status = TaskStatus(self.status)
        object.__setattr__(self, "status", status)
        object.__setattr__(self, "completed", status == TaskStatus.COMPLETED)
        for name in _TIMESTAMP_FIELDS:
            object.__setattr__(self, name, ensure_utc(getattr(self, name)))

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        for name in _TIMESTAMP_FIELDS:
            if data[name] is not None:
                data[name] = data[name].isoformat()
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass(frozen=True)
class TaskInput:
    title: str
    description: str
    assigned_to: str
    assigned_date: datetime
    due_date: Optional[datetime] = None
    status: TaskStatus = TaskStatus.NOT_STARTED

    def build(self, created_by: str, now: datetime) -> Task:
        return Task(
            id=new_id(),
            title=self.title,
            description=self.description,
            assigned_to=self.assigned_to,
            assigned_date=self.assigned_date,
            due_date=self.due_date,
            completed=False,
            status=self.status,
            created_at=now,
            updated_at=now,
            created_by=created_by,
        )


@dataclass(frozen=True)
class OfflineMutation:
    type: MutationType
    task: Task
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class AuthSession:
    user_id: str | None = None

    @property
    def authenticated(self) -> bool:
        return bool(self.user_id)


def normalize_changes(changes: dict[str, Any], current: Task | None = None) -> dict[str, Any]:
    """Validate an update payload and keep ``status``/``completed`` consistent.

    Raises ``ValueError`` for fields that cannot be updated.
    """
    unknown = sorted(set(changes) - UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported field(s): {', '.join(unknown)}")

    normalized = dict(changes)
    if "status" in normalized:
        normalized["status"] = TaskStatus(normalized["status"])
        normalized["completed"] = normalized["status"] == TaskStatus.COMPLETED
    elif "completed" in normalized:
        if normalized["completed"]:
            normalized["status"] = TaskStatus.COMPLETED
        elif current is not None and current.status == TaskStatus.COMPLETED:
            normalized["status"] = TaskStatus.NOT_STARTED
    if "due_date" in normalized:
        normalized["due_date"] = ensure_utc(normalized["due_date"])
    return normalized
