from __future__ import annotations

from enum import StrEnum


class TaskStatus(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SortField(StrEnum):
    ASSIGNED_DATE = "assigned_date"
    DUE_DATE = "due_date"
    UPDATED_AT = "updated_at"


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


class MutationType(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SyncStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    SYNCING = "syncing"
    ERROR = "error"
