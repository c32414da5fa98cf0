from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from tasksync.domain.entities import (
    OfflineMutation,
    Task,
    TaskInput,
    normalize_changes,
    utcnow,
)
from tasksync.domain.enums import MutationType, SyncStatus
from tasksync.domain.filters import TaskFilters
from tasksync.domain.results import Err, Ok, OperationState, Outcome, Pending
from tasksync.infra.auth import AuthProvider, StaticAuthProvider
from tasksync.infra.cache import CacheBridge
from tasksync.infra.connectivity import ConnectivityObserver, ConnectivityState
from tasksync.infra.gateway import RemoteSyncGateway

from .mutation_queue import OfflineMutationQueue
from .task_store import TaskState, TaskStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncSnapshot:
    tasks: TaskState
    status: SyncStatus
    error: Optional[str]
    last_synced_at: Optional[datetime]
    is_connected: Optional[bool]
    queue_length: int


class SyncOrchestrator:
    """Owns the task store and the offline queue and drives remote sync.

    Commands and connectivity events run one at a time under a single
    lock; remote I/O happens while the lock is held so a trigger arriving
    from the probe thread waits for the operation in flight.
    """

    def __init__(
        self,
        gateway: RemoteSyncGateway,
        cache: CacheBridge,
        connectivity: ConnectivityObserver | None = None,
        auth: AuthProvider | None = None,
        store: TaskStore | None = None,
        queue: OfflineMutationQueue | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._gateway = gateway
        self._cache = cache
        self._connectivity = connectivity
        self._auth = auth or StaticAuthProvider()
        self._store = store if store is not None else TaskStore()
        self._queue = queue if queue is not None else OfflineMutationQueue()
        self._clock = clock
        self._lock = threading.RLock()
        self._status = SyncStatus.IDLE
        self._error: Optional[str] = None
        self._last_synced_at: Optional[datetime] = None
        self._is_connected: Optional[bool] = None
        self._operations: dict[str, OperationState] = {}
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def store(self) -> TaskStore:
        return self._store

    @property
    def queue(self) -> OfflineMutationQueue:
        return self._queue

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def last_synced_at(self) -> Optional[datetime]:
        return self._last_synced_at

    @property
    def is_connected(self) -> Optional[bool]:
        return self._is_connected

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def filters(self) -> TaskFilters:
        return self._store.filters

    def visible_tasks(self) -> list[Task]:
        return list(self._store.select_visible())

    def operation_state(self, name: str) -> OperationState | None:
        return self._operations.get(name)

    def snapshot(self) -> SyncSnapshot:
        with self._lock:
            return SyncSnapshot(
                tasks=self._store.state,
                status=self._status,
                error=self._error,
                last_synced_at=self._last_synced_at,
                is_connected=self._is_connected,
                queue_length=len(self._queue),
            )

    def start(self) -> None:
        with self._lock:
            cached = self._cache.restore()
            if cached:
                logger.info("Restored %d tasks from cache", len(cached))
                self.hydrate_from_cache(cached)
            if self._connectivity is None:
                return
            self._unsubscribe = self._connectivity.subscribe(self.on_connectivity_change)
            self.on_connectivity_change(self._connectivity.fetch())

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_connectivity_change(self, state: ConnectivityState | bool | None) -> None:
        if isinstance(state, ConnectivityState):
            state = state.is_connected
        connected = bool(state)
        with self._lock:
            previous = self._is_connected
            self._is_connected = connected
            if previous == connected:
                if connected:
                    self.flush_pending()
                return
            logger.info("Connectivity changed: %s -> %s", previous, connected)
            if connected and len(self._queue):
                self.sync_queue()
            elif connected or previous is None:
                self.fetch_all()

    def set_filters(self, **changes: Any) -> TaskFilters:
        with self._lock:
            return self._store.set_filters(**changes)

    def reset_filters(self) -> TaskFilters:
        with self._lock:
            return self._store.reset_filters()

    def hydrate_from_cache(self, tasks: Iterable[Task]) -> None:
        with self._lock:
            self._store.upsert_many(tasks)
            self._status = SyncStatus.IDLE

    def fetch_all(self) -> Outcome:
        with self._lock:
            self._status = SyncStatus.LOADING
            self._error = None
            result = self._track("fetch", self._gateway.fetch_all)
            if isinstance(result, Ok):
                self._store.upsert_many(result.value)
                self._persist()
                self._status = SyncStatus.IDLE
                self._last_synced_at = self._clock()
                return Outcome.success()

            cached = self._cache.restore()
            if cached:
                logger.info("Serving %d cached tasks: %s", len(cached), result.reason)
                self._store.upsert_many(cached)
                self._status = SyncStatus.IDLE
                return Outcome.success()
            return self._fail(result.reason)

    def sync_queue(self) -> Outcome:
        with self._lock:
            entries = self._queue.entries()
            if not entries:
                return Outcome.success()
            self._status = SyncStatus.SYNCING
            self._operations["replay"] = Pending()
            report = self._gateway.replay_queue(entries)

            if not report.replayed:
                self._operations["replay"] = Err(report.error)
                return self._fail(report.error.reason)

            self._queue.dequeue_confirmed(report.confirmed_ids)
            self._last_synced_at = self._clock()
            if report.complete:
                self._operations["replay"] = Ok(report.replayed)
            else:
                self._operations["replay"] = Err(report.error)
            # the remote state after replay is authoritative, even when
            # entries are still pending
            self.fetch_all()
            if not report.complete:
                return self._fail(
                    f"Synced {len(report.replayed)} of {len(entries)} queued changes: "
                    f"{report.error.reason}"
                )
            return Outcome.success()

    def flush_pending(self) -> Outcome:
        """Replays queued changes if online, otherwise does nothing."""
        with self._lock:
            if not self._is_connected or not len(self._queue):
                return Outcome.success()
            return self.sync_queue()

    def force_sync_now(self) -> Outcome:
        with self._lock:
            if len(self._queue):
                return self.sync_queue()
            return self.fetch_all()

    def create_task(self, data: TaskInput) -> Outcome:
        with self._lock:
            session = self._auth.current_session()
            if not session.authenticated:
                return self._fail("No authenticated user")

            task = data.build(created_by=session.user_id, now=self._clock())
            self._status = SyncStatus.LOADING
            if self._is_connected:
                result = self._track("create", lambda: self._gateway.create(task))
                if isinstance(result, Ok):
                    self._store.upsert_many([result.value])
                    self._done()
                    return Outcome.success(task.id)
                if not result.offline:
                    return self._fail(result.reason, task.id)
                logger.info("Remote unreachable, queueing create of %s", task.id)

            self._store.upsert_many([task])
            self._queue.enqueue(OfflineMutation(MutationType.CREATE, task))
            self._done()
            return Outcome.success(task.id, queued=True)

    def update_task(self, task_id: str, changes: dict[str, Any]) -> Outcome:
        with self._lock:
            existing = self._store.get(task_id)
            try:
                normalized = normalize_changes(changes, existing)
            except ValueError as exc:
                return Outcome.failure(str(exc), task_id)
            if existing is not None:
                normalized["updated_at"] = self._next_updated_at(existing)

            if self._is_connected:
                result = self._track("update", lambda: self._gateway.update(task_id, normalized))
                if isinstance(result, Ok):
                    self._store.apply_partial_update(task_id, result.value)
                    self._done()
                    return Outcome.success(task_id)
                if not result.offline:
                    return self._fail(result.reason, task_id)
                logger.info("Remote unreachable, queueing update of %s", task_id)

            if existing is None:
                logger.debug("Update of unknown task %s ignored", task_id)
                return Outcome.success(task_id)
            updated = self._store.apply_partial_update(task_id, normalized)
            self._queue.enqueue(OfflineMutation(MutationType.UPDATE, updated))
            self._done()
            return Outcome.success(task_id, queued=True)

    def delete_task(self, task_id: str) -> Outcome:
        with self._lock:
            if self._is_connected:
                result = self._track("delete", lambda: self._gateway.delete(task_id))
                if isinstance(result, Ok):
                    self._store.remove(task_id)
                    self._done()
                    return Outcome.success(task_id)
                if not result.offline:
                    return self._fail(result.reason, task_id)
                logger.info("Remote unreachable, queueing delete of %s", task_id)

            removed = self._store.remove(task_id)
            if removed is None:
                logger.debug("Delete of unknown task %s ignored", task_id)
                return Outcome.success(task_id)
            self._queue.enqueue(OfflineMutation(MutationType.DELETE, removed))
            self._done()
            return Outcome.success(task_id, queued=True)

    def sign_out(self) -> None:
        with self._lock:
            try:
                self._auth.sign_out()
            except Exception:  # noqa: BLE001
                logger.warning("Auth provider failed to sign out", exc_info=True)
            dropped = len(self._queue)
            self._store.reset()
            self._queue.clear()
            self._cache.clear()
            self._status = SyncStatus.IDLE
            self._error = None
            self._last_synced_at = None
            self._operations.clear()
            if dropped:
                logger.info("Signed out, discarded %d unsent changes", dropped)

    def _track(self, name: str, call: Callable[[], Ok | Err]) -> Ok | Err:
        self._operations[name] = Pending()
        result = call()
        self._operations[name] = result
        return result

    def _done(self) -> None:
        self._persist()
        self._status = SyncStatus.IDLE
        self._error = None

    def _fail(self, reason: str, task_id: str | None = None) -> Outcome:
        self._status = SyncStatus.ERROR
        self._error = reason
        return Outcome.failure(reason, task_id)

    def _persist(self) -> None:
        self._cache.persist(self._store.all())

    def _next_updated_at(self, existing: Task) -> datetime:
        return max(self._clock(), existing.updated_at)
