from __future__ import annotations

import argparse
import logging
import sys
import threading
from dataclasses import dataclass
from typing import Sequence

from tasksync.config import PROJECT_ROOT, SETTINGS, Settings
from tasksync.domain.enums import SortDirection, SortField, SyncStatus, TaskStatus
from tasksync.domain.filters import STATUS_ALL
from tasksync.infra.auth import StaticAuthProvider
from tasksync.infra.cache import CacheBridge, FileKeyValueStore
from tasksync.infra.connectivity import DatabaseProbeObserver
from tasksync.infra.db import make_engine, make_sessionmaker
from tasksync.infra.gateway import RemoteSyncGateway
from tasksync.infra.logging import setup_logging
from tasksync.services.sync_orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    orchestrator: SyncOrchestrator
    connectivity: DatabaseProbeObserver


def build_runtime(settings: Settings = SETTINGS) -> Runtime:
    db_engine = make_engine(settings.database_url) if settings.database_url else None
    sessions = make_sessionmaker(db_engine) if db_engine is not None else None
    connectivity = DatabaseProbeObserver(db_engine, interval=settings.connectivity_poll_seconds)
    orchestrator = SyncOrchestrator(
        gateway=RemoteSyncGateway(sessions),
        cache=CacheBridge(FileKeyValueStore(PROJECT_ROOT / settings.cache_dir), settings.cache_key),
        connectivity=connectivity,
        auth=StaticAuthProvider(settings.user_id),
    )
    return Runtime(orchestrator, connectivity)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tasksync", description="Offline-first task sync")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("run", help="keep the local cache in sync until interrupted")

    list_parser = commands.add_parser("list", help="print the visible tasks")
    list_parser.add_argument("--search", default="")
    list_parser.add_argument("--sort-by", choices=[f.value for f in SortField], default=SortField.ASSIGNED_DATE.value)
    list_parser.add_argument(
        "--direction", choices=[d.value for d in SortDirection], default=SortDirection.ASC.value
    )
    list_parser.add_argument(
        "--status", choices=[STATUS_ALL, *(s.value for s in TaskStatus)], default=STATUS_ALL
    )
    return parser


def _format_task(task) -> str:
    due = task.due_date.date().isoformat() if task.due_date else "-"
    return f"{task.id}  [{task.status.value:<11}]  due {due:<10}  {task.title}  ({task.assigned_to})"


def list_tasks(runtime: Runtime, args: argparse.Namespace) -> int:
    orchestrator = runtime.orchestrator
    orchestrator.start()
    try:
        orchestrator.set_filters(
            search=args.search,
            sort_by=args.sort_by,
            sort_direction=args.direction,
            status=args.status,
        )
        for task in orchestrator.visible_tasks():
            print(_format_task(task))
        snapshot = orchestrator.snapshot()
        if snapshot.error:
            print(f"warning: {snapshot.error}", file=sys.stderr)
        return 0 if snapshot.status != SyncStatus.ERROR else 1
    finally:
        orchestrator.stop()


def run(runtime: Runtime, stop: threading.Event | None = None) -> int:
    stop = stop or threading.Event()
    orchestrator = runtime.orchestrator
    orchestrator.start()
    last = None
    try:
        while not stop.wait(1.0):
            snapshot = orchestrator.snapshot()
            current = (snapshot.status, snapshot.is_connected, snapshot.queue_length)
            if current != last:
                logger.info(
                    "status=%s online=%s queued=%d tasks=%d",
                    snapshot.status, snapshot.is_connected, snapshot.queue_length,
                    len(snapshot.tasks.entities),
                )
                last = current
    except KeyboardInterrupt:
        pass
    finally:
        orchestrator.stop()
    return 0


def main(argv: Sequence[str] | None = None, settings: Settings = SETTINGS) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging(settings)
    runtime = build_runtime(settings)
    if args.command == "list":
        return list_tasks(runtime, args)
    return run(runtime)


if __name__ == "__main__":
    sys.exit(main())
