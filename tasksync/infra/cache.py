"""Durable key-value storage and the task snapshot kept in it.

The snapshot only backs cold starts and offline reads, so every failure
here is logged and absorbed.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from tasksync.domain.entities import Task

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


class FileKeyValueStore:
    """One file per key inside ``directory``."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def get(self, key: str) -> bytes | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def set(self, key: str, value: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(value)
            os.replace(tmp_name, self._path(key))
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def _path(self, key: str) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in key)
        return self.directory / f"{safe}.json"


class CacheBridge:
    def __init__(self, store: KeyValueStore, key: str = "@task-cache") -> None:
        self._store = store
        self._key = key

    def persist(self, tasks: list[Task]) -> None:
        try:
            payload = json.dumps([task.to_dict() for task in tasks], ensure_ascii=False)
            self._store.set(self._key, payload.encode("utf-8"))
        except (OSError, TypeError, ValueError):
            logger.warning("Failed to cache tasks locally", exc_info=True)

    def restore(self) -> list[Task]:
        try:
            raw = self._store.get(self._key)
            if not raw:
                return []
            data = json.loads(raw.decode("utf-8"))
            return [Task.from_dict(item) for item in data]
        except (OSError, TypeError, ValueError, KeyError, AttributeError):
            logger.warning("Failed to read cached tasks", exc_info=True)
            return []

    def clear(self) -> None:
        try:
            self._store.delete(self._key)
        except OSError:
            logger.warning("Failed to clear cached tasks", exc_info=True)
