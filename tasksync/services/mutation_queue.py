from __future__ import annotations

from typing import AbstractSet, Iterator

from tasksync.domain.entities import OfflineMutation


class OfflineMutationQueue:
    """FIFO log of local mutations the remote store has not confirmed yet."""

    def __init__(self) -> None:
        self._entries: list[OfflineMutation] = []

    def enqueue(self, mutation: OfflineMutation) -> None:
        self._entries.append(mutation)

    def dequeue_confirmed(self, confirmed_ids: AbstractSet[str]) -> list[OfflineMutation]:
        removed = [entry for entry in self._entries if entry.id in confirmed_ids]
        self._entries = [entry for entry in self._entries if entry.id not in confirmed_ids]
        return removed

    def clear(self) -> None:
        self._entries = []

    def entries(self) -> tuple[OfflineMutation, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[OfflineMutation]:
        return iter(tuple(self._entries))
