from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Iterable, Protocol, Sequence

from ..partitions.model import PartitionHandle
from ..students.model import MigrationEvent, StudentRecord


class PromotionSession(Protocol):
    """Work done inside one promotion transaction. Nothing is visible until commit."""

    def fetch_active(self, handle: PartitionHandle) -> Sequence[StudentRecord]:
        raise NotImplementedError

    def insert_students(self, handle: PartitionHandle, students: Iterable[StudentRecord]) -> None:
        raise NotImplementedError

    def delete_students(self, handle: PartitionHandle, external_ids: Iterable[str]) -> None:
        raise NotImplementedError

    def append_events(self, events: Iterable[MigrationEvent]) -> None:
        raise NotImplementedError

    def savepoint(self, name: str) -> None:
        raise NotImplementedError

    def rollback_to_savepoint(self, name: str) -> None:
        raise NotImplementedError


class PromotionTransactionProvider(Protocol):
    def transaction(self, lock_name: str) -> AbstractContextManager[PromotionSession]:
        """Open a transaction holding the named lock.

        Commits when the block exits normally, rolls back when it raises.
        """

        raise NotImplementedError
