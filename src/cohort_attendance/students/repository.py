from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..partitions.model import PartitionHandle
from .model import MigrationEvent, StudentRecord


class StudentRepository(Protocol):
    """Student store. Every call names the partition it reads or writes.

    Note (DIP): services depend on this interface, never on a concrete DB.
    """

    def get(self, handle: PartitionHandle, external_id: str) -> Optional[StudentRecord]:
        raise NotImplementedError

    def list_students(self, handle: PartitionHandle, *, include_inactive: bool = False) -> Sequence[StudentRecord]:
        raise NotImplementedError

    def count_active(self, handle: PartitionHandle) -> int:
        raise NotImplementedError

    def create(self, handle: PartitionHandle, student: StudentRecord) -> None:
        """Insert; raises DuplicateStudent when the external ID is taken."""

        raise NotImplementedError

    def set_active(self, handle: PartitionHandle, external_id: str, *, is_active: bool) -> bool:
        raise NotImplementedError

    def update_contact(self, handle: PartitionHandle, external_id: str, *, guardian_contact: Optional[str]) -> bool:
        raise NotImplementedError


class MigrationEventRepository(Protocol):
    """Read side of the migration-event store. Writes happen inside promotion transactions."""

    def list_for_student(self, external_id: str) -> Sequence[MigrationEvent]:
        raise NotImplementedError

    def list_for_batch(self, batch_id: str) -> Sequence[MigrationEvent]:
        raise NotImplementedError
