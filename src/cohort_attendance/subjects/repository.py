from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..partitions.model import PartitionHandle
from .model import SubjectRecord


class SubjectRepository(Protocol):
    def get(self, handle: PartitionHandle, name: str) -> Optional[SubjectRecord]:
        raise NotImplementedError

    def list_subjects(self, handle: PartitionHandle, *, include_inactive: bool = False) -> Sequence[SubjectRecord]:
        raise NotImplementedError

    def create(self, handle: PartitionHandle, subject: SubjectRecord) -> None:
        """Insert; raises ConflictError when the name is taken in this partition."""

        raise NotImplementedError

    def set_active(self, handle: PartitionHandle, name: str, *, is_active: bool) -> bool:
        raise NotImplementedError
