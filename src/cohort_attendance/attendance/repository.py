from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..partitions.model import PartitionHandle
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    """Attendance store; each handle is one (stream, semester, subject) partition."""

    def get_for_date(self, handle: PartitionHandle, attendance_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_records(self, handle: PartitionHandle) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def insert(self, handle: PartitionHandle, record: AttendanceRecord) -> None:
        """Insert; raises DuplicateRecord when the date is already recorded."""

        raise NotImplementedError

    def upsert(self, handle: PartitionHandle, record: AttendanceRecord) -> None:
        """Insert or overwrite the record for the same date."""

        raise NotImplementedError
