from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from ..common.datetime_utils import now_utc
from ..common.validators import normalize_external_id, normalize_label, require_non_empty, require_phone
from ..core.exceptions import DomainError, DuplicateStudent, StudentNotFound
from ..partitions.router import PartitionRouter
from .model import BulkAddResult, BulkRowResult, MigrationEvent, StudentRecord
from .repository import MigrationEventRepository, StudentRepository

logger = logging.getLogger(__name__)


class StudentService:
    def __init__(self, router: PartitionRouter, students: StudentRepository, events: MigrationEventRepository):
        self._router = router
        self._students = students
        self._events = events

    def _build(
        self,
        *,
        stream: str,
        period: int,
        external_id: str,
        full_name: str,
        guardian_contact: Optional[str],
        language: Optional[str],
        academic_year: Optional[int],
        now: datetime,
    ) -> StudentRecord:
        return StudentRecord(
            external_id=normalize_external_id(external_id),
            full_name=require_non_empty(full_name, "Name"),
            stream=stream,
            period=period,
            guardian_contact=require_phone(guardian_contact),
            language=normalize_label(language),
            academic_year=int(academic_year) if academic_year else now.year,
            added_at=now,
            original_period=period,
        )

    def _active_elsewhere(self, stream: str, period: int, external_id: str) -> Optional[StudentRecord]:
        """Active record of the same ID in another semester of the stream."""

        for other in self._router.units.get(stream).periods:
            if other == period:
                continue
            found = self._students.get(self._router.students(stream, other), external_id)
            if found and found.is_active:
                return found
        return None

    def add_student(
        self,
        stream: str,
        period: int,
        *,
        external_id: str,
        full_name: str,
        guardian_contact: Optional[str] = None,
        language: Optional[str] = None,
        academic_year: Optional[int] = None,
        now: datetime | None = None,
    ) -> StudentRecord:
        handle = self._router.students(stream, period)
        student = self._build(
            stream=stream,
            period=handle.period,
            external_id=external_id,
            full_name=full_name,
            guardian_contact=guardian_contact,
            language=language,
            academic_year=academic_year,
            now=now or now_utc(),
        )

        existing = self._students.get(handle, student.external_id)
        if existing:
            raise DuplicateStudent(
                f"Student {student.external_id} already exists in {handle.partition_id}",
                existing=existing,
            )
        enrolled = self._active_elsewhere(stream, handle.period, student.external_id)
        if enrolled:
            raise DuplicateStudent(
                f"Student {student.external_id} is already enrolled in {stream} semester {enrolled.period}",
                existing=enrolled,
            )

        self._students.create(handle, student)
        logger.info("Student %s added to %s", student.external_id, handle.partition_id)
        return student

    def bulk_add_students(
        self,
        stream: str,
        period: int,
        rows: Sequence[Mapping],
        *,
        now: datetime | None = None,
    ) -> BulkAddResult:
        """Add many students; a bad row is reported and never stops the rest."""

        handle = self._router.students(stream, period)
        now = now or now_utc()
        results: list[BulkRowResult] = []

        for row in rows:
            external_id = str(row.get("external_id") or "").strip().upper()
            full_name = str(row.get("full_name") or "").strip()
            try:
                self.add_student(
                    stream,
                    handle.period,
                    external_id=external_id,
                    full_name=full_name,
                    guardian_contact=row.get("guardian_contact"),
                    language=row.get("language"),
                    academic_year=row.get("academic_year"),
                    now=now,
                )
            except DomainError as exc:
                results.append(BulkRowResult(external_id or "UNKNOWN", full_name or "UNKNOWN", False, str(exc)))
                continue
            results.append(BulkRowResult(external_id, full_name, True))

        report = BulkAddResult(stream=stream, period=handle.period, results=results)
        logger.info(
            "Bulk upload to %s: %s/%s students added", handle.partition_id, report.added, len(results)
        )
        return report

    def list_students(self, stream: str, period: int, *, include_inactive: bool = False) -> Sequence[StudentRecord]:
        handle = self._router.students(stream, period)
        return self._students.list_students(handle, include_inactive=include_inactive)

    def count_active(self, stream: str, period: int) -> int:
        return self._students.count_active(self._router.students(stream, period))

    def find_student(self, external_id: str, *, streams: Iterable[str] | None = None) -> StudentRecord:
        """Search every configured partition (optionally limited to some streams)."""

        external_id = normalize_external_id(external_id)
        units = self._router.units
        for stream in streams or units.names():
            for period in units.get(stream).periods:
                found = self._students.get(self._router.students(stream, period), external_id)
                if found:
                    return found
        raise StudentNotFound(external_id)

    def _require(self, stream: str, period: int, external_id: str):
        handle = self._router.students(stream, period)
        external_id = normalize_external_id(external_id)
        if not self._students.get(handle, external_id):
            raise StudentNotFound(external_id)
        return handle, external_id

    def deactivate_student(self, stream: str, period: int, external_id: str) -> None:
        handle, external_id = self._require(stream, period, external_id)
        self._students.set_active(handle, external_id, is_active=False)
        logger.info("Student %s deactivated in %s", external_id, handle.partition_id)

    def update_contact(self, stream: str, period: int, external_id: str, guardian_contact: Optional[str]) -> None:
        contact = require_phone(guardian_contact)
        handle, external_id = self._require(stream, period, external_id)
        self._students.update_contact(handle, external_id, guardian_contact=contact)

    def migration_history(self, external_id: str) -> Sequence[MigrationEvent]:
        return self._events.list_for_student(normalize_external_id(external_id))
