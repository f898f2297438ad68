from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Mapping, Optional

from ..common.datetime_utils import as_date, now_utc
from ..common.validators import normalize_external_id
from ..core.exceptions import DuplicateRecord, IneligibleStudent, NoEligibleStudents, ValidationError
from ..partitions.router import PartitionRouter
from ..students.model import StudentRecord
from ..students.repository import StudentRepository
from ..subjects.model import SubjectRecord
from ..subjects.service import SubjectService
from .eligibility import eligible_students
from .model import AttendanceRecord, AttendanceRegister
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Write path for subject attendance.

    Presence lists are checked against the subject's eligible population and
    any outsider rejects the whole write; the bulk register update follows the
    same rule.
    """

    def __init__(
        self,
        router: PartitionRouter,
        students: StudentRepository,
        subjects: SubjectService,
        attendance: AttendanceRepository,
    ):
        self._router = router
        self._students = students
        self._subjects = subjects
        self._attendance = attendance

    def _eligible(self, stream: str, period: int, subject: SubjectRecord) -> list[StudentRecord]:
        roster = self._students.list_students(self._router.students(stream, period))
        eligible = eligible_students(roster, subject.language_tag if subject.is_language_restricted else None)
        if not eligible:
            raise NoEligibleStudents(stream, subject.period, subject.name)
        return eligible

    @staticmethod
    def _present_ids(subject: SubjectRecord, present_ids: Iterable[str], eligible: list[StudentRecord]) -> frozenset[str]:
        if isinstance(present_ids, str):
            raise ValidationError("Present students must be a list of IDs")
        present = frozenset(normalize_external_id(str(p)) for p in present_ids)
        outsiders = present - {s.external_id for s in eligible}
        if outsiders:
            raise IneligibleStudent(subject.name, outsiders)
        return present

    def _build(
        self,
        subject: SubjectRecord,
        on: date,
        present: frozenset[str],
        eligible: list[StudentRecord],
        *,
        existing: Optional[AttendanceRecord],
        now: datetime,
    ) -> AttendanceRecord:
        return AttendanceRecord(
            subject=subject.name,
            attendance_date=on,
            present_ids=present,
            total_eligible=len(eligible),
            language_tag=subject.language_tag if subject.is_language_restricted else None,
            recorded_at=existing.recorded_at if existing else now,
            updated_at=now,
        )

    def record_attendance(
        self,
        stream: str,
        period: int,
        subject: str,
        attendance_date: date | str,
        present_ids: Iterable[str],
        *,
        overwrite: bool = False,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        on = as_date(attendance_date)
        subject_rec = self._subjects.get_subject(stream, period, subject)
        eligible = self._eligible(stream, period, subject_rec)

        handle = self._router.attendance(stream, period, subject_rec.name)
        existing = self._attendance.get_for_date(handle, on)
        if existing and not overwrite:
            raise DuplicateRecord(
                f"Attendance already taken for {subject_rec.name} on {on.isoformat()}",
                existing=existing,
            )

        present = self._present_ids(subject_rec, present_ids, eligible)
        record = self._build(subject_rec, on, present, eligible, existing=existing, now=now or now_utc())

        if overwrite:
            self._attendance.upsert(handle, record)
        else:
            self._attendance.insert(handle, record)

        logger.info(
            "Attendance %s for %s semester %s - %s on %s: present=%s absent=%s",
            "updated" if existing else "marked",
            stream,
            subject_rec.period,
            subject_rec.name,
            on.isoformat(),
            len(present),
            record.absent_count,
        )
        return record

    def update_register(
        self,
        stream: str,
        period: int,
        subject: str,
        attendance_map: Mapping[date | str, Iterable[str]],
        *,
        now: datetime | None = None,
    ) -> list[AttendanceRecord]:
        """Bulk correction: overwrite several dates at once.

        Every date is validated before anything is written, so one bad date
        leaves the register untouched.
        """

        if not attendance_map:
            raise ValidationError("No attendance data provided")

        now = now or now_utc()
        subject_rec = self._subjects.get_subject(stream, period, subject)
        eligible = self._eligible(stream, period, subject_rec)
        handle = self._router.attendance(stream, period, subject_rec.name)

        pending: list[AttendanceRecord] = []
        for raw_date, ids in attendance_map.items():
            on = as_date(raw_date)
            present = self._present_ids(subject_rec, ids, eligible)
            existing = self._attendance.get_for_date(handle, on)
            pending.append(self._build(subject_rec, on, present, eligible, existing=existing, now=now))

        for record in pending:
            self._attendance.upsert(handle, record)

        logger.info("Attendance register for %s updated on %s dates", handle.partition_id, len(pending))
        return pending

    def check_attendance(self, stream: str, period: int, subject: str, attendance_date: date | str) -> Optional[AttendanceRecord]:
        subject_rec = self._subjects.get_subject(stream, period, subject)
        handle = self._router.attendance(stream, period, subject_rec.name)
        return self._attendance.get_for_date(handle, as_date(attendance_date))

    def get_register(self, stream: str, period: int, subject: str) -> AttendanceRegister:
        subject_rec = self._subjects.get_subject(stream, period, subject)
        roster = self._eligible(stream, period, subject_rec)
        handle = self._router.attendance(stream, period, subject_rec.name)
        return AttendanceRegister(
            stream=stream,
            period=subject_rec.period,
            subject=subject_rec.name,
            roster=roster,
            records=list(self._attendance.list_records(handle)),
        )
