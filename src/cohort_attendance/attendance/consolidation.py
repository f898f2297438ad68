from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Optional

from ..common.datetime_utils import as_date
from ..core.constants import DEFAULT_CONSOLIDATION_WORKERS
from ..core.enums import AbsenceStatus
from ..partitions.router import PartitionRouter
from ..students.model import StudentRecord
from ..students.repository import StudentRepository
from ..subjects.model import SubjectRecord
from ..subjects.repository import SubjectRepository
from .eligibility import is_eligible
from .model import AbsenceSummary, AttendanceRecord, DailyAbsenceSummary
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def classify(absent: int, eligible: int) -> AbsenceStatus:
    if eligible > 0 and absent == eligible:
        return AbsenceStatus.FULL_DAY
    if absent > 0:
        return AbsenceStatus.PARTIAL_DAY
    return AbsenceStatus.PRESENT


class AbsenceConsolidator:
    """Read path: merges a day's per-subject records into one row per student."""

    def __init__(
        self,
        router: PartitionRouter,
        students: StudentRepository,
        subjects: SubjectRepository,
        attendance: AttendanceRepository,
        *,
        max_workers: int = DEFAULT_CONSOLIDATION_WORKERS,
    ):
        self._router = router
        self._students = students
        self._subjects = subjects
        self._attendance = attendance
        self._max_workers = max(1, int(max_workers))

    def _records_for(
        self, stream: str, period: int, subjects: list[SubjectRecord], on: date
    ) -> list[tuple[SubjectRecord, Optional[AttendanceRecord]]]:
        if not subjects:
            return []

        def read(subject: SubjectRecord) -> Optional[AttendanceRecord]:
            handle = self._router.attendance(stream, period, subject.name)
            return self._attendance.get_for_date(handle, on)

        workers = min(self._max_workers, len(subjects))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="consolidate") as pool:
            # map keeps subject order and re-raises the first storage error
            records = list(pool.map(read, subjects))
        return list(zip(subjects, records))

    @staticmethod
    def _summarize(student: StudentRecord, taken: list[AttendanceRecord]) -> AbsenceSummary:
        eligible = 0
        absent: list[str] = []
        for record in taken:
            if not is_eligible(student, record.language_tag):
                continue
            eligible += 1
            if student.external_id not in record.present_ids:
                absent.append(record.subject)

        return AbsenceSummary(
            external_id=student.external_id,
            full_name=student.full_name,
            guardian_contact=student.guardian_contact,
            absent_subjects=tuple(absent),
            eligible_subject_count=eligible,
            status=classify(len(absent), eligible),
        )

    def _consolidate(self, stream: str, period: int, on: date):
        subjects = list(self._subjects.list_subjects(self._router.subjects(stream, period)))
        students = self._students.list_students(self._router.students(stream, period))
        pairs = self._records_for(stream, period, subjects, on)
        taken = [record for _, record in pairs if record is not None]
        summaries = [self._summarize(s, taken) for s in students]
        return subjects, taken, summaries

    def consolidate_absences(self, stream: str, period: int, attendance_date: date | str) -> list[AbsenceSummary]:
        on = as_date(attendance_date)
        _, taken, summaries = self._consolidate(stream, period, on)
        logger.debug(
            "Consolidated %s students over %s subjects for %s semester %s on %s",
            len(summaries),
            len(taken),
            stream,
            period,
            on.isoformat(),
        )
        return summaries

    def summarize_day(self, stream: str, period: int, attendance_date: date | str) -> DailyAbsenceSummary:
        on = as_date(attendance_date)
        subjects, taken, summaries = self._consolidate(stream, period, on)
        return DailyAbsenceSummary(
            stream=stream,
            period=int(period),
            on_date=on,
            total_subjects=len(subjects),
            subjects_with_attendance=tuple(r.subject for r in taken),
            students=summaries,
        )
