from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.validators import phone_digits
from ..core.enums import AbsenceStatus
from ..students.model import StudentRecord


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: who was present for one subject on one date."""

    subject: str
    attendance_date: date
    present_ids: frozenset[str]
    total_eligible: int
    recorded_at: datetime
    updated_at: datetime
    language_tag: Optional[str] = None

    @property
    def absent_count(self) -> int:
        return max(self.total_eligible - len(self.present_ids), 0)


@dataclass(frozen=True)
class AbsenceSummary:
    """Read-model: one student's absences across the subjects taken on a date."""

    external_id: str
    full_name: str
    guardian_contact: Optional[str]
    absent_subjects: tuple[str, ...]
    eligible_subject_count: int
    status: AbsenceStatus

    @property
    def absent_subject_count(self) -> int:
        return len(self.absent_subjects)

    @property
    def is_absent(self) -> bool:
        return self.status != AbsenceStatus.PRESENT

    @property
    def has_usable_contact(self) -> bool:
        return phone_digits(self.guardian_contact) is not None


@dataclass(frozen=True)
class DailyAbsenceSummary:
    stream: str
    period: int
    on_date: date
    total_subjects: int
    subjects_with_attendance: tuple[str, ...]
    students: list[AbsenceSummary]

    @property
    def total_students(self) -> int:
        return len(self.students)

    def count(self, status: AbsenceStatus) -> int:
        return sum(1 for s in self.students if s.status == status)

    @property
    def absent_students(self) -> list[AbsenceSummary]:
        return [s for s in self.students if s.is_absent]

    @property
    def students_to_notify(self) -> list[AbsenceSummary]:
        """Absent students whose guardian can actually be messaged."""
        return [s for s in self.absent_students if s.has_usable_contact]


@dataclass(frozen=True)
class AttendanceRegister:
    """Every recorded date of one subject plus the roster eligible for it."""

    stream: str
    period: int
    subject: str
    roster: list[StudentRecord]
    records: list[AttendanceRecord]

    def present_map(self) -> dict[str, list[str]]:
        return {r.attendance_date.isoformat(): sorted(r.present_ids) for r in self.records}
