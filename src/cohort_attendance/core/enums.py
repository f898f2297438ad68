from __future__ import annotations

from enum import Enum


class RecordKind(str, Enum):
    """Kind of records a partition holds."""

    STUDENTS = "students"
    SUBJECTS = "subjects"
    ATTENDANCE = "attendance"


class SubjectType(str, Enum):
    """Eligibility class of a subject."""

    CORE = "CORE"
    LANGUAGE = "LANGUAGE"


class AbsenceStatus(str, Enum):
    """Daily classification of a student across the subjects taken that day."""

    PRESENT = "present"
    PARTIAL_DAY = "partial_day"
    FULL_DAY = "full_day"


class MessageType(str, Enum):
    FULL_DAY = "full_day"
    PARTIAL_DAY = "partial_day"


class NotificationState(str, Enum):
    """Lifecycle of a notification log entry."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class Initiator(str, Enum):
    MANUAL = "manual"
    FORCED = "forced"
