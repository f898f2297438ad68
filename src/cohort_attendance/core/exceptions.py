from __future__ import annotations

from typing import Any, Iterable, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class IneligibleStudent(ValidationError):
    """Raised when attendance marks students outside the eligible population."""

    def __init__(self, subject: str, student_ids: Iterable[str]):
        self.subject = subject
        self.student_ids = tuple(sorted(student_ids))
        super().__init__(f"Students not eligible for {subject}: {', '.join(self.student_ids)}")


class ConfigurationError(DomainError):
    """Raised when a request names a stream/period the configuration does not know."""


class UnknownOrganizationUnit(ConfigurationError):
    def __init__(self, stream: str, available: Iterable[str] = ()):
        self.stream = stream
        self.available = tuple(available)
        message = f"Unknown stream: {stream}"
        if self.available:
            message += f". Available: {', '.join(self.available)}"
        super().__init__(message)


class InvalidPeriod(ConfigurationError):
    def __init__(self, stream: str, period: Any, valid: Iterable[int] = ()):
        self.stream = stream
        self.period = period
        self.valid = tuple(valid)
        super().__init__(
            f"Stream {stream} does not support semester {period}. "
            f"Available: {', '.join(str(p) for p in self.valid)}"
        )


class ReprovisionNotAllowed(ConfigurationError):
    """Raised when a destructive partition reset is attempted without the capability."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class SubjectNotFound(NotFoundError):
    def __init__(self, stream: str, period: int, subject: str):
        self.stream = stream
        self.period = period
        self.subject = subject
        super().__init__(f"Subject {subject} not found for {stream} semester {period}")


class StudentNotFound(NotFoundError):
    def __init__(self, external_id: str):
        self.external_id = external_id
        super().__init__(f"Student {external_id} not found")


class NoEligibleStudents(NotFoundError):
    def __init__(self, stream: str, period: int, subject: str):
        self.stream = stream
        self.period = period
        self.subject = subject
        super().__init__(f"No eligible students for {subject} in {stream} semester {period}")


class NoAttendanceRecorded(NotFoundError):
    def __init__(self, stream: str, period: int, on_date: Any):
        self.stream = stream
        self.period = period
        self.on_date = on_date
        super().__init__(f"No attendance records found for {stream} semester {period} on {on_date}")


class ConflictError(DomainError):
    """Raised when a write collides with existing state; `existing` carries that state."""

    def __init__(self, message: str, *, existing: Optional[Any] = None):
        self.existing = existing
        super().__init__(message)


class DuplicateRecord(ConflictError):
    """Attendance for the same (date, subject) already exists."""


class DuplicateStudent(ConflictError):
    """A student with the same external ID already exists in the partition."""


class DispatchInProgress(ConflictError):
    """Another dispatcher holds the claim for the same (date, stream, period)."""


class TransactionAbortedError(DomainError):
    """Raised when a multi-partition transaction was rolled back; nothing was committed."""


class PromotionAborted(TransactionAbortedError):
    """Carries the semester pair that failed, or the stage when no pair was running."""

    def __init__(
        self,
        stream: str,
        from_period: Optional[int],
        to_period: Optional[int],
        batch_id: str,
        cause: BaseException,
        *,
        stage: Optional[str] = None,
    ):
        self.stream = stream
        self.from_period = from_period
        self.to_period = to_period
        self.batch_id = batch_id
        self.cause = cause
        self.stage = stage or "semester promotion"
        where = f"semester {from_period}->{to_period}" if from_period is not None else self.stage
        super().__init__(f"Promotion {batch_id} for {stream} aborted at {where}: {cause}")


class DispatchError(DomainError):
    """Per-student send failure. Accounted in the dispatch report, never propagated."""

    def __init__(self, external_id: str, reason: str):
        self.external_id = external_id
        self.reason = reason
        super().__init__(f"Dispatch to {external_id} failed: {reason}")
