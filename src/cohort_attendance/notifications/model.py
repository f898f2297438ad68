from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from ..core.enums import Initiator, MessageType, NotificationState
from ..core.exceptions import DispatchInProgress


@dataclass(frozen=True)
class NotificationKey:
    """Dedup scope: one dispatch per calendar date, stream and semester."""

    notice_date: date
    stream: str
    period: int


@dataclass(frozen=True)
class GatewayResult:
    success: bool
    dispatch_id: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class OutgoingMessage:
    external_id: str
    full_name: str
    contact: str
    message_type: MessageType
    absent_subjects: tuple[str, ...]
    body: str


@dataclass(frozen=True)
class DispatchOutcome:
    external_id: str
    full_name: str
    message_type: MessageType
    success: bool
    dispatch_id: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class NotificationLogEntry:
    key: NotificationKey
    state: NotificationState
    initiator: Initiator = Initiator.MANUAL
    sent_count: int = 0
    failed_count: int = 0
    students_notified: int = 0
    full_day_count: int = 0
    partial_day_count: int = 0
    subjects_included: tuple[str, ...] = ()
    outcomes: tuple[DispatchOutcome, ...] = ()
    dispatched_at: Optional[datetime] = None
    claimed_at: Optional[datetime] = None

    @property
    def blocks_redispatch(self) -> bool:
        """Completed entries block unless every attempted send failed."""
        if self.state != NotificationState.COMPLETED:
            return False
        return self.sent_count > 0 or self.students_notified == 0

    def is_stale(self, now: datetime, stale_after: Optional[timedelta]) -> bool:
        """A pending claim left behind by a dispatcher that never finished."""
        if self.state != NotificationState.PENDING or stale_after is None:
            return False
        return self.claimed_at is None or now - self.claimed_at >= stale_after

    def claimable(
        self, *, force: bool, now: Optional[datetime] = None, stale_after: Optional[timedelta] = None
    ) -> bool:
        """Whether a new dispatch may take this key over.

        A pending entry means another dispatcher is mid-flight; only force
        takes it over, unless the claim is older than ``stale_after``.
        """
        if force:
            return True
        if now is not None and self.is_stale(now, stale_after):
            return True
        if self.state == NotificationState.PENDING:
            raise DispatchInProgress(
                f"Notifications for {self.key.stream} semester {self.key.period} on "
                f"{self.key.notice_date.isoformat()} are being sent",
                existing=self,
            )
        return not self.blocks_redispatch


@dataclass(frozen=True)
class DispatchReport:
    key: NotificationKey
    already_dispatched: bool
    initiator: Initiator
    sent_count: int = 0
    failed_count: int = 0
    students_notified: int = 0
    full_day_count: int = 0
    partial_day_count: int = 0
    subjects_included: tuple[str, ...] = ()
    outcomes: tuple[DispatchOutcome, ...] = field(default_factory=tuple)
    dispatched_at: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry: NotificationLogEntry, *, already_dispatched: bool) -> "DispatchReport":
        return cls(
            key=entry.key,
            already_dispatched=already_dispatched,
            initiator=entry.initiator,
            sent_count=entry.sent_count,
            failed_count=entry.failed_count,
            students_notified=entry.students_notified,
            full_day_count=entry.full_day_count,
            partial_day_count=entry.partial_day_count,
            subjects_included=entry.subjects_included,
            outcomes=entry.outcomes,
            dispatched_at=entry.dispatched_at,
        )


@dataclass(frozen=True)
class Claim:
    """Result of trying to take a log key: granted, plus whatever was stored before."""

    granted: bool
    prior: Optional[NotificationLogEntry] = None
