from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence

from ..attendance.consolidation import AbsenceConsolidator
from ..attendance.model import DailyAbsenceSummary
from ..common.datetime_utils import as_date, now_utc
from ..core.constants import (
    DEFAULT_DISPATCH_CLAIM_TIMEOUT_SECONDS,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_NOTIFICATION_BATCH_DELAY_SECONDS,
    DEFAULT_NOTIFICATION_BATCH_SIZE,
)
from ..core.enums import Initiator, MessageType, NotificationState
from ..core.exceptions import DispatchError, NoAttendanceRecorded, ValidationError
from ..partitions.units import OrganizationUnits
from .factory import MessageTemplateFactory
from .gateway import NotificationGateway
from .model import DispatchOutcome, DispatchReport, NotificationKey, NotificationLogEntry, OutgoingMessage
from .repository import NotificationLogRepository

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Sends guardian absence messages at most once per (date, stream, semester).

    The log key is claimed before anything is read or sent. A completed entry
    blocks later calls unless every send in it failed; ``force`` re-sends and
    overwrites the stored counts.
    """

    def __init__(
        self,
        units: OrganizationUnits,
        consolidator: AbsenceConsolidator,
        log: NotificationLogRepository,
        gateway: NotificationGateway,
        *,
        template_factory: MessageTemplateFactory | None = None,
        batch_size: int = DEFAULT_NOTIFICATION_BATCH_SIZE,
        batch_delay: float = DEFAULT_NOTIFICATION_BATCH_DELAY_SECONDS,
        claim_timeout: float = DEFAULT_DISPATCH_CLAIM_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if int(batch_size) < 1:
            raise ValidationError("Notification batch size must be at least 1")
        self._units = units
        self._consolidator = consolidator
        self._log = log
        self._gateway = gateway
        self._factory = template_factory or MessageTemplateFactory()
        self._batch_size = int(batch_size)
        self._batch_delay = max(float(batch_delay), 0.0)
        # 0 or less: pending claims never expire
        self._stale_after = timedelta(seconds=float(claim_timeout)) if float(claim_timeout) > 0 else None
        self._sleep = sleep

    def _key(self, stream: str, period: int, notice_date: date | str) -> NotificationKey:
        return NotificationKey(
            notice_date=as_date(notice_date),
            stream=stream,
            period=self._units.validate(stream, period),
        )

    def _messages(self, day: DailyAbsenceSummary) -> list[OutgoingMessage]:
        messages = []
        for summary in day.students_to_notify:
            template = self._factory.for_summary(summary)
            messages.append(
                OutgoingMessage(
                    external_id=summary.external_id,
                    full_name=summary.full_name,
                    contact=summary.guardian_contact,
                    message_type=template.message_type,
                    absent_subjects=summary.absent_subjects,
                    body=template.render(summary=summary, stream=day.stream, period=day.period, on_date=day.on_date),
                )
            )
        return messages

    def _send_one(self, message: OutgoingMessage) -> DispatchOutcome:
        try:
            result = self._gateway.send(message.contact, message.body)
        except Exception as exc:
            error = DispatchError(message.external_id, str(exc) or exc.__class__.__name__)
        else:
            if result.success:
                return DispatchOutcome(
                    external_id=message.external_id,
                    full_name=message.full_name,
                    message_type=message.message_type,
                    success=True,
                    dispatch_id=result.dispatch_id,
                )
            error = DispatchError(message.external_id, result.error or "gateway reported failure")

        logger.warning("%s", error)
        return DispatchOutcome(
            external_id=message.external_id,
            full_name=message.full_name,
            message_type=message.message_type,
            success=False,
            error=error.reason,
        )

    def _send_all(self, messages: list[OutgoingMessage]) -> list[DispatchOutcome]:
        outcomes: list[DispatchOutcome] = []
        if not messages:
            return outcomes

        batches = [messages[i : i + self._batch_size] for i in range(0, len(messages), self._batch_size)]
        with ThreadPoolExecutor(max_workers=min(self._batch_size, len(messages)), thread_name_prefix="notify") as pool:
            for i, batch in enumerate(batches):
                if i:
                    self._sleep(self._batch_delay)
                outcomes.extend(pool.map(self._send_one, batch))
                logger.debug("Notification batch %s/%s sent (%s messages)", i + 1, len(batches), len(batch))
        return outcomes

    def dispatch_absence_notifications(
        self,
        stream: str,
        period: int,
        notice_date: date | str,
        *,
        force: bool = False,
        now: datetime | None = None,
    ) -> DispatchReport:
        key = self._key(stream, period, notice_date)
        initiator = Initiator.FORCED if force else Initiator.MANUAL

        claimed_at = now or now_utc()
        claim = self._log.claim(
            key, initiator=initiator, force=force, now=claimed_at, stale_after=self._stale_after
        )
        if not claim.granted:
            logger.warning(
                "Notifications for %s semester %s on %s already sent (%s messages); skipping",
                key.stream,
                key.period,
                key.notice_date.isoformat(),
                claim.prior.sent_count,
            )
            return DispatchReport.from_entry(claim.prior, already_dispatched=True)

        if not force and claim.prior is not None and claim.prior.is_stale(claimed_at, self._stale_after):
            logger.warning(
                "Taking over stale notification claim for %s semester %s on %s (claimed at %s)",
                key.stream,
                key.period,
                key.notice_date.isoformat(),
                claim.prior.claimed_at,
            )

        try:
            day = self._consolidator.summarize_day(key.stream, key.period, key.notice_date)
            if not day.subjects_with_attendance:
                raise NoAttendanceRecorded(key.stream, key.period, key.notice_date.isoformat())

            messages = self._messages(day)
            skipped = len(day.absent_students) - len(messages)
            if skipped:
                logger.info("%s absent students in %s semester %s have no usable contact", skipped, stream, key.period)

            outcomes = self._send_all(messages)
        except Exception:
            self._log.release(key, prior=claim.prior)
            raise

        sent = [o for o in outcomes if o.success]
        entry = NotificationLogEntry(
            key=key,
            state=NotificationState.COMPLETED,
            initiator=initiator,
            sent_count=len(sent),
            failed_count=len(outcomes) - len(sent),
            students_notified=len(messages),
            full_day_count=sum(1 for o in sent if o.message_type == MessageType.FULL_DAY),
            partial_day_count=sum(1 for o in sent if o.message_type == MessageType.PARTIAL_DAY),
            subjects_included=day.subjects_with_attendance,
            outcomes=tuple(outcomes),
            dispatched_at=now or now_utc(),
            claimed_at=claimed_at,
        )
        self._log.complete(entry)

        logger.info(
            "Absence notifications for %s semester %s on %s: sent=%s failed=%s (%s)",
            key.stream,
            key.period,
            key.notice_date.isoformat(),
            entry.sent_count,
            entry.failed_count,
            initiator.value,
        )
        return DispatchReport.from_entry(entry, already_dispatched=False)

    def dispatch_status(self, stream: str, period: int, notice_date: date | str) -> Optional[NotificationLogEntry]:
        return self._log.get(self._key(stream, period, notice_date))

    def message_history(
        self, stream: str, period: int, *, limit: int = DEFAULT_HISTORY_LIMIT, offset: int = 0
    ) -> Sequence[NotificationLogEntry]:
        """Completed dispatches, newest first."""

        period = self._units.validate(stream, period)
        if limit < 1 or offset < 0:
            raise ValidationError("limit must be positive and offset non-negative")
        return self._log.list_history(stream, period, limit=limit, offset=offset)
