from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import now_utc
from ..core.constants import PROMOTION_LOCK_TIMEOUT_SECONDS
from ..core.exceptions import ConflictError, PromotionAborted
from ..partitions.model import PartitionHandle, StreamConfig
from ..partitions.router import PartitionRouter, subject_slug
from ..students.model import MigrationEvent
from ..students.repository import StudentRepository
from .model import PeriodProjection, PromotionPreview, PromotionReport, PromotionStep
from .transaction import PromotionSession, PromotionTransactionProvider

logger = logging.getLogger(__name__)

GRADUATION_SAVEPOINT = "graduation"


def default_batch_id(stream: str, at: datetime) -> str:
    return f"promotion_{subject_slug(stream)}_{at.strftime('%Y%m%d%H%M%S')}_{uuid.uuid4().hex[:8]}"


class PromotionEngine:
    """Moves a whole stream one semester forward in a single transaction.

    The final semester graduates first, then every pair is processed from the
    highest semester down, so a student can move at most once per call.
    """

    def __init__(
        self,
        router: PartitionRouter,
        transactions: PromotionTransactionProvider,
        students: StudentRepository,
        *,
        lock_timeout: float = PROMOTION_LOCK_TIMEOUT_SECONDS,
    ):
        self._router = router
        self._transactions = transactions
        self._students = students
        self._lock_timeout = lock_timeout
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _stream_lock(self, stream: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(stream, threading.Lock())

    @staticmethod
    def _pairs(config: StreamConfig) -> list[tuple[int, int]]:
        periods = config.periods
        return [(p, p + 1) for p in reversed(periods[:-1])]

    def _graduate(self, session: PromotionSession, handle: PartitionHandle) -> PromotionStep:
        graduates = session.fetch_active(handle)
        ids = tuple(s.external_id for s in graduates)
        session.delete_students(handle, ids)
        return PromotionStep(from_period=handle.period, to_period=None, student_ids=ids)

    def _move(
        self,
        session: PromotionSession,
        source: PartitionHandle,
        target: PartitionHandle,
        *,
        batch_id: str,
        at: datetime,
    ) -> PromotionStep:
        moving = session.fetch_active(source)
        promoted = [s.promoted(to_period=target.period, batch_id=batch_id, at=at) for s in moving]
        session.append_events(
            MigrationEvent(
                external_id=s.external_id,
                stream=s.stream,
                from_period=source.period,
                to_period=target.period,
                batch_id=batch_id,
                generation=s.migration_generation,
                migrated_at=at,
            )
            for s in promoted
        )
        session.insert_students(target, promoted)
        ids = tuple(s.external_id for s in moving)
        session.delete_students(source, ids)
        return PromotionStep(from_period=source.period, to_period=target.period, student_ids=ids)

    def promote(self, stream: str, *, batch_id: Optional[str] = None, now: datetime | None = None) -> PromotionReport:
        config = self._router.units.get(stream)
        at = now or now_utc()
        batch_id = batch_id or default_batch_id(stream, at)

        # DDL commits implicitly in MySQL, so every partition exists before the transaction
        handles = {p: self._router.students(stream, p) for p in config.periods}

        lock = self._stream_lock(stream)
        if not lock.acquire(timeout=self._lock_timeout):
            raise ConflictError(f"A promotion for {stream} is already running")

        try:
            logger.info("Promotion %s started for %s (semesters %s)", batch_id, stream, list(config.periods))
            steps: list[PromotionStep] = []
            graduation: Optional[PromotionStep] = None
            graduation_error: Optional[str] = None
            stage = "opening the transaction"

            try:
                with self._transactions.transaction(f"promotion:{config.partition_code}") as session:
                    if config.supports(config.final_period):
                        stage = "graduation"
                        session.savepoint(GRADUATION_SAVEPOINT)
                        try:
                            graduation = self._graduate(session, handles[config.final_period])
                        except Exception as exc:
                            session.rollback_to_savepoint(GRADUATION_SAVEPOINT)
                            graduation_error = str(exc)
                            logger.warning(
                                "Graduation of %s semester %s skipped in %s: %s",
                                stream,
                                config.final_period,
                                batch_id,
                                exc,
                            )

                    for pair in self._pairs(config):
                        source, target = pair
                        try:
                            step = self._move(session, handles[source], handles[target], batch_id=batch_id, at=at)
                        except Exception as exc:
                            logger.exception(
                                "Promotion %s for %s aborted at semester %s->%s", batch_id, stream, source, target
                            )
                            raise PromotionAborted(stream, source, target, batch_id, exc) from exc
                        steps.append(step)
                    stage = "commit"
            except (ConflictError, PromotionAborted):
                raise
            except Exception as exc:
                logger.exception("Promotion %s for %s aborted during %s", batch_id, stream, stage)
                raise PromotionAborted(stream, None, None, batch_id, exc, stage=stage) from exc
        finally:
            lock.release()

        report = PromotionReport(
            stream=stream,
            batch_id=batch_id,
            promoted_at=at,
            steps=steps,
            graduation=graduation,
            graduation_error=graduation_error,
        )
        logger.info(
            "Promotion %s finished for %s: promoted=%s graduated=%s",
            batch_id,
            stream,
            report.total_promoted,
            report.total_graduated,
        )
        return report

    def preview(self, stream: str) -> PromotionPreview:
        config = self._router.units.get(stream)
        counts = {p: self._students.count_active(self._router.students(stream, p)) for p in config.periods}
        first, top = config.periods[0], config.periods[-1]
        graduating = counts[top] if top == config.final_period else 0

        projections = []
        for p in config.periods:
            stays = counts[p] if p == top and p != config.final_period else 0
            incoming = counts[p - 1] if p != first else 0
            projections.append(PeriodProjection(period=p, current=counts[p], after_promotion=stays + incoming))

        warnings: list[str] = []
        if graduating:
            warnings.append(f"{graduating} students in semester {top} will graduate and be removed")
        if top != config.final_period and counts[top]:
            warnings.append(f"{counts[top]} students in semester {top} stay (no higher semester configured)")
        if not any(counts.values()):
            warnings.append(f"No active students in {stream}")

        return PromotionPreview(stream=stream, periods=projections, graduating=graduating, warnings=warnings)
