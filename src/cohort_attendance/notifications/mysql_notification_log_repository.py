from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..core.enums import Initiator, MessageType, NotificationState
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, to_json
from .model import Claim, DispatchOutcome, NotificationKey, NotificationLogEntry
from .repository import NotificationLogRepository

_COLUMNS = (
    "notice_date, stream, period, state, sent_count, failed_count, students_notified, full_day_count, "
    "partial_day_count, subjects_included, outcomes, initiator, dispatched_at, claimed_at"
)


def _outcome_to_dict(o: DispatchOutcome) -> dict:
    return {
        "external_id": o.external_id,
        "full_name": o.full_name,
        "message_type": o.message_type.value,
        "success": o.success,
        "dispatch_id": o.dispatch_id,
        "error": o.error,
    }


def _outcome_from_dict(d: dict) -> DispatchOutcome:
    return DispatchOutcome(
        external_id=d["external_id"],
        full_name=d.get("full_name", ""),
        message_type=MessageType(d["message_type"]),
        success=bool(d.get("success")),
        dispatch_id=d.get("dispatch_id"),
        error=d.get("error"),
    )


def _to_entry(r: dict) -> NotificationLogEntry:
    return NotificationLogEntry(
        key=NotificationKey(notice_date=r["notice_date"], stream=r["stream"], period=int(r["period"])),
        state=NotificationState(r["state"]),
        initiator=Initiator(r.get("initiator") or Initiator.MANUAL.value),
        sent_count=int(r.get("sent_count") or 0),
        failed_count=int(r.get("failed_count") or 0),
        students_notified=int(r.get("students_notified") or 0),
        full_day_count=int(r.get("full_day_count") or 0),
        partial_day_count=int(r.get("partial_day_count") or 0),
        subjects_included=tuple(from_json(r.get("subjects_included"), [])),
        outcomes=tuple(_outcome_from_dict(d) for d in from_json(r.get("outcomes"), [])),
        dispatched_at=r.get("dispatched_at"),
        claimed_at=r.get("claimed_at"),
    )


def _key_params(key: NotificationKey) -> tuple:
    return (key.notice_date, key.stream, int(key.period))


def _entry_params(e: NotificationLogEntry) -> tuple:
    return (
        e.state.value,
        int(e.sent_count),
        int(e.failed_count),
        int(e.students_notified),
        int(e.full_day_count),
        int(e.partial_day_count),
        to_json(list(e.subjects_included)),
        to_json([_outcome_to_dict(o) for o in e.outcomes]),
        e.initiator.value,
        e.dispatched_at,
        e.claimed_at,
    )


_UPDATE_SET = """
    state=%s, sent_count=%s, failed_count=%s, students_notified=%s, full_day_count=%s,
    partial_day_count=%s, subjects_included=%s, outcomes=%s, initiator=%s, dispatched_at=%s, claimed_at=%s
"""


class MySQLNotificationLogRepository(NotificationLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, key: NotificationKey) -> Optional[NotificationLogEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM notification_log WHERE notice_date=%s AND stream=%s AND period=%s",
                _key_params(key),
            )
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def claim(
        self,
        key: NotificationKey,
        *,
        initiator: Initiator,
        force: bool,
        now: datetime,
        stale_after: Optional[timedelta] = None,
    ) -> Claim:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO notification_log(notice_date, stream, period, state, initiator, claimed_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (*_key_params(key), NotificationState.PENDING.value, initiator.value, now),
            )
            if cur.rowcount == 1:
                return Claim(granted=True)

            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM notification_log
                WHERE notice_date=%s AND stream=%s AND period=%s
                FOR UPDATE
                """,
                _key_params(key),
            )
            prior = _to_entry(fetchone(cur))
            if not prior.claimable(force=force, now=now, stale_after=stale_after):
                return Claim(granted=False, prior=prior)

            cur.execute(
                """
                UPDATE notification_log SET state=%s, initiator=%s, claimed_at=%s
                WHERE notice_date=%s AND stream=%s AND period=%s
                """,
                (NotificationState.PENDING.value, initiator.value, now, *_key_params(key)),
            )
            return Claim(granted=True, prior=prior)

    def complete(self, entry: NotificationLogEntry) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE notification_log SET {_UPDATE_SET} WHERE notice_date=%s AND stream=%s AND period=%s",
                (*_entry_params(entry), *_key_params(entry.key)),
            )

    def release(self, key: NotificationKey, *, prior: Optional[NotificationLogEntry]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            if prior is None:
                cur.execute(
                    "DELETE FROM notification_log WHERE notice_date=%s AND stream=%s AND period=%s AND state=%s",
                    (*_key_params(key), NotificationState.PENDING.value),
                )
                return
            cur.execute(
                f"UPDATE notification_log SET {_UPDATE_SET} WHERE notice_date=%s AND stream=%s AND period=%s",
                (*_entry_params(prior), *_key_params(key)),
            )

    def list_history(self, stream: str, period: int, *, limit: int, offset: int = 0) -> Sequence[NotificationLogEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM notification_log
                WHERE stream=%s AND period=%s AND state=%s
                ORDER BY notice_date DESC, dispatched_at DESC
                LIMIT %s OFFSET %s
                """,
                (stream, int(period), NotificationState.COMPLETED.value, int(limit), int(offset)),
            )
            return [_to_entry(r) for r in fetchall(cur)]
