from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Iterable, Iterator, Sequence

from ..core.constants import PROMOTION_LOCK_TIMEOUT_SECONDS
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import fetchall, fetchone, placeholders, quote_identifier
from ..partitions.model import PartitionHandle
from ..students.model import MigrationEvent, StudentRecord
from ..students.mysql_student_repository import STUDENT_COLUMNS, insert_student_sql, student_from_row, student_params
from .transaction import PromotionSession, PromotionTransactionProvider

logger = logging.getLogger(__name__)

_SAVEPOINT_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _savepoint(name: str) -> str:
    if not _SAVEPOINT_NAME.match(name):
        raise ValueError(f"Invalid savepoint name: {name}")
    return name


class MySQLPromotionSession(PromotionSession):
    def __init__(self, cur):
        self._cur = cur

    def fetch_active(self, handle: PartitionHandle) -> Sequence[StudentRecord]:
        self._cur.execute(
            f"""
            SELECT {STUDENT_COLUMNS}
            FROM {quote_identifier(handle.table_name)}
            WHERE is_active=1
            ORDER BY external_id ASC
            FOR UPDATE
            """
        )
        return [student_from_row(r) for r in fetchall(self._cur)]

    def insert_students(self, handle: PartitionHandle, students: Iterable[StudentRecord]) -> None:
        rows = [student_params(s) for s in students]
        if rows:
            self._cur.executemany(insert_student_sql(handle.table_name), rows)

    def delete_students(self, handle: PartitionHandle, external_ids: Iterable[str]) -> None:
        ids = list(external_ids)
        if not ids:
            return
        self._cur.execute(
            f"DELETE FROM {quote_identifier(handle.table_name)} WHERE external_id IN ({placeholders(ids)})",
            tuple(ids),
        )

    def append_events(self, events: Iterable[MigrationEvent]) -> None:
        rows = [
            (e.external_id, e.stream, int(e.from_period), int(e.to_period), e.batch_id, int(e.generation), e.migrated_at)
            for e in events
        ]
        if rows:
            self._cur.executemany(
                """
                INSERT INTO migration_events(external_id, stream, from_period, to_period, batch_id, generation, migrated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                rows,
            )

    def savepoint(self, name: str) -> None:
        self._cur.execute(f"SAVEPOINT {_savepoint(name)}")

    def rollback_to_savepoint(self, name: str) -> None:
        self._cur.execute(f"ROLLBACK TO SAVEPOINT {_savepoint(name)}")


class MySQLPromotionTransactionProvider(PromotionTransactionProvider):
    """One connection per promotion: named server lock, then a single transaction."""

    def __init__(self, conn_factory: DatabaseConnection, *, lock_timeout: int = PROMOTION_LOCK_TIMEOUT_SECONDS):
        self._conn_factory = conn_factory
        self._lock_timeout = int(lock_timeout)

    @contextmanager
    def transaction(self, lock_name: str) -> Iterator[MySQLPromotionSession]:
        conn = self._conn_factory.connect()
        cur = conn.cursor(dictionary=True)
        try:
            cur.execute("SELECT GET_LOCK(%s, %s) AS acquired", (lock_name, self._lock_timeout))
            row = fetchone(cur)
            if not row or int(row.get("acquired") or 0) != 1:
                raise ConflictError(f"Another promotion holds {lock_name}")
            try:
                conn.start_transaction()
                try:
                    yield MySQLPromotionSession(cur)
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
            finally:
                cur.execute("SELECT RELEASE_LOCK(%s) AS released", (lock_name,))
                fetchone(cur)
        finally:
            cur.close()
            conn.close()
