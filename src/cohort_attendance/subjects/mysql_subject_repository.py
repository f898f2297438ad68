from __future__ import annotations

from typing import Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import SubjectType
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, quote_identifier
from ..partitions.model import PartitionHandle
from .model import SubjectRecord
from .repository import SubjectRepository

_COLUMNS = "subject_name, subject_code, stream, period, subject_type, language_tag, credits, is_active, created_at"


def _to_subject(r: dict) -> SubjectRecord:
    return SubjectRecord(
        name=r["subject_name"],
        code=r["subject_code"],
        stream=r["stream"],
        period=int(r["period"]),
        subject_type=SubjectType(r["subject_type"]),
        language_tag=r.get("language_tag"),
        credits=int(r.get("credits") or 0),
        is_active=bool(r.get("is_active", True)),
        created_at=r["created_at"],
    )


class MySQLSubjectRepository(SubjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, handle: PartitionHandle, name: str) -> Optional[SubjectRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM {quote_identifier(handle.table_name)} WHERE subject_name=%s",
                (name,),
            )
            r = fetchone(cur)
            return _to_subject(r) if r else None

    def list_subjects(self, handle: PartitionHandle, *, include_inactive: bool = False) -> Sequence[SubjectRecord]:
        where = "" if include_inactive else "WHERE is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM {quote_identifier(handle.table_name)}
                {where}
                ORDER BY subject_name ASC
                """
            )
            return [_to_subject(r) for r in fetchall(cur)]

    def create(self, handle: PartitionHandle, subject: SubjectRecord) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    INSERT INTO {quote_identifier(handle.table_name)}({_COLUMNS})
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        subject.name,
                        subject.code,
                        subject.stream,
                        int(subject.period),
                        subject.subject_type.value,
                        subject.language_tag,
                        int(subject.credits),
                        1 if subject.is_active else 0,
                        subject.created_at,
                    ),
                )
        except mysql.connector.IntegrityError as exc:
            if exc.errno == errorcode.ER_DUP_ENTRY:
                raise ConflictError(
                    f"Subject {subject.name} already exists in {handle.partition_id}",
                    existing=self.get(handle, subject.name),
                ) from exc
            raise

    def set_active(self, handle: PartitionHandle, name: str, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE {quote_identifier(handle.table_name)} SET is_active=%s WHERE subject_name=%s",
                (1 if is_active else 0, name),
            )
            return cur.rowcount > 0
