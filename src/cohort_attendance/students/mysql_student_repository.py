from __future__ import annotations

from typing import Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import DuplicateStudent
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, quote_identifier
from ..partitions.model import PartitionHandle
from .model import StudentRecord
from .repository import StudentRepository

STUDENT_COLUMNS = (
    "external_id, full_name, stream, period, guardian_contact, language, is_active, "
    "migration_generation, original_period, academic_year, added_at, last_migrated_at, last_batch_id"
)


def insert_student_sql(table_name: str) -> str:
    return (
        f"INSERT INTO {quote_identifier(table_name)}({STUDENT_COLUMNS}) "
        "VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)"
    )


def student_params(s: StudentRecord) -> tuple:
    return (
        s.external_id,
        s.full_name,
        s.stream,
        int(s.period),
        s.guardian_contact,
        s.language,
        1 if s.is_active else 0,
        int(s.migration_generation),
        int(s.original_period),
        int(s.academic_year),
        s.added_at,
        s.last_migrated_at,
        s.last_batch_id,
    )


def student_from_row(r: dict) -> StudentRecord:
    return StudentRecord(
        external_id=r["external_id"],
        full_name=r["full_name"],
        stream=r["stream"],
        period=int(r["period"]),
        guardian_contact=r.get("guardian_contact"),
        language=r.get("language"),
        is_active=bool(r.get("is_active", True)),
        migration_generation=int(r.get("migration_generation") or 0),
        original_period=int(r["original_period"]),
        academic_year=int(r["academic_year"]),
        added_at=r["added_at"],
        last_migrated_at=r.get("last_migrated_at"),
        last_batch_id=r.get("last_batch_id"),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, handle: PartitionHandle, external_id: str) -> Optional[StudentRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {STUDENT_COLUMNS} FROM {quote_identifier(handle.table_name)} WHERE external_id=%s",
                (external_id,),
            )
            r = fetchone(cur)
            return student_from_row(r) if r else None

    def list_students(self, handle: PartitionHandle, *, include_inactive: bool = False) -> Sequence[StudentRecord]:
        where = "" if include_inactive else "WHERE is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {STUDENT_COLUMNS}
                FROM {quote_identifier(handle.table_name)}
                {where}
                ORDER BY external_id ASC
                """
            )
            return [student_from_row(r) for r in fetchall(cur)]

    def count_active(self, handle: PartitionHandle) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM {quote_identifier(handle.table_name)} WHERE is_active=1")
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def create(self, handle: PartitionHandle, student: StudentRecord) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(insert_student_sql(handle.table_name), student_params(student))
        except mysql.connector.IntegrityError as exc:
            if exc.errno == errorcode.ER_DUP_ENTRY:
                raise DuplicateStudent(
                    f"Student {student.external_id} already exists in {handle.partition_id}",
                    existing=self.get(handle, student.external_id),
                ) from exc
            raise

    def set_active(self, handle: PartitionHandle, external_id: str, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE {quote_identifier(handle.table_name)} SET is_active=%s WHERE external_id=%s",
                (1 if is_active else 0, external_id),
            )
            return cur.rowcount > 0

    def update_contact(self, handle: PartitionHandle, external_id: str, *, guardian_contact: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE {quote_identifier(handle.table_name)} SET guardian_contact=%s WHERE external_id=%s",
                (guardian_contact, external_id),
            )
            return cur.rowcount > 0
