from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import DuplicateRecord
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, quote_identifier, to_json
from ..partitions.model import PartitionHandle
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = "attendance_date, subject_name, present_ids, total_eligible, language_tag, recorded_at, updated_at"


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        subject=r["subject_name"],
        attendance_date=r["attendance_date"],
        present_ids=frozenset(from_json(r.get("present_ids"), [])),
        total_eligible=int(r.get("total_eligible") or 0),
        language_tag=r.get("language_tag"),
        recorded_at=r["recorded_at"],
        updated_at=r["updated_at"],
    )


def _params(record: AttendanceRecord) -> tuple:
    return (
        record.attendance_date,
        record.subject,
        to_json(sorted(record.present_ids)),
        int(record.total_eligible),
        record.language_tag,
        record.recorded_at,
        record.updated_at,
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_date(self, handle: PartitionHandle, attendance_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM {quote_identifier(handle.table_name)} WHERE attendance_date=%s",
                (attendance_date,),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_records(self, handle: PartitionHandle) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM {quote_identifier(handle.table_name)}
                ORDER BY attendance_date ASC
                """
            )
            return [_to_record(r) for r in fetchall(cur)]

    def insert(self, handle: PartitionHandle, record: AttendanceRecord) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"INSERT INTO {quote_identifier(handle.table_name)}({_COLUMNS}) VALUES(%s,%s,%s,%s,%s,%s,%s)",
                    _params(record),
                )
        except mysql.connector.IntegrityError as exc:
            if exc.errno == errorcode.ER_DUP_ENTRY:
                raise DuplicateRecord(
                    f"Attendance already taken for {record.subject} on {record.attendance_date}",
                    existing=self.get_for_date(handle, record.attendance_date),
                ) from exc
            raise

    def upsert(self, handle: PartitionHandle, record: AttendanceRecord) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO {quote_identifier(handle.table_name)}({_COLUMNS})
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    present_ids=VALUES(present_ids),
                    total_eligible=VALUES(total_eligible),
                    language_tag=VALUES(language_tag),
                    updated_at=VALUES(updated_at)
                """,
                _params(record),
            )
