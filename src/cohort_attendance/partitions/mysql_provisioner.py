from __future__ import annotations

from ..core.enums import RecordKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, quote_identifier
from .model import PartitionHandle
from .provisioner import PartitionProvisioner

_DDL = {
    RecordKind.STUDENTS: """
        CREATE TABLE IF NOT EXISTS {table} (
            student_id INT AUTO_INCREMENT PRIMARY KEY,
            external_id VARCHAR(64) NOT NULL,
            full_name VARCHAR(100) NOT NULL,
            stream VARCHAR(64) NOT NULL,
            period INT NOT NULL,
            guardian_contact VARCHAR(32) NULL,
            language VARCHAR(32) NULL,
            is_active TINYINT(1) NOT NULL DEFAULT 1,
            migration_generation INT NOT NULL DEFAULT 0,
            original_period INT NOT NULL,
            academic_year INT NOT NULL,
            added_at DATETIME NOT NULL,
            last_migrated_at DATETIME NULL,
            last_batch_id VARCHAR(128) NULL,
            UNIQUE KEY uq_external_id (external_id),
            KEY ix_active (is_active)
        ) ENGINE=InnoDB
    """,
    RecordKind.SUBJECTS: """
        CREATE TABLE IF NOT EXISTS {table} (
            subject_id INT AUTO_INCREMENT PRIMARY KEY,
            subject_name VARCHAR(100) NOT NULL,
            subject_code VARCHAR(32) NOT NULL,
            stream VARCHAR(64) NOT NULL,
            period INT NOT NULL,
            subject_type VARCHAR(16) NOT NULL DEFAULT 'CORE',
            language_tag VARCHAR(32) NULL,
            credits INT NOT NULL DEFAULT 4,
            is_active TINYINT(1) NOT NULL DEFAULT 1,
            created_at DATETIME NOT NULL,
            UNIQUE KEY uq_subject_name (subject_name)
        ) ENGINE=InnoDB
    """,
    RecordKind.ATTENDANCE: """
        CREATE TABLE IF NOT EXISTS {table} (
            attendance_id INT AUTO_INCREMENT PRIMARY KEY,
            attendance_date DATE NOT NULL,
            subject_name VARCHAR(100) NOT NULL,
            present_ids MEDIUMTEXT NOT NULL,
            total_eligible INT NOT NULL DEFAULT 0,
            language_tag VARCHAR(32) NULL,
            recorded_at DATETIME NOT NULL,
            updated_at DATETIME NOT NULL,
            UNIQUE KEY uq_attendance_date (attendance_date)
        ) ENGINE=InnoDB
    """,
}


class MySQLPartitionProvisioner(PartitionProvisioner):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def ensure(self, handle: PartitionHandle) -> None:
        ddl = _DDL[handle.kind].format(table=quote_identifier(handle.table_name))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(ddl)

    def drop(self, handle: PartitionHandle) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"DROP TABLE IF EXISTS {quote_identifier(handle.table_name)}")
