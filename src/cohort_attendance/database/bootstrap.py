from __future__ import annotations

import logging
import re
from pathlib import Path

from ..core.enums import RecordKind
from ..partitions.model import PartitionHandle, PartitionKey
from ..partitions.router import PartitionRouter
from .connection import DBConfig, DatabaseConnection

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"

_COMMENT = re.compile(r"--[^\n]*")
_DATABASE_DIRECTIVE = re.compile(r"^\s*(CREATE\s+DATABASE|USE)\b", re.IGNORECASE)


def schema_statements(sql: str) -> list[str]:
    """Split schema.sql into executable statements.

    CREATE DATABASE / USE lines are dropped so the file works against
    whatever database DB_CONFIG names. The schema holds plain DDL only,
    so ';' never appears inside a literal.
    """

    statements = []
    for chunk in _COMMENT.sub("", sql).split(";"):
        stmt = chunk.strip()
        if stmt and not _DATABASE_DIRECTIVE.match(stmt):
            statements.append(stmt)
    return statements


def ensure_database_exists(conn_factory: DatabaseConnection) -> None:
    conn = conn_factory.connect(database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{conn_factory.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path = DEFAULT_SCHEMA_PATH) -> None:
    """Create the process-wide tables (notification log, migration events).

    Partition tables are not listed here: the partition router provisions
    them on first resolution.
    """

    conn_factory = DatabaseConnection(DBConfig.from_dict(db_config))
    ensure_database_exists(conn_factory)

    schema_path = Path(schema_path)
    statements = schema_statements(schema_path.read_text(encoding="utf-8"))

    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Schema applied from %s to %s (%s statements)", schema_path, conn_factory.database, len(statements))


def list_tables(db_config: dict) -> list[str]:
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()


def provision_base_partitions(router: PartitionRouter) -> list[PartitionHandle]:
    """Resolve the student and subject partitions of every configured semester.

    Attendance partitions depend on subject names and stay on-demand.
    """

    handles = []
    for stream in router.units.all():
        for period in stream.periods:
            for kind in (RecordKind.STUDENTS, RecordKind.SUBJECTS):
                handles.append(router.resolve(PartitionKey(stream.name, period, kind)))
    return handles
