from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import MigrationEvent
from .repository import MigrationEventRepository


class MySQLMigrationEventRepository(MigrationEventRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, param: str) -> Sequence[MigrationEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT external_id, stream, from_period, to_period, batch_id, generation, migrated_at
                FROM migration_events
                WHERE {where}=%s
                ORDER BY generation ASC, event_id ASC
                """,
                (param,),
            )
            return [
                MigrationEvent(
                    external_id=r["external_id"],
                    stream=r["stream"],
                    from_period=int(r["from_period"]),
                    to_period=int(r["to_period"]),
                    batch_id=r["batch_id"],
                    generation=int(r["generation"]),
                    migrated_at=r["migrated_at"],
                )
                for r in fetchall(cur)
            ]

    def list_for_student(self, external_id: str) -> Sequence[MigrationEvent]:
        return self._select("external_id", external_id)

    def list_for_batch(self, batch_id: str) -> Sequence[MigrationEvent]:
        return self._select("batch_id", batch_id)
