from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class StudentRecord:
    """Domain entity: a student as stored in the partition of its current semester."""

    external_id: str
    full_name: str
    stream: str
    period: int
    guardian_contact: Optional[str]
    language: Optional[str]
    academic_year: int
    added_at: datetime
    original_period: int
    is_active: bool = True
    migration_generation: int = 0
    last_migrated_at: Optional[datetime] = None
    last_batch_id: Optional[str] = None

    def promoted(self, *, to_period: int, batch_id: str, at: datetime) -> "StudentRecord":
        return replace(
            self,
            period=to_period,
            is_active=True,
            migration_generation=self.migration_generation + 1,
            added_at=at,
            last_migrated_at=at,
            last_batch_id=batch_id,
            academic_year=at.year,
        )


@dataclass(frozen=True)
class MigrationEvent:
    """Append-only lineage entry written once per student per promotion."""

    external_id: str
    stream: str
    from_period: int
    to_period: int
    batch_id: str
    generation: int
    migrated_at: datetime


@dataclass(frozen=True)
class BulkRowResult:
    external_id: str
    full_name: str
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class BulkAddResult:
    stream: str
    period: int
    results: list[BulkRowResult]

    @property
    def added(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.added
