from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class PromotionStep:
    """One move inside a promotion: period -> period+1, or out of the final period."""

    from_period: int
    to_period: Optional[int]
    student_ids: tuple[str, ...]

    @property
    def count(self) -> int:
        return len(self.student_ids)

    @property
    def is_graduation(self) -> bool:
        return self.to_period is None


@dataclass(frozen=True)
class PromotionReport:
    stream: str
    batch_id: str
    promoted_at: datetime
    steps: list[PromotionStep]
    graduation: Optional[PromotionStep] = None
    graduation_error: Optional[str] = None

    @property
    def total_promoted(self) -> int:
        return sum(s.count for s in self.steps)

    @property
    def total_graduated(self) -> int:
        return self.graduation.count if self.graduation else 0


@dataclass(frozen=True)
class PeriodProjection:
    period: int
    current: int
    after_promotion: int


@dataclass(frozen=True)
class PromotionPreview:
    """What promote() would do right now, without touching storage."""

    stream: str
    periods: list[PeriodProjection]
    graduating: int
    warnings: list[str] = field(default_factory=list)

    @property
    def total_students(self) -> int:
        return sum(p.current for p in self.periods)
