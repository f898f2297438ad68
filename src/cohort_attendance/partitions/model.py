from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..core.constants import DEFAULT_FINAL_PERIOD
from ..core.enums import RecordKind


@dataclass(frozen=True)
class StreamConfig:
    """One organisation unit: a program stream and the semesters it runs."""

    name: str
    partition_code: str
    periods: tuple[int, ...] = (1, 2, 3, 4, 5, 6)
    final_period: int = DEFAULT_FINAL_PERIOD
    description: str = ""

    def __post_init__(self):
        periods = tuple(sorted(int(p) for p in self.periods))
        if not periods:
            raise ValueError(f"Stream {self.name} has no periods configured")
        if list(periods) != list(range(periods[0], periods[-1] + 1)):
            raise ValueError(f"Stream {self.name} periods must be contiguous: {periods}")
        object.__setattr__(self, "periods", periods)

    def supports(self, period: int) -> bool:
        return period in self.periods

    @property
    def is_restricted(self) -> bool:
        return self.periods[0] != 1 or self.periods[-1] != self.final_period


@dataclass(frozen=True)
class PartitionKey:
    stream: str
    period: int
    kind: RecordKind
    subject: Optional[str] = None


@dataclass(frozen=True)
class PartitionHandle:
    """Resolved physical partition. One instance per partition_id per router."""

    partition_id: str
    table_name: str
    key: PartitionKey = field(compare=False)

    @property
    def stream(self) -> str:
        return self.key.stream

    @property
    def period(self) -> int:
        return self.key.period

    @property
    def kind(self) -> RecordKind:
        return self.key.kind
