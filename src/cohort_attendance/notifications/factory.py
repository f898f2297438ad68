from __future__ import annotations

from dataclasses import dataclass

from ..attendance.model import AbsenceSummary
from ..core.enums import AbsenceStatus
from .templates.base import MessageTemplate
from .templates.full_day import FullDayTemplate
from .templates.partial_day import PartialDayTemplate


@dataclass
class MessageTemplateFactory:
    """Factory Pattern: pick the wording for a student's absence status."""

    def for_summary(self, summary: AbsenceSummary) -> MessageTemplate:
        if summary.status == AbsenceStatus.FULL_DAY:
            return FullDayTemplate()
        if summary.status == AbsenceStatus.PARTIAL_DAY:
            return PartialDayTemplate()
        raise ValueError(f"No message for a present student: {summary.external_id}")
