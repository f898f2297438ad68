from __future__ import annotations

from datetime import date

from ...attendance.model import AbsenceSummary
from ...common.datetime_utils import format_day
from ...core.enums import MessageType
from .base import SIGN_OFF, MessageTemplate


class PartialDayTemplate(MessageTemplate):
    """Lists the subjects missed."""

    message_type = MessageType.PARTIAL_DAY

    def render(self, *, summary: AbsenceSummary, stream: str, period: int, on_date: date) -> str:
        subjects = "\n".join(f"{i}. {name}" for i, name in enumerate(summary.absent_subjects, start=1))
        return (
            "Dear Parent,\n\n"
            f"Your child {summary.full_name} ({summary.external_id}) was ABSENT for the following "
            f"subject(s) on {format_day(on_date)}:\n\n"
            f"{subjects}\n\n"
            f"Stream: {stream.upper()}\n"
            f"Semester: {period}\n\n"
            f"{SIGN_OFF}"
        )
