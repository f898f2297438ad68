from __future__ import annotations

from datetime import date

from ...attendance.model import AbsenceSummary
from ...common.datetime_utils import format_day
from ...core.enums import MessageType
from .base import SIGN_OFF, MessageTemplate


class FullDayTemplate(MessageTemplate):
    """Absent from every subject the student takes that day."""

    message_type = MessageType.FULL_DAY

    def render(self, *, summary: AbsenceSummary, stream: str, period: int, on_date: date) -> str:
        return (
            "Dear Parent,\n\n"
            f"Your child {summary.full_name} ({summary.external_id}) was ABSENT for the WHOLE DAY "
            f"on {format_day(on_date)}.\n\n"
            f"Stream: {stream.upper()}\n"
            f"Semester: {period}\n"
            f"Total Subjects: {summary.absent_subject_count}\n\n"
            f"{SIGN_OFF}"
        )
