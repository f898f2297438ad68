from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from ...attendance.model import AbsenceSummary
from ...core.enums import MessageType

SIGN_OFF = "Please contact the school if this is incorrect.\n\nBest regards,\nSchool Administration"


class MessageTemplate(ABC):
    """Strategy Pattern: how one kind of absence is worded for guardians."""

    message_type: MessageType

    @abstractmethod
    def render(self, *, summary: AbsenceSummary, stream: str, period: int, on_date: date) -> str:
        raise NotImplementedError
