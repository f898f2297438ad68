from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import SubjectType


@dataclass(frozen=True)
class SubjectRecord:
    """Domain entity: a subject taught to one (stream, semester). Never migrated."""

    name: str
    code: str
    stream: str
    period: int
    subject_type: SubjectType
    created_at: datetime
    language_tag: Optional[str] = None
    credits: int = 4
    is_active: bool = True

    @property
    def is_language_restricted(self) -> bool:
        return self.subject_type == SubjectType.LANGUAGE


@dataclass(frozen=True)
class SubjectSetupResult:
    name: str
    success: bool
    error: Optional[str] = None
