from __future__ import annotations

from typing import Iterable, Optional

from ..students.model import StudentRecord


def is_eligible(student: StudentRecord, language_tag: Optional[str]) -> bool:
    """Core subjects (no tag) take everyone; language subjects only matching choosers."""
    if not language_tag:
        return True
    return (student.language or "").upper() == language_tag.upper()


def eligible_students(students: Iterable[StudentRecord], language_tag: Optional[str]) -> list[StudentRecord]:
    return [s for s in students if s.is_active and is_eligible(s, language_tag)]
