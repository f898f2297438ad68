from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Mapping, Optional, Sequence, Union

from ..common.datetime_utils import now_utc
from ..common.validators import normalize_label, require_min_length
from ..core.constants import DEFAULT_SUBJECT_CREDITS
from ..core.enums import RecordKind, SubjectType
from ..core.exceptions import ConflictError, DomainError, SubjectNotFound, ValidationError
from ..partitions.model import PartitionHandle, PartitionKey
from ..partitions.router import PartitionRouter
from .model import SubjectRecord, SubjectSetupResult
from .repository import SubjectRepository

logger = logging.getLogger(__name__)

_NOT_UPPER = re.compile(r"[^A-Z]")

SubjectSpec = Union[str, Mapping]


def default_subject_code(stream: str, period: int, name: str) -> str:
    stream_code = _NOT_UPPER.sub("", stream.upper())[:3] or "GEN"
    name_code = _NOT_UPPER.sub("", name.upper())[:3] or "SUB"
    return f"{stream_code}{period}{name_code}"


class SubjectService:
    def __init__(self, router: PartitionRouter, subjects: SubjectRepository):
        self._router = router
        self._subjects = subjects

    def _require_own_register(self, handle: PartitionHandle, name: str) -> None:
        """Every subject of a semester needs its own attendance partition."""

        def register_of(label: str) -> str:
            return self._router.partition_id(PartitionKey(handle.stream, handle.period, RecordKind.ATTENDANCE, label))

        target = register_of(name)
        for other in self._subjects.list_subjects(handle, include_inactive=True):
            if register_of(other.name) == target:
                raise ConflictError(
                    f"Subject {name} would share attendance storage {target} with {other.name}",
                    existing=other,
                )

    def add_subject(
        self,
        stream: str,
        period: int,
        *,
        name: str,
        subject_type: SubjectType | str = SubjectType.CORE,
        language_tag: Optional[str] = None,
        code: Optional[str] = None,
        credits: int = DEFAULT_SUBJECT_CREDITS,
        now: datetime | None = None,
    ) -> SubjectRecord:
        handle = self._router.subjects(stream, period)
        name = require_min_length(name, "Subject name", 2).upper()
        try:
            subject_type = SubjectType(str(getattr(subject_type, "value", subject_type)).upper())
        except ValueError:
            raise ValidationError(f"Unsupported subject type: {subject_type}")

        language_tag = normalize_label(language_tag)
        if subject_type == SubjectType.LANGUAGE and not language_tag:
            raise ValidationError(f"Language subject {name} needs a language tag")
        if subject_type == SubjectType.CORE and language_tag:
            raise ValidationError(f"Core subject {name} cannot carry a language tag")
        if not 1 <= int(credits) <= 6:
            raise ValidationError("Credits must be between 1 and 6")

        existing = self._subjects.get(handle, name)
        if existing:
            raise ConflictError(f"Subject {name} already exists in {handle.partition_id}", existing=existing)
        self._require_own_register(handle, name)

        subject = SubjectRecord(
            name=name,
            code=(code or default_subject_code(stream, handle.period, name)).upper(),
            stream=stream,
            period=handle.period,
            subject_type=subject_type,
            language_tag=language_tag,
            credits=int(credits),
            created_at=now or now_utc(),
        )
        self._subjects.create(handle, subject)
        logger.info("Subject %s (%s) added to %s", subject.name, subject.subject_type.value, handle.partition_id)
        return subject

    def setup_subjects(self, stream: str, period: int, entries: Sequence[SubjectSpec]) -> list[SubjectSetupResult]:
        """Create the subject fixtures of a semester; duplicates are reported per entry."""

        results: list[SubjectSetupResult] = []
        for entry in entries:
            spec = {"name": entry} if isinstance(entry, str) else dict(entry)
            label = str(spec.get("name") or "").strip()
            try:
                self.add_subject(
                    stream,
                    period,
                    name=label,
                    subject_type=spec.get("subject_type", SubjectType.CORE),
                    language_tag=spec.get("language_tag"),
                    code=spec.get("code"),
                    credits=int(spec.get("credits", DEFAULT_SUBJECT_CREDITS)),
                )
            except DomainError as exc:
                results.append(SubjectSetupResult(label.upper(), False, str(exc)))
                continue
            results.append(SubjectSetupResult(label.upper(), True))

        added = sum(1 for r in results if r.success)
        logger.info("Subjects setup for %s semester %s: %s/%s added", stream, period, added, len(results))
        return results

    def list_subjects(self, stream: str, period: int, *, include_inactive: bool = False) -> Sequence[SubjectRecord]:
        return self._subjects.list_subjects(self._router.subjects(stream, period), include_inactive=include_inactive)

    def get_subject(self, stream: str, period: int, name: str) -> SubjectRecord:
        """Active subject by name (case-insensitive)."""

        handle = self._router.subjects(stream, period)
        subject = self._subjects.get(handle, (name or "").strip().upper())
        if not subject or not subject.is_active:
            raise SubjectNotFound(stream, handle.period, name)
        return subject

    def deactivate_subject(self, stream: str, period: int, name: str) -> None:
        subject = self.get_subject(stream, period, name)
        self._subjects.set_active(self._router.subjects(stream, period), subject.name, is_active=False)
