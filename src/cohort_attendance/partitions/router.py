from __future__ import annotations

import hashlib
import logging
import re
import threading
from typing import Optional

from ..common.validators import normalize_label
from ..core.constants import MAX_TABLE_NAME_LENGTH
from ..core.enums import RecordKind
from ..core.exceptions import ReprovisionNotAllowed, ValidationError
from .model import PartitionHandle, PartitionKey
from .provisioner import PartitionProvisioner
from .units import OrganizationUnits

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_NOT_SLUG = re.compile(r"[^a-z0-9_]")
_PLAIN_LABEL = re.compile(r"[a-z0-9]+( [a-z0-9]+)*")


def subject_slug(subject: str) -> str:
    """Table-safe form of a label, case-insensitive.

    Labels made of letters, digits and single spaces map one-to-one. Any
    other label also loses characters on the way ("C#", "C++", "DBMS-Lab"),
    so it gets a digest of the full label to keep distinct labels apart.
    """

    label = _WHITESPACE.sub(" ", subject.strip()).lower()
    slug = _NOT_SLUG.sub("", label.replace(" ", "_"))
    if not slug.strip("_"):
        raise ValidationError(f"Subject name {subject!r} has no usable characters")
    if _PLAIN_LABEL.fullmatch(label):
        return slug
    digest = hashlib.sha1(label.encode("utf-8")).hexdigest()[:8]
    return f"{slug}_{digest}"


def table_name_for(partition_id: str) -> str:
    name = partition_id.replace("-", "_")
    if len(name) <= MAX_TABLE_NAME_LENGTH:
        return name
    digest = hashlib.sha1(partition_id.encode("utf-8")).hexdigest()[:10]
    return f"{name[: MAX_TABLE_NAME_LENGTH - len(digest) - 1]}_{digest}"


class PartitionCache:
    """Append-only partition_id -> handle map, owned by whoever builds the router."""

    def __init__(self):
        self._handles: dict[str, PartitionHandle] = {}
        self._lock = threading.Lock()

    def get(self, partition_id: str) -> Optional[PartitionHandle]:
        return self._handles.get(partition_id)

    def put_if_absent(self, handle: PartitionHandle) -> PartitionHandle:
        with self._lock:
            return self._handles.setdefault(handle.partition_id, handle)

    def __contains__(self, partition_id: str) -> bool:
        return partition_id in self._handles

    def __len__(self) -> int:
        return len(self._handles)


class PartitionRouter:
    """Maps (stream, period, kind, subject?) to a provisioned physical partition."""

    def __init__(
        self,
        units: OrganizationUnits,
        provisioner: PartitionProvisioner,
        *,
        cache: PartitionCache | None = None,
    ):
        self._units = units
        self._provisioner = provisioner
        self._cache = cache if cache is not None else PartitionCache()
        self._creation_lock = threading.Lock()

    @property
    def units(self) -> OrganizationUnits:
        return self._units

    def partition_id(self, key: PartitionKey) -> str:
        config = self._units.get(key.stream)
        period = self._units.validate(key.stream, key.period)

        if key.kind == RecordKind.ATTENDANCE:
            if not key.subject:
                raise ValidationError("Attendance partitions need a subject")
            return f"{config.partition_code}_sem{period}_{subject_slug(key.subject)}_attendance"

        if key.subject:
            raise ValidationError(f"{key.kind.value} partitions are not split by subject")
        return f"{config.partition_code}_sem{period}_{key.kind.value}"

    def resolve(self, key: PartitionKey) -> PartitionHandle:
        pid = self.partition_id(key)
        handle = self._cache.get(pid)
        if handle is not None:
            return handle

        with self._creation_lock:
            handle = self._cache.get(pid)
            if handle is not None:
                return handle

            normalized = PartitionKey(
                stream=key.stream,
                period=int(key.period),
                kind=key.kind,
                subject=normalize_label(key.subject),
            )
            handle = PartitionHandle(partition_id=pid, table_name=table_name_for(pid), key=normalized)
            self._provisioner.ensure(handle)
            logger.info("Provisioned partition %s (table %s)", pid, handle.table_name)
            return self._cache.put_if_absent(handle)

    def students(self, stream: str, period: int) -> PartitionHandle:
        return self.resolve(PartitionKey(stream, period, RecordKind.STUDENTS))

    def subjects(self, stream: str, period: int) -> PartitionHandle:
        return self.resolve(PartitionKey(stream, period, RecordKind.SUBJECTS))

    def attendance(self, stream: str, period: int, subject: str) -> PartitionHandle:
        return self.resolve(PartitionKey(stream, period, RecordKind.ATTENDANCE, subject))

    def reprovision(self, key: PartitionKey, *, allowed: bool) -> PartitionHandle:
        """Drop and recreate a partition's storage. Administrative, destructive."""

        if not allowed:
            raise ReprovisionNotAllowed(f"Reprovisioning {key.stream} semester {key.period} is not allowed")

        handle = self.resolve(key)
        with self._creation_lock:
            self._provisioner.drop(handle)
            self._provisioner.ensure(handle)
        logger.warning("Reprovisioned partition %s; all its records were removed", handle.partition_id)
        return handle
