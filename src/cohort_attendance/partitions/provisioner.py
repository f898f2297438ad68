from __future__ import annotations

from typing import Protocol

from .model import PartitionHandle


class PartitionProvisioner(Protocol):
    """Creates/drops the physical storage behind a partition handle.

    `ensure` must be idempotent and safe under concurrent calls for the same
    handle: a lost creation race is a no-op, not an error.
    """

    def ensure(self, handle: PartitionHandle) -> None:
        raise NotImplementedError

    def drop(self, handle: PartitionHandle) -> None:
        raise NotImplementedError
