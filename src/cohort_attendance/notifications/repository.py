from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Protocol, Sequence

from ..core.enums import Initiator
from .model import Claim, NotificationKey, NotificationLogEntry


class NotificationLogRepository(Protocol):
    """Dedup log, one row per (date, stream, semester)."""

    def get(self, key: NotificationKey) -> Optional[NotificationLogEntry]:
        raise NotImplementedError

    def claim(
        self,
        key: NotificationKey,
        *,
        initiator: Initiator,
        force: bool,
        now: datetime,
        stale_after: Optional[timedelta] = None,
    ) -> Claim:
        """Atomically take the key (compare-and-set).

        Not granted when a completed entry blocks it; raises DispatchInProgress
        when another claim is pending and force is not set. A pending claim
        older than ``stale_after`` is taken over.
        """

        raise NotImplementedError

    def complete(self, entry: NotificationLogEntry) -> None:
        """Store the final entry, overwriting counts of any earlier dispatch."""

        raise NotImplementedError

    def release(self, key: NotificationKey, *, prior: Optional[NotificationLogEntry]) -> None:
        """Give up a claim: restore the prior entry, or remove the key if there was none."""

        raise NotImplementedError

    def list_history(self, stream: str, period: int, *, limit: int, offset: int = 0) -> Sequence[NotificationLogEntry]:
        raise NotImplementedError
