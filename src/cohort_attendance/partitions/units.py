from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from ..core.constants import DEFAULT_FINAL_PERIOD
from ..core.exceptions import InvalidPeriod, UnknownOrganizationUnit
from .model import StreamConfig


class OrganizationUnits:
    """Read-only stream name -> StreamConfig mapping supplied at startup."""

    def __init__(self, streams: Iterable[StreamConfig]):
        self._streams: dict[str, StreamConfig] = {}
        for s in streams:
            if s.name in self._streams:
                raise ValueError(f"Duplicate stream configured: {s.name}")
            self._streams[s.name] = s

    @classmethod
    def from_settings(cls, entries: Sequence[Mapping]) -> "OrganizationUnits":
        """Build from the ``STREAMS`` list of a settings module."""
        return cls(
            StreamConfig(
                name=str(e["name"]),
                partition_code=str(e["code"]),
                periods=tuple(e.get("periods", (1, 2, 3, 4, 5, 6))),
                final_period=int(e.get("final_period", DEFAULT_FINAL_PERIOD)),
                description=str(e.get("description", "")),
            )
            for e in entries
        )

    def names(self) -> list[str]:
        return list(self._streams)

    def all(self) -> list[StreamConfig]:
        return list(self._streams.values())

    def get(self, stream: str) -> StreamConfig:
        config = self._streams.get(stream)
        if config is None:
            raise UnknownOrganizationUnit(stream, self._streams)
        return config

    def validate(self, stream: str, period) -> int:
        """Return the period as int, or raise if the stream does not run it."""
        config = self.get(stream)
        if isinstance(period, bool):
            raise InvalidPeriod(stream, period, config.periods)
        try:
            p = int(str(period).strip())
        except (TypeError, ValueError):
            raise InvalidPeriod(stream, period, config.periods)
        if not config.supports(p):
            raise InvalidPeriod(stream, period, config.periods)
        return p

    def promotion_range(self, stream: str) -> tuple[int, ...]:
        return self.get(stream).periods
