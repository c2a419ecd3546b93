"""Immutable serialized snapshots of a sentence state."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sentence_engine.tree import SentenceState


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


@dataclass(frozen=True, slots=True)
class SentenceSnapshot:
    """Serialized copy of a ``SentenceState`` plus the moment it was taken.

    Only ``ReactiveSentence`` interprets the payload; the history just
    stores snapshots and shows their timestamps.
    """

    payload: str
    timestamp: str = field(default_factory=_timestamp)

    @classmethod
    def capture(cls, state: SentenceState) -> "SentenceSnapshot":
        return cls(payload=json.dumps(state.to_dict(), ensure_ascii=False))

    def get_state(self) -> SentenceState:
        """Return a freshly decoded state; repeated calls never share objects."""

        return SentenceState.from_dict(json.loads(self.payload))

    def get_timestamp(self) -> str:
        return self.timestamp

    @property
    def name(self) -> str:
        return self.timestamp


__all__ = ["SentenceSnapshot"]
