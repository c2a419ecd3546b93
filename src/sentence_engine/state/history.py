"""Linear undo/redo history built from sentence snapshots."""

from __future__ import annotations

from typing import Callable, List, Optional

from sentence_engine.runtime import telemetry
from sentence_engine.runtime.settings import EngineSettings, load_settings

from .memento import SentenceSnapshot
from .sentence import ReactiveSentence


class SnapshotHistory:
    """Caretaker for a ``ReactiveSentence``.

    ``backup()`` stores the current state after the cursor and discards any
    redo branch. ``undo()``/``redo()`` move the cursor and restore the
    snapshot found there. With ``limit`` set, the oldest snapshots are
    evicted first.
    """

    def __init__(
        self,
        originator: ReactiveSentence,
        *,
        limit: Optional[int] = None,
        verbose: bool = False,
        diagnostics: Optional[Callable[[str], None]] = None,
        logger_name: Optional[str] = None,
    ) -> None:
        if limit is not None and limit < 1:
            raise ValueError("limit must be positive")
        self.originator = originator
        self.limit = limit
        self.verbose = verbose
        self._diagnostics = diagnostics
        self._logger_name = logger_name
        self._snapshots: List[SentenceSnapshot] = []
        self._index: int = -1

    @classmethod
    def from_settings(
        cls,
        originator: ReactiveSentence,
        settings: Optional[EngineSettings] = None,
        *,
        diagnostics: Optional[Callable[[str], None]] = None,
    ) -> "SnapshotHistory":
        config = settings or load_settings()
        return cls(
            originator,
            limit=config.history_limit,
            verbose=config.verbose,
            diagnostics=diagnostics,
            logger_name=config.logger_name,
        )

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def snapshots(self) -> tuple[SentenceSnapshot, ...]:
        return tuple(self._snapshots)

    def __len__(self) -> int:
        return len(self._snapshots)

    def backup(self) -> SentenceSnapshot:
        snapshot = self.originator.save()
        self._snapshots = self._snapshots[: self._index + 1]
        self._snapshots.append(snapshot)
        self._index += 1
        if self.limit is not None and len(self._snapshots) > self.limit:
            evicted = len(self._snapshots) - self.limit
            del self._snapshots[:evicted]
            self._index -= evicted
        telemetry.record_event(
            "history.backup",
            level="debug",
            data={"index": self._index, "size": len(self._snapshots)},
            logger_name=self._logger_name,
        )
        return snapshot

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index + 1 < len(self._snapshots)

    def undo(self) -> bool:
        if not self.can_undo():
            self._diagnose("history: already at the oldest snapshot, nothing to undo")
            return False
        self._index -= 1
        self._restore_current("history.undo")
        return True

    def redo(self) -> bool:
        if not self.can_redo():
            self._diagnose("history: already at the newest snapshot, nothing to redo")
            return False
        self._index += 1
        self._restore_current("history.redo")
        return True

    def clear(self) -> None:
        self._snapshots = []
        self._index = -1

    def describe(self) -> List[str]:
        lines = []
        for position, snapshot in enumerate(self._snapshots):
            marker = "*" if position == self._index else " "
            lines.append(f"[{marker}] {snapshot.name}")
        return lines

    def show_history(self) -> None:
        emit = self._diagnostics or telemetry.get_logger(self._logger_name).info
        for line in self.describe():
            emit(line)

    def _restore_current(self, event: str) -> None:
        self.originator.restore(self._snapshots[self._index])
        telemetry.record_event(
            event,
            level="debug",
            data={"index": self._index, "size": len(self._snapshots)},
            logger_name=self._logger_name,
        )

    def _diagnose(self, message: str) -> None:
        if not self.verbose:
            return
        if self._diagnostics is not None:
            self._diagnostics(message)
        else:
            telemetry.get_logger(self._logger_name).debug(message)


__all__ = ["SnapshotHistory"]
