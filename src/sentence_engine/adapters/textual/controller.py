"""Textual-friendly observer that turns sentence changes into UI callbacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from sentence_engine.state import ReactiveSentence, SnapshotHistory
from sentence_engine.tree import SentenceEngineError


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


@dataclass(slots=True)
class SentenceView:
    """Host-friendly snapshot of what the editor should draw."""

    conll: str
    text: str
    token_count: int
    selected: int
    history_index: int
    can_undo: bool
    can_redo: bool


@dataclass(slots=True)
class TextualUIHooks:
    """Callbacks invoked by the adapter to update Textual widgets."""

    update_sentence: Callable[[SentenceView], None]
    update_status: Callable[[str], None] = _noop
    # Optional realtime log callback a host may use to surface debug lines
    log: Callable[[str], None] = _noop


class TextualSentenceAdapter:
    """Observer bridging a ReactiveSentence and its history to a Textual surface.

    Edits go through ``handle_command``; each successful edit is followed by
    a ``backup()`` so every command is one undo step.
    """

    COMMANDS = (
        "split_before",
        "split_after",
        "remove",
        "append",
        "undo",
        "redo",
    )

    def __init__(
        self,
        sentence: ReactiveSentence,
        history: SnapshotHistory,
        hooks: TextualUIHooks,
    ) -> None:
        self.sentence = sentence
        self.history = history
        self.hooks = hooks
        self.selected = 1
        self.sentence.attach(self)
        if len(self.history) == 0:
            self.history.backup()
        self._refresh()

    def close(self) -> None:
        self.sentence.detach(self)

    def update(self, subject: ReactiveSentence) -> None:
        self._log_state("notify ->", tokens=len(subject))
        self._clamp_selection()
        self._refresh()

    def move_selection(self, delta: int) -> int:
        self.selected += delta
        self._clamp_selection()
        self._refresh()
        return self.selected

    def handle_command(self, name: str, token_id: Optional[int] = None) -> bool:
        """Run an editor command; returns ``False`` when nothing changed."""

        target = token_id if token_id is not None else self.selected
        self._log_state("command ->", command=name, target=target)
        try:
            changed = self._dispatch(name, target)
        except SentenceEngineError as exc:
            self.hooks.update_status(f"{name}: {exc}")
            self._log_state("error <-", command=name, error=str(exc))
            return False
        if changed and name not in {"undo", "redo"}:
            self.history.backup()
            self._refresh()
        self.hooks.update_status(name if changed else f"{name}: nothing to do")
        return changed

    def _dispatch(self, name: str, target: int) -> bool:
        if name == "undo":
            return self.history.undo()
        if name == "redo":
            return self.history.redo()
        if name == "append":
            token = self.sentence.append_empty_token()
            self.selected = token.id.index
            return True
        if name == "split_before":
            self.sentence.split_token_before(target)
            return True
        if name == "split_after":
            self.sentence.split_token_after(target)
            self.selected = target + 1
            return True
        if name == "remove":
            self.sentence.remove_token(target)
            return True
        if name.startswith("toggle:"):
            feature = name.split(":", 1)[1]
            active = self.sentence.toggle_boolean_feature(target, feature)
            self._log_state("toggle <-", feature=feature, active=active)
            return True
        raise ValueError(f"Unknown command '{name}'")

    def _clamp_selection(self) -> None:
        count = len(self.sentence)
        self.selected = max(1, min(self.selected, count)) if count else 1

    def _refresh(self) -> None:
        self.hooks.update_sentence(
            SentenceView(
                conll=self.sentence.export_text(),
                text=self.sentence.get_plain_text(),
                token_count=len(self.sentence),
                selected=self.selected,
                history_index=self.history.current_index,
                can_undo=self.history.can_undo(),
                can_redo=self.history.can_redo(),
            )
        )

    def _log_state(self, prefix: str, **fields: object) -> None:
        snapshot: Dict[str, object] = {
            "selected": self.selected,
            "history": self.history.current_index,
        }
        snapshot.update({k: v for k, v in fields.items() if v is not None})
        parts = [prefix]
        for key, value in snapshot.items():
            parts.append(f"{key}={value!r}")
        self.hooks.log(" ".join(parts))


__all__ = ["SentenceView", "TextualSentenceAdapter", "TextualUIHooks"]
