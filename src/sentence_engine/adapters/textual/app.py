"""Executable Textual app that hosts the sentence engine."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

try:  # pragma: no cover - imported only when demo is run
    from textual.app import App, ComposeResult
    from textual.containers import Vertical
    from textual.widgets import Footer, Header, Static
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use sentence_engine.adapters.textual.app"
    ) from exc

from sentence_engine.runtime import load_settings, telemetry
from sentence_engine.state import ReactiveSentence, SnapshotHistory

from .controller import SentenceView, TextualSentenceAdapter, TextualUIHooks

SAMPLE_SENTENCE = "\n".join(
    [
        "# sent_id = demo-1",
        "# text = The cats sleep.",
        "1\tThe\tthe\tDET\tDT\tDefinite=Def\t2\tdet\t_\t_",
        "2\tcats\tcat\tNOUN\tNNS\tNumber=Plur\t3\tnsubj\t_\t_",
        "3\tsleep\tsleep\tVERB\tVBP\t_\t0\troot\t_\tSpaceAfter=No",
        "4\t.\t.\tPUNCT\t.\t_\t3\tpunct\t_\t_",
    ]
)


@dataclass
class UIState:
    text: str = ""
    conll: str = ""
    status_text: str = ""


class SentenceEditorApp(App[None]):
    """Minimal Textual UI embedding the sentence engine."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#sentence-text {
		height: 3;
		border: round $accent;
		padding: 0 1;
	}

	#conll-view {
		height: 1fr;
		border: round $accent;
		padding: 1 1;
		overflow: auto;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("left", "move(-1)", "Prev"),
        ("right", "move(1)", "Next"),
        ("b", "command('split_before')", "Split before"),
        ("s", "command('split_after')", "Split after"),
        ("x", "command('remove')", "Remove"),
        ("n", "command('append')", "Append"),
        ("t", "toggle_feature", "Toggle flag"),
        ("u", "command('undo')", "Undo"),
        ("ctrl+r", "command('redo')", "Redo"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, conll_text: str, *, toggle_feature: str = "Typo") -> None:
        super().__init__()
        self._state = UIState()
        self._conll_text = conll_text
        self._toggle_feature = toggle_feature
        self.adapter: TextualSentenceAdapter | None = None
        self._text_widget: Static | None = None
        self._conll_widget: Static | None = None
        self._status_widget: Static | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Vertical(id="sentence-area"):
            self._text_widget = Static("", id="sentence-text")
            yield self._text_widget
            self._conll_widget = Static("", id="conll-view")
            yield self._conll_widget
        self._status_widget = Static("", id="status-line")
        yield self._status_widget
        yield Footer()

    def on_mount(self) -> None:
        settings = load_settings()
        sentence = ReactiveSentence.from_settings(settings)
        history = SnapshotHistory.from_settings(sentence, settings)
        sentence.from_text(self._conll_text)
        hooks = TextualUIHooks(
            update_sentence=self._update_sentence,
            update_status=self._update_status,
            log=telemetry.get_logger("sentence_engine.ui").debug,
        )
        self.adapter = TextualSentenceAdapter(sentence, history, hooks)

    def on_unmount(self) -> None:
        if self.adapter:
            self.adapter.close()

    def action_move(self, delta: int) -> None:
        if self.adapter:
            self.adapter.move_selection(delta)

    def action_command(self, name: str) -> None:
        if self.adapter:
            self.adapter.handle_command(name)

    def action_toggle_feature(self) -> None:
        if self.adapter:
            self.adapter.handle_command(f"toggle:{self._toggle_feature}")

    def _update_sentence(self, view: SentenceView) -> None:
        self._state.text = view.text
        self._state.conll = _highlight(view.conll, view.selected)
        if self._text_widget:
            self._text_widget.update(self._state.text)
        if self._conll_widget:
            self._conll_widget.update(self._state.conll)
        self.sub_title = (
            f"{view.token_count} tokens | history {view.history_index}"
            f" | undo={'on' if view.can_undo else 'off'}"
            f" redo={'on' if view.can_redo else 'off'}"
        )

    def _update_status(self, status: str) -> None:
        self._state.status_text = status
        if self._status_widget:
            self._status_widget.update(status)


def _highlight(conll: str, selected: int) -> str:
    lines = []
    for line in conll.splitlines():
        marker = "> " if line.split("\t", 1)[0] == str(selected) else "  "
        lines.append(marker + line.replace("[", r"\["))
    return "\n".join(lines)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the sentence engine Textual demo.")
    parser.add_argument(
        "path",
        nargs="?",
        help="CoNLL-U file holding a single sentence (default: built-in sample)",
    )
    parser.add_argument(
        "--toggle-feature",
        default=os.environ.get("SENTENCE_ENGINE_TOGGLE_FEATURE", "Typo"),
        help="MISC flag flipped by the 't' key (default: Typo)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    telemetry.configure(min_level="WARNING")
    text = Path(args.path).read_text(encoding="utf-8") if args.path else SAMPLE_SENTENCE
    app = SentenceEditorApp(text, toggle_feature=args.toggle_feature)
    app.run()


if __name__ == "__main__":  # pragma: no cover - manual demo
    main()
