"""Textual host adapter for the sentence engine."""

from .controller import SentenceView, TextualSentenceAdapter, TextualUIHooks

__all__ = ["SentenceView", "TextualSentenceAdapter", "TextualUIHooks"]
