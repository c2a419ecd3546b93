"""Reactive sentence state, snapshots and undo/redo history."""

from .history import SnapshotHistory
from .memento import SentenceSnapshot
from .observer import SentenceObserver
from .sentence import BASE_FEATURE_KEYS, ReactiveSentence

__all__ = [
    "BASE_FEATURE_KEYS",
    "ReactiveSentence",
    "SentenceObserver",
    "SentenceSnapshot",
    "SnapshotHistory",
]
