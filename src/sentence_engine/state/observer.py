"""Observer protocol used by the reactive sentence."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover
    from .sentence import ReactiveSentence


@runtime_checkable
class SentenceObserver(Protocol):
    """Anything that wants a callback after every sentence change."""

    def update(self, subject: "ReactiveSentence") -> None:
        """Called synchronously, in attach order, once per mutation."""
        ...


__all__ = ["SentenceObserver"]
