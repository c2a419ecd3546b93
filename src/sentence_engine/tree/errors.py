"""Exceptions raised by the codec, the editing functions and the state holder."""

from __future__ import annotations

from typing import Iterable, Optional


class SentenceEngineError(RuntimeError):
    """Base class for every error surfaced by the engine."""


class ParseError(SentenceEngineError):
    """Raised when CoNLL-U text (or a token ID) cannot be decoded."""

    def __init__(
        self,
        message: str,
        *,
        line_number: Optional[int] = None,
        line: Optional[str] = None,
    ) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number
        self.line = line


class StructuralError(SentenceEngineError):
    """Raised when an ID-range edit would break contiguity or range rules."""

    def __init__(self, message: str, *, ids: Iterable[object] = ()) -> None:
        super().__init__(message)
        self.ids = tuple(ids)


class TokenNotFoundError(SentenceEngineError, KeyError):
    """Raised when an update targets a token, group or enhanced node that is absent."""

    def __init__(self, token_id: object) -> None:
        super().__init__(f"No token record with ID '{token_id}'")
        self.token_id = str(token_id)

    def __str__(self) -> str:
        return str(self.args[0])


__all__ = [
    "ParseError",
    "SentenceEngineError",
    "StructuralError",
    "TokenNotFoundError",
]
