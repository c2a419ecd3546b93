"""Sentence data model, CoNLL-U codec and pure tree edits."""

from .codec import construct_text, parse_sentence, serialize_sentence
from .editing import check_contiguity, remove_range, replace_range
from .errors import ParseError, SentenceEngineError, StructuralError, TokenNotFoundError
from .models import (
    UNATTACHED,
    UNSET,
    EnhancedId,
    GroupId,
    NormalId,
    SentenceState,
    SentenceTree,
    Token,
    TokenId,
    empty_token,
    parse_token_id,
)

__all__ = [
    "EnhancedId",
    "GroupId",
    "NormalId",
    "ParseError",
    "SentenceEngineError",
    "SentenceState",
    "SentenceTree",
    "StructuralError",
    "Token",
    "TokenId",
    "TokenNotFoundError",
    "UNATTACHED",
    "UNSET",
    "check_contiguity",
    "construct_text",
    "empty_token",
    "parse_sentence",
    "parse_token_id",
    "remove_range",
    "replace_range",
    "serialize_sentence",
]
