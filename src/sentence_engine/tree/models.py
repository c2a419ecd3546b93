"""Dataclasses describing a CoNLL-U sentence: tagged IDs, tokens, tree and state."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from .errors import ParseError

UNSET = "_"
UNATTACHED = -1

_NORMAL_RE = re.compile(r"^[1-9][0-9]*$")
_GROUP_RE = re.compile(r"^([1-9][0-9]*)-([1-9][0-9]*)$")
_ENHANCED_RE = re.compile(r"^(0|[1-9][0-9]*)\.([1-9][0-9]*)$")


@dataclass(frozen=True, slots=True)
class NormalId:
    """Position of a syntactic word in the linear token sequence."""

    index: int

    def __post_init__(self) -> None:
        if self.index < 1:
            raise ValueError("normal token IDs start at 1")

    def __str__(self) -> str:
        return str(self.index)


@dataclass(frozen=True, slots=True)
class GroupId:
    """Multiword token spanning ``start..end`` (inclusive)."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if not 1 <= self.start < self.end:
            raise ValueError(f"invalid group range {self.start}-{self.end}")

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"

    def covers(self, index: int) -> bool:
        return self.start <= index <= self.end


@dataclass(frozen=True, slots=True)
class EnhancedId:
    """Empty node ``head.sub`` living outside the linear sequence."""

    head: int
    sub: int

    def __post_init__(self) -> None:
        if self.head < 0 or self.sub < 1:
            raise ValueError(f"invalid enhanced ID {self.head}.{self.sub}")

    def __str__(self) -> str:
        return f"{self.head}.{self.sub}"


TokenId = Union[NormalId, GroupId, EnhancedId]


def parse_token_id(value: Union[str, int, TokenId]) -> TokenId:
    """Classify an ID once, turning ``"3"``, ``"3-4"`` or ``"3.1"`` into a tagged ID."""

    if isinstance(value, (NormalId, GroupId, EnhancedId)):
        return value
    if isinstance(value, bool):
        raise ParseError(f"Invalid token ID {value!r}")
    if isinstance(value, int):
        if value < 1:
            raise ParseError(f"Invalid token ID {value!r}")
        return NormalId(value)

    text = str(value).strip()
    if _NORMAL_RE.match(text):
        return NormalId(int(text))
    match = _GROUP_RE.match(text)
    if match:
        start, end = int(match.group(1)), int(match.group(2))
        if start >= end:
            raise ParseError(f"Group ID '{text}' must satisfy start < end")
        return GroupId(start, end)
    match = _ENHANCED_RE.match(text)
    if match:
        return EnhancedId(int(match.group(1)), int(match.group(2)))
    raise ParseError(f"Invalid token ID {value!r}")


@dataclass(slots=True)
class Token:
    """One CoNLL-U row. Also used for multiword groups and enhanced nodes."""

    id: TokenId
    form: str = UNSET
    lemma: str = UNSET
    upos: str = UNSET
    xpos: str = UNSET
    feats: Dict[str, str] = field(default_factory=dict)
    head: int = UNATTACHED
    deprel: str = UNSET
    deps: Dict[str, str] = field(default_factory=dict)
    misc: Dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return str(self.id)

    def copy(self, **changes: Any) -> "Token":
        values = {
            "id": self.id,
            "form": self.form,
            "lemma": self.lemma,
            "upos": self.upos,
            "xpos": self.xpos,
            "feats": dict(self.feats),
            "head": self.head,
            "deprel": self.deprel,
            "deps": dict(self.deps),
            "misc": dict(self.misc),
        }
        values.update(changes)
        return Token(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ID": self.key,
            "FORM": self.form,
            "LEMMA": self.lemma,
            "UPOS": self.upos,
            "XPOS": self.xpos,
            "FEATS": dict(self.feats),
            "HEAD": self.head,
            "DEPREL": self.deprel,
            "DEPS": dict(self.deps),
            "MISC": dict(self.misc),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Token":
        return cls(
            id=parse_token_id(data["ID"]),
            form=data.get("FORM", UNSET),
            lemma=data.get("LEMMA", UNSET),
            upos=data.get("UPOS", UNSET),
            xpos=data.get("XPOS", UNSET),
            feats=dict(data.get("FEATS") or {}),
            head=int(data.get("HEAD", UNATTACHED)),
            deprel=data.get("DEPREL", UNSET),
            deps=dict(data.get("DEPS") or {}),
            misc=dict(data.get("MISC") or {}),
        )


def empty_token(token_id: Union[str, int, TokenId], *, form: str = UNSET) -> Token:
    return Token(id=parse_token_id(token_id), form=form)


@dataclass(slots=True)
class SentenceTree:
    """Normal tokens in linear order plus group and enhanced-node layers.

    ``nodes`` is keyed by ``"1"..."N"`` and its insertion order is the
    linear order, so the last key is always the highest normal ID.
    """

    nodes: Dict[str, Token] = field(default_factory=dict)
    groups: Dict[str, Token] = field(default_factory=dict)
    enhanced_nodes: Dict[str, Token] = field(default_factory=dict)

    @property
    def last_normal_id(self) -> int:
        if not self.nodes:
            return 0
        return int(next(reversed(self.nodes)))

    def __len__(self) -> int:
        return len(self.nodes)

    def iter_tokens(self) -> Iterator[Token]:
        return iter(self.nodes.values())

    def layer_for(self, token_id: TokenId) -> Dict[str, Token]:
        if isinstance(token_id, GroupId):
            return self.groups
        if isinstance(token_id, EnhancedId):
            return self.enhanced_nodes
        return self.nodes

    def copy(self) -> "SentenceTree":
        return SentenceTree(
            nodes={key: token.copy() for key, token in self.nodes.items()},
            groups={key: token.copy() for key, token in self.groups.items()},
            enhanced_nodes={
                key: token.copy() for key, token in self.enhanced_nodes.items()
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [token.to_dict() for token in self.nodes.values()],
            "groups": [token.to_dict() for token in self.groups.values()],
            "enhanced_nodes": [
                token.to_dict() for token in self.enhanced_nodes.values()
            ],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SentenceTree":
        tree = cls()
        for layer_name in ("nodes", "groups", "enhanced_nodes"):
            layer = getattr(tree, layer_name)
            for raw in data.get(layer_name, ()):
                token = Token.from_dict(raw)
                layer[token.key] = token
        return tree


@dataclass(slots=True)
class SentenceState:
    """Everything the reactive sentence snapshots: the tree and its comment lines."""

    tree: SentenceTree = field(default_factory=SentenceTree)
    meta: Dict[str, Optional[str]] = field(default_factory=dict)

    def copy(self) -> "SentenceState":
        return SentenceState(tree=self.tree.copy(), meta=dict(self.meta))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tree": self.tree.to_dict(),
            "meta": [[key, value] for key, value in self.meta.items()],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SentenceState":
        return cls(
            tree=SentenceTree.from_dict(data.get("tree", {})),
            meta={
                str(key): None if value is None else str(value)
                for key, value in data.get("meta", ())
            },
        )


__all__ = [
    "EnhancedId",
    "GroupId",
    "NormalId",
    "SentenceState",
    "SentenceTree",
    "Token",
    "TokenId",
    "UNATTACHED",
    "UNSET",
    "empty_token",
    "parse_token_id",
]
