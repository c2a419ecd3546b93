"""CoNLL-U text codec and surface-text construction.

Token rows are decoded and encoded with the ``conllu`` library. This module
checks what ``conllu`` does not: one sentence per text, comments before
tokens, the ``1..N`` sequence and dangling groups or enhanced nodes. Comment
lines are kept in order, and ``# key``, ``# key =`` and ``# key = value``
stay distinct so ``serialize_sentence(parse_sentence(text))`` reproduces
canonical input byte for byte.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

import conllu
from conllu.exceptions import ParseException
from conllu.models import Token as ConlluToken
from conllu.models import TokenList

from .errors import ParseError
from .models import (
    UNATTACHED,
    UNSET,
    GroupId,
    NormalId,
    SentenceState,
    SentenceTree,
    Token,
    TokenId,
    parse_token_id,
)

COLUMNS = (
    "ID",
    "FORM",
    "LEMMA",
    "UPOS",
    "XPOS",
    "FEATS",
    "HEAD",
    "DEPREL",
    "DEPS",
    "MISC",
)

Meta = Mapping[str, Optional[str]]


def _text_field(value: Any) -> str:
    return UNSET if value is None else str(value)


def _reference(value: Any) -> str:
    # conllu gives (3, ".", 1) for enhanced heads
    if isinstance(value, tuple):
        return "".join(str(part) for part in value)
    return str(value)


def _decode_head(value: Any, line_number: int, line: str) -> int:
    if value is None:
        return UNATTACHED
    if not isinstance(value, int) or value < 0:
        raise ParseError(f"HEAD '{value}' is not a token index", line_number=line_number, line=line)
    return value


def _decode_feats(value: Any, line_number: int, line: str) -> Dict[str, str]:
    feats: Dict[str, str] = {}
    for name, feat in (value or {}).items():
        if not name or not feat:
            raise ParseError(f"Malformed FEATS entry '{name}'", line_number=line_number, line=line)
        feats[name] = feat
    return feats


def _decode_deps(value: Any, line_number: int, line: str) -> Dict[str, str]:
    if value is None:
        return {}
    if isinstance(value, str):
        raise ParseError(f"Malformed DEPS '{value}'", line_number=line_number, line=line)
    return {_reference(head): relation for relation, head in value}


def _decode_misc(value: Any) -> Dict[str, str]:
    return {name: "" if item is None else item for name, item in (value or {}).items()}


def _decode_meta(line: str) -> Tuple[str, Optional[str]]:
    body = line[1:].strip()
    name, sep, value = body.partition("=")
    if not sep:
        return body, None
    return name.strip(), value.strip()


def _split_columns(line: str, line_number: int) -> TokenId:
    columns = line.split("\t")
    if len(columns) != len(COLUMNS):
        raise ParseError(
            f"Expected {len(COLUMNS)} tab-separated columns, found {len(columns)}",
            line_number=line_number,
            line=line,
        )
    try:
        return parse_token_id(columns[0])
    except ParseError as exc:
        raise ParseError(str(exc), line_number=line_number, line=line) from exc


def parse_token_line(line: str, line_number: int = 1) -> Token:
    """Decode one tab-separated row through ``conllu`` into a ``Token``."""

    token_id = _split_columns(line, line_number)
    try:
        (row,) = conllu.parse(line)[0]
    except (ParseException, ValueError) as exc:
        raise ParseError(str(exc), line_number=line_number, line=line) from exc
    return Token(
        id=token_id,
        form=_text_field(row["form"]),
        lemma=_text_field(row["lemma"]),
        upos=_text_field(row["upos"]),
        xpos=_text_field(row["xpos"]),
        feats=_decode_feats(row["feats"], line_number, line),
        head=_decode_head(row["head"], line_number, line),
        deprel=_text_field(row["deprel"]),
        deps=_decode_deps(row["deps"], line_number, line),
        misc=_decode_misc(row["misc"]),
    )


def parse_sentence(text: str) -> SentenceState:
    """Decode one CoNLL-U sentence into a fresh ``SentenceState``."""

    state = SentenceState()
    tree = state.tree
    finished = False
    for line_number, raw in enumerate(text.split("\n"), start=1):
        line = raw.rstrip("\r")
        if not line.strip():
            if tree.nodes or state.meta:
                finished = True
            continue
        if finished:
            raise ParseError(
                "Text holds more than one sentence", line_number=line_number, line=line
            )
        if line.startswith("#"):
            if tree.nodes or tree.groups or tree.enhanced_nodes:
                raise ParseError(
                    "Comment lines must precede token lines",
                    line_number=line_number,
                    line=line,
                )
            name, value = _decode_meta(line)
            state.meta[name] = value
            continue

        token_id = _split_columns(line, line_number)
        if isinstance(token_id, NormalId):
            expected = tree.last_normal_id + 1
            if token_id.index != expected:
                raise ParseError(
                    f"Token ID {token_id} breaks the sequence, expected {expected}",
                    line_number=line_number,
                    line=line,
                )
        layer = tree.layer_for(token_id)
        if str(token_id) in layer:
            raise ParseError(
                f"Duplicate token ID {token_id}", line_number=line_number, line=line
            )
        token = parse_token_line(line, line_number)
        layer[token.key] = token

    last = tree.last_normal_id
    for group in tree.groups.values():
        if group.id.end > last:
            raise ParseError(f"Group {group.key} ends past the last token {last}")
    for node in tree.enhanced_nodes.values():
        if node.id.head > last:
            raise ParseError(f"Enhanced node {node.key} follows a missing token")
    return state


def _encode_misc(values: Mapping[str, str]) -> Optional[str]:
    if not values:
        return None
    return "|".join(f"{key}={value}" if value else key for key, value in values.items())


def _to_conllu(token: Token) -> ConlluToken:
    return ConlluToken(
        {
            "id": token.key,
            "form": token.form,
            "lemma": token.lemma,
            "upos": token.upos,
            "xpos": token.xpos,
            "feats": dict(token.feats) or None,
            "head": None if token.head == UNATTACHED else token.head,
            "deprel": token.deprel,
            "deps": [(relation, head) for head, relation in token.deps.items()] or None,
            "misc": _encode_misc(token.misc),
        }
    )


def _ordered_rows(tree: SentenceTree) -> List[Token]:
    groups_by_start: Dict[int, List[Token]] = {}
    for group in tree.groups.values():
        groups_by_start.setdefault(group.id.start, []).append(group)
    enhanced_by_head: Dict[int, List[Token]] = {}
    for node in tree.enhanced_nodes.values():
        enhanced_by_head.setdefault(node.id.head, []).append(node)
    for bucket in enhanced_by_head.values():
        bucket.sort(key=lambda node: node.id.sub)

    rows: List[Token] = list(enhanced_by_head.pop(0, []))
    for token in tree.nodes.values():
        index = token.id.index
        rows.extend(sorted(groups_by_start.pop(index, []), key=lambda g: -g.id.end))
        rows.append(token)
        rows.extend(enhanced_by_head.pop(index, []))
    # orphaned groups and enhanced nodes go last
    for bucket in groups_by_start.values():
        rows.extend(bucket)
    for bucket in enhanced_by_head.values():
        rows.extend(bucket)
    return rows


def _encode_meta(name: str, value: Optional[str]) -> str:
    if value is None:
        return f"# {name}"
    if not value:
        return f"# {name} ="
    return f"# {name} = {value}"


def serialize_sentence(tree: SentenceTree, meta: Optional[Meta] = None) -> str:
    """Encode a tree (and its comment lines) as CoNLL-U, without a trailing newline."""

    lines = [_encode_meta(name, value) for name, value in (meta or {}).items()]
    rows = _ordered_rows(tree)
    if rows:
        body = TokenList([_to_conllu(token) for token in rows]).serialize()
        lines.append(body.rstrip("\n"))
    return "\n".join(lines)


def construct_text(tree: SentenceTree) -> str:
    """Rebuild the surface sentence, honouring multiword forms and ``SpaceAfter=No``."""

    groups = sorted(tree.groups.values(), key=lambda group: group.id.start)
    pieces: List[str] = []
    skip_until = 0
    for token in tree.nodes.values():
        index = token.id.index
        if index <= skip_until:
            continue
        source = token
        for group in groups:
            if isinstance(group.id, GroupId) and group.id.start == index:
                source = group
                skip_until = group.id.end
                break
        pieces.append(source.form)
        if source.misc.get("SpaceAfter") != "No":
            pieces.append(" ")
    return "".join(pieces).rstrip(" ")


__all__ = [
    "COLUMNS",
    "construct_text",
    "parse_sentence",
    "parse_token_line",
    "serialize_sentence",
]
