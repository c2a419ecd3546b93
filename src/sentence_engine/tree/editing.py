"""Pure ID-range edits on a ``SentenceTree``.

Every function returns a new tree and leaves its input untouched. After an
edit the normal IDs are ``1..N`` again, and HEAD values, DEPS references,
multiword groups and enhanced nodes follow the tokens they pointed at.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .errors import ParseError, StructuralError
from .models import (
    UNATTACHED,
    EnhancedId,
    GroupId,
    NormalId,
    SentenceTree,
    Token,
    TokenId,
    parse_token_id,
)

IdLike = Union[str, int, TokenId]


@dataclass(frozen=True, slots=True)
class _RangeEdit:
    """Replacement of normal IDs ``start..end`` by ``count`` new tokens."""

    start: int
    end: int
    count: int

    @property
    def delta(self) -> int:
        return self.count - (self.end - self.start + 1)

    def remap(self, index: int) -> Optional[int]:
        """New position of old normal ID ``index``; ``None`` once it is gone."""

        if index < self.start:
            return index
        if index > self.end:
            return index + self.delta
        if self.count == 0:
            return None
        return self.start + min(index - self.start, self.count - 1)


def _resolve_range(tree: SentenceTree, ids_to_remove: Iterable[IdLike]) -> _RangeEdit:
    indices: List[int] = []
    raw_ids = list(ids_to_remove)
    for value in raw_ids:
        try:
            token_id = parse_token_id(value)
        except ParseError as exc:
            raise StructuralError(str(exc), ids=raw_ids) from exc
        if not isinstance(token_id, NormalId):
            raise StructuralError(
                f"Only normal token IDs can be replaced, got '{token_id}'", ids=raw_ids
            )
        indices.append(token_id.index)

    if not indices:
        raise StructuralError("No token IDs given to replace", ids=raw_ids)
    start = indices[0]
    if indices != list(range(start, start + len(indices))):
        raise StructuralError(
            f"IDs {indices} are not a contiguous ascending run", ids=raw_ids
        )
    end = indices[-1]
    if end > tree.last_normal_id:
        raise StructuralError(
            f"IDs {start}-{end} fall outside 1-{tree.last_normal_id}", ids=raw_ids
        )
    return _RangeEdit(start=start, end=end, count=0)


def _remap_head(edit: _RangeEdit, head: int) -> int:
    if head <= 0:
        return head
    mapped = edit.remap(head)
    return UNATTACHED if mapped is None else mapped


def _remap_deps(
    edit: _RangeEdit, deps: Dict[str, str], enhanced_keys: Dict[str, str]
) -> Dict[str, str]:
    remapped: Dict[str, str] = {}
    for reference, relation in deps.items():
        if reference in enhanced_keys:
            remapped[enhanced_keys[reference]] = relation
            continue
        try:
            target = parse_token_id(reference)
        except ParseError:
            target = None
        if isinstance(target, NormalId):
            mapped = edit.remap(target.index)
            if mapped is None:
                continue
            reference = str(mapped)
        remapped[reference] = relation
    return remapped


def _rekey_enhanced(tree: SentenceTree, edit: _RangeEdit) -> Dict[str, EnhancedId]:
    """Work out the new ``head.sub`` of every enhanced node."""

    moved: Dict[str, EnhancedId] = {}
    used: Dict[int, int] = {}
    orphans: List[Token] = []
    for node in sorted(
        tree.enhanced_nodes.values(), key=lambda n: (n.id.head, n.id.sub)
    ):
        head = node.id.head
        if head == 0 or not edit.start <= head <= edit.end:
            new_head = head if head < edit.start else head + edit.delta
            new_id = EnhancedId(new_head, node.id.sub)
            moved[node.key] = new_id
            used[new_head] = max(used.get(new_head, 0), node.id.sub)
        else:
            orphans.append(node)

    for node in orphans:
        mapped = edit.remap(node.id.head)
        new_head = mapped if mapped is not None else edit.start - 1
        sub = used.get(new_head, 0) + 1
        used[new_head] = sub
        moved[node.key] = EnhancedId(new_head, sub)
    return moved


def _rekey_group(group: GroupId, edit: _RangeEdit) -> Optional[GroupId]:
    if group.end < edit.start:
        return group
    if group.start > edit.end:
        return GroupId(group.start + edit.delta, group.end + edit.delta)
    new_start = group.start if group.start < edit.start else edit.start
    if group.end > edit.end:
        new_end = group.end + edit.delta
    else:
        new_end = edit.start + edit.count - 1
    if new_start >= new_end:
        return None
    return GroupId(new_start, new_end)


def _carry(
    token: Token,
    new_id: TokenId,
    edit: _RangeEdit,
    enhanced_keys: Dict[str, str],
) -> Token:
    return token.copy(
        id=new_id,
        head=_remap_head(edit, token.head),
        deps=_remap_deps(edit, token.deps, enhanced_keys),
    )


def replace_range(
    tree: SentenceTree,
    ids_to_remove: Iterable[IdLike],
    new_forms: Sequence[str],
    preserve_analysis: bool = False,
) -> SentenceTree:
    """Swap the contiguous run ``ids_to_remove`` for fresh tokens with ``new_forms``.

    Parameters
    ----------
    tree:
        Source tree, never mutated.
    ids_to_remove:
        Contiguous ascending normal IDs inside ``1..N``; anything else raises
        ``StructuralError``.
    new_forms:
        FORM of each inserted token, in order. May be empty (pure removal).
    preserve_analysis:
        When true each new token starts as a copy of the first removed token
        with LEMMA set to its own FORM; otherwise new tokens are blank.
    """

    bounds = _resolve_range(tree, ids_to_remove)
    edit = _RangeEdit(start=bounds.start, end=bounds.end, count=len(new_forms))
    template = tree.nodes[str(edit.start)]

    enhanced_ids = _rekey_enhanced(tree, edit)
    enhanced_keys = {old: str(new) for old, new in enhanced_ids.items()}

    updated = SentenceTree()
    for token in tree.nodes.values():
        index = token.id.index
        if index == edit.start:
            for offset, form in enumerate(new_forms):
                new_id = NormalId(edit.start + offset)
                if preserve_analysis:
                    fresh = _carry(template, new_id, edit, enhanced_keys)
                    fresh.form = form
                    fresh.lemma = form
                else:
                    fresh = Token(id=new_id, form=form)
                updated.nodes[fresh.key] = fresh
        if edit.start <= index <= edit.end:
            continue
        carried = _carry(token, NormalId(edit.remap(index)), edit, enhanced_keys)
        updated.nodes[carried.key] = carried

    for group in tree.groups.values():
        new_group = _rekey_group(group.id, edit)
        if new_group is None:
            continue
        carried = _carry(group, new_group, edit, enhanced_keys)
        updated.groups[carried.key] = carried

    for node in tree.enhanced_nodes.values():
        carried = _carry(node, enhanced_ids[node.key], edit, enhanced_keys)
        updated.enhanced_nodes[carried.key] = carried

    return updated


def remove_range(tree: SentenceTree, ids_to_remove: Iterable[IdLike]) -> SentenceTree:
    """Delete a contiguous run of tokens and close the gap."""

    return replace_range(tree, ids_to_remove, [])


def check_contiguity(tree: SentenceTree) -> None:
    """Raise ``StructuralError`` unless the normal IDs read ``1..N`` in order."""

    for expected, (key, token) in enumerate(tree.nodes.items(), start=1):
        if key != str(expected) or token.key != key:
            raise StructuralError(
                f"Token '{key}' found where ID {expected} was expected", ids=[key]
            )


__all__ = ["check_contiguity", "remove_range", "replace_range"]
