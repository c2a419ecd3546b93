"""Reactive sentence: the single owner of a sentence's state.

Every mutating call builds a new ``SentenceState`` from a copy of the
current one, installs it, then calls ``notify()`` exactly once. Nothing
handed out by the accessors aliases the internal state.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from sentence_engine.runtime import telemetry
from sentence_engine.runtime.settings import EngineSettings, load_settings
from sentence_engine.tree import (
    UNATTACHED,
    UNSET,
    EnhancedId,
    NormalId,
    ParseError,
    SentenceState,
    SentenceTree,
    StructuralError,
    Token,
    TokenId,
    TokenNotFoundError,
    construct_text,
    empty_token,
    parse_sentence,
    parse_token_id,
    remove_range,
    replace_range,
    serialize_sentence,
)

from .memento import SentenceSnapshot
from .observer import SentenceObserver

IdLike = Union[str, int, TokenId]
Diagnostics = Callable[[str], None]

BASE_FEATURE_KEYS = ("FORM", "LEMMA", "UPOS", "XPOS")


def _reset_analysis(token: Token) -> None:
    token.lemma = UNSET
    token.upos = UNSET
    token.xpos = UNSET
    token.feats = {}
    token.head = UNATTACHED
    token.deprel = UNSET
    token.deps = {}
    token.misc = {}


def _retarget(tree: SentenceTree, old: int, new: int, *, skip: str) -> None:
    """Move dependents and enhanced nodes of token ``old`` over to token ``new``."""

    renamed: Dict[str, str] = {}
    for key, node in list(tree.enhanced_nodes.items()):
        if node.id.head != old:
            continue
        del tree.enhanced_nodes[key]
        node.id = EnhancedId(new, node.id.sub)
        tree.enhanced_nodes[node.key] = node
        renamed[key] = node.key
    renamed[str(old)] = str(new)

    for layer in (tree.nodes, tree.groups, tree.enhanced_nodes):
        for key, token in layer.items():
            if key == skip:
                continue
            if token.head == old:
                token.head = new
            token.deps = {
                renamed.get(reference, reference): relation
                for reference, relation in token.deps.items()
            }


class ReactiveSentence:
    """Subject holding one sentence; observers hear about every change."""

    def __init__(
        self,
        *,
        verbose: bool = False,
        diagnostics: Optional[Diagnostics] = None,
        logger_name: Optional[str] = None,
    ) -> None:
        self._state = SentenceState()
        self._observers: List[SentenceObserver] = []
        self._logger_name = logger_name
        self.verbose = verbose
        self._diagnostics = diagnostics

    @classmethod
    def from_settings(
        cls,
        settings: Optional[EngineSettings] = None,
        *,
        diagnostics: Optional[Diagnostics] = None,
    ) -> "ReactiveSentence":
        config = settings or load_settings()
        return cls(
            verbose=config.verbose,
            diagnostics=diagnostics,
            logger_name=config.logger_name,
        )

    # -- subscription -----------------------------------------------------

    @property
    def observers(self) -> tuple[SentenceObserver, ...]:
        return tuple(self._observers)

    def attach(self, observer: SentenceObserver) -> None:
        if observer in self._observers:
            self._diagnose("Subject: observer has been attached already.")
            return
        self._diagnose("Subject: attached an observer.")
        self._observers.append(observer)

    def detach(self, observer: SentenceObserver) -> None:
        if observer not in self._observers:
            self._diagnose("Subject: nonexistent observer.")
            return
        self._diagnose("Subject: detached an observer.")
        self._observers.remove(observer)

    def notify(self) -> None:
        """Run ``update(self)`` on each observer, in attach order."""

        self._diagnose(
            f"Subject: sentence changed, notifying {len(self._observers)} observer(s)."
        )
        for observer in list(self._observers):
            observer.update(self)

    # -- originator -------------------------------------------------------

    def save(self) -> SentenceSnapshot:
        return SentenceSnapshot.capture(self._state)

    def restore(self, snapshot: SentenceSnapshot) -> None:
        with self._span("restore", timestamp=snapshot.get_timestamp()):
            self._install(snapshot.get_state())

    # -- whole-state mutations --------------------------------------------

    def from_text(self, conll_text: str) -> None:
        with self._span("from_text"):
            state = parse_sentence(conll_text)
            self._install(state)
        telemetry.record_event(
            "sentence.loaded",
            data={"tokens": len(state.tree), "meta": len(state.meta)},
            logger_name=self._logger_name,
        )

    def from_state(self, state: SentenceState) -> None:
        with self._span("from_state"):
            self._install(state.copy())

    def update_sentence(self, state: SentenceState) -> None:
        with self._span("update_sentence"):
            self._install(state.copy())

    def update_tree(self, tree: SentenceTree) -> None:
        with self._span("update_tree"):
            self._install_tree(tree.copy())

    # -- token mutations --------------------------------------------------

    def update_token(self, token_id: IdLike, **fields: Any) -> Token:
        """Merge ``fields`` into the record at ``token_id``; other fields are kept.

        ``token_id`` is dispatched on its kind to the normal, group or
        enhanced layer. Unknown field names raise ``TypeError`` and the ID
        itself cannot be changed. Returns a copy of the merged record.
        """

        parsed = parse_token_id(token_id)
        if "id" in fields:
            raise TypeError("update_token() cannot change a token's ID")
        with self._span("update_token", token_id=parsed, fields=sorted(fields)):
            tree = self._state.tree.copy()
            layer = tree.layer_for(parsed)
            existing = layer.get(str(parsed))
            if existing is None:
                raise TokenNotFoundError(parsed)
            # second copy detaches dicts the caller still holds
            merged = existing.copy(**fields).copy()
            layer[str(parsed)] = merged
            self._install_tree(tree)
        return merged.copy()

    def toggle_boolean_feature(self, token_id: IdLike, feature: str) -> bool:
        """Flip ``feature`` in the token's MISC; returns whether it is now active."""

        misc = self.get_token(token_id).misc
        if feature in misc:
            del misc[feature]
            active = False
        else:
            misc[feature] = "Yes"
            active = True
        self.update_token(token_id, misc=misc)
        return active

    def remove_token(self, token_id: IdLike) -> None:
        with self._span("remove_token", token_id=token_id):
            self._install_tree(remove_range(self._state.tree, [token_id]))

    def split_token_before(self, token_id: IdLike) -> None:
        """Insert an empty token in front of ``token_id``; the original moves right."""

        with self._span("split_token_before", token_id=token_id) as handle:
            tree = replace_range(
                self._state.tree,
                [token_id],
                [UNSET, self._form_of(token_id)],
                preserve_analysis=True,
            )
            index = parse_token_id(token_id).index
            original = self._state.tree.nodes[str(index)]
            inserted = tree.nodes[str(index)]
            tree.nodes[str(index + 1)].lemma = original.lemma
            _reset_analysis(inserted)
            _retarget(tree, index, index + 1, skip=inserted.key)
            handle.add_metadata("inserted", inserted.key)
            self._install_tree(tree)
        telemetry.record_event(
            "sentence.token_split",
            data={"token_id": index, "side": "before"},
            logger_name=self._logger_name,
        )

    def split_token_after(self, token_id: IdLike) -> None:
        """Insert an empty token right after ``token_id``."""

        with self._span("split_token_after", token_id=token_id) as handle:
            tree = replace_range(
                self._state.tree,
                [token_id],
                [self._form_of(token_id), UNSET],
                preserve_analysis=True,
            )
            index = parse_token_id(token_id).index
            original = self._state.tree.nodes[str(index)]
            inserted = tree.nodes[str(index + 1)]
            tree.nodes[str(index)].lemma = original.lemma
            _reset_analysis(inserted)
            handle.add_metadata("inserted", inserted.key)
            self._install_tree(tree)
        telemetry.record_event(
            "sentence.token_split",
            data={"token_id": index, "side": "after"},
            logger_name=self._logger_name,
        )

    def append_empty_token(self) -> Token:
        with self._span("append_empty_token"):
            tree = self._state.tree.copy()
            token = empty_token(tree.last_normal_id + 1, form=UNSET)
            tree.nodes[token.key] = token
            self._install_tree(tree)
        return token.copy()

    # -- export and read access -------------------------------------------

    def export_text(self) -> str:
        return serialize_sentence(self._state.tree, self._state.meta)

    def export_text_with_meta(self, override_meta: Mapping[str, Optional[str]]) -> str:
        """Serialize with ``override_meta`` winning over the stored comment lines."""

        meta = dict(override_meta)
        for name, value in self._state.meta.items():
            meta.setdefault(name, value)
        return serialize_sentence(self._state.tree, meta)

    def get_plain_text(self) -> str:
        return construct_text(self._state.tree)

    def get_underscored_text(self) -> str:
        return "_".join(token.form for token in self._state.tree.iter_tokens())

    def get_all_feature_keys(self) -> List[str]:
        keys = list(BASE_FEATURE_KEYS)
        seen = set(keys)
        for token in self._state.tree.iter_tokens():
            names = [f"FEATS.{name}" for name in token.feats]
            names.extend(f"MISC.{name}" for name in token.misc)
            for name in names:
                if name not in seen:
                    seen.add(name)
                    keys.append(name)
        return keys

    def snapshot(self) -> SentenceState:
        return self._state.copy()

    @property
    def tree(self) -> SentenceTree:
        return self._state.tree.copy()

    @property
    def meta(self) -> Dict[str, Optional[str]]:
        return dict(self._state.meta)

    def get_token(self, token_id: IdLike) -> Token:
        parsed = parse_token_id(token_id)
        token = self._state.tree.layer_for(parsed).get(str(parsed))
        if token is None:
            raise TokenNotFoundError(parsed)
        return token.copy()

    def __len__(self) -> int:
        return len(self._state.tree)

    # -- internals --------------------------------------------------------

    def _form_of(self, token_id: IdLike) -> str:
        try:
            parsed = parse_token_id(token_id)
        except ParseError as exc:
            raise StructuralError(
                f"Cannot split {token_id!r}: {exc}", ids=[token_id]
            ) from exc
        token = self._state.tree.nodes.get(str(parsed))
        if not isinstance(parsed, NormalId) or token is None:
            raise StructuralError(
                f"Cannot split '{parsed}': not a token of this sentence", ids=[token_id]
            )
        return token.form

    def _install(self, state: SentenceState) -> None:
        self._state = state
        self.notify()

    def _install_tree(self, tree: SentenceTree) -> None:
        self._install(SentenceState(tree=tree, meta=dict(self._state.meta)))

    def _diagnose(self, message: str) -> None:
        if not self.verbose:
            return
        if self._diagnostics is not None:
            self._diagnostics(message)
        else:
            telemetry.get_logger(self._logger_name).debug(message)

    @contextmanager
    def _span(self, operation: str, **metadata: object) -> Iterator[telemetry.SpanHandle]:
        with telemetry.span(
            f"sentence::{operation}",
            logger_name=self._logger_name,
            component="sentence",
            metadata=dict(metadata),
        ) as handle:
            yield handle


__all__ = ["BASE_FEATURE_KEYS", "ReactiveSentence"]
