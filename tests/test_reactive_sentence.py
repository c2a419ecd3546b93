from __future__ import annotations

from typing import List, Tuple

import pytest

from sentence_engine.state import BASE_FEATURE_KEYS, ReactiveSentence
from sentence_engine.tree import (
    EnhancedId,
    GroupId,
    NormalId,
    ParseError,
    SentenceState,
    SentenceTree,
    StructuralError,
    Token,
    TokenNotFoundError,
    check_contiguity,
)

CONLL = "\n".join(
    [
        "# sent_id = en-1",
        "# text = The cats sleep.",
        "1\tThe\tthe\tDET\tDT\tDefinite=Def\t2\tdet\t_\t_",
        "2\tcats\tcat\tNOUN\tNNS\tNumber=Plur\t3\tnsubj\t3:nsubj\t_",
        "3\tsleep\tsleep\tVERB\tVBP\tMood=Ind\t0\troot\t0:root\tSpaceAfter=No",
        "4\t.\t.\tPUNCT\t.\t_\t3\tpunct\t_\tTypo=Yes",
    ]
)


class Recorder:
    """Observer that logs the underscored text it sees on every update."""

    def __init__(self, name: str, log: List[Tuple[str, str]]) -> None:
        self.name = name
        self.log = log

    def update(self, subject: ReactiveSentence) -> None:
        self.log.append((self.name, subject.get_underscored_text()))


def make_state(*forms: str) -> SentenceState:
    tree = SentenceTree()
    for index, form in enumerate(forms, start=1):
        tree.nodes[str(index)] = Token(id=NormalId(index), form=form, lemma=form.lower())
    return SentenceState(tree=tree, meta={"sent_id": "t1"})


def make_sentence(*forms: str) -> Tuple[ReactiveSentence, List[Tuple[str, str]]]:
    sentence = ReactiveSentence()
    sentence.from_state(make_state(*forms))
    log: List[Tuple[str, str]] = []
    sentence.attach(Recorder("main", log))
    return sentence, log


def loaded_sentence() -> Tuple[ReactiveSentence, List[Tuple[str, str]]]:
    sentence = ReactiveSentence()
    sentence.from_text(CONLL)
    log: List[Tuple[str, str]] = []
    sentence.attach(Recorder("main", log))
    return sentence, log


def test_from_text_loads_and_notifies_once() -> None:
    sentence = ReactiveSentence()
    log: List[Tuple[str, str]] = []
    sentence.attach(Recorder("main", log))

    sentence.from_text(CONLL)

    assert log == [("main", "The_cats_sleep_.")]
    assert sentence.export_text() == CONLL
    assert len(sentence) == 4


def test_from_text_parse_error_leaves_state_untouched() -> None:
    sentence, log = loaded_sentence()

    with pytest.raises(ParseError):
        sentence.from_text("1\tbroken")

    assert log == []
    assert sentence.export_text() == CONLL


def test_observers_run_once_each_in_attach_order() -> None:
    sentence = ReactiveSentence()
    log: List[Tuple[str, str]] = []
    for name in ("first", "second", "third"):
        sentence.attach(Recorder(name, log))

    sentence.append_empty_token()

    assert [name for name, _ in log] == ["first", "second", "third"]


def test_duplicate_attach_and_unknown_detach_are_noops() -> None:
    messages: List[str] = []
    sentence = ReactiveSentence(verbose=True, diagnostics=messages.append)
    log: List[Tuple[str, str]] = []
    observer = Recorder("main", log)

    sentence.attach(observer)
    sentence.attach(observer)
    sentence.detach(Recorder("stranger", log))

    assert sentence.observers == (observer,)
    assert "Subject: observer has been attached already." in messages
    assert "Subject: nonexistent observer." in messages

    sentence.detach(observer)
    sentence.append_empty_token()

    assert sentence.observers == ()
    assert log == []


def test_diagnostics_are_silent_unless_verbose() -> None:
    messages: List[str] = []
    sentence = ReactiveSentence(diagnostics=messages.append)
    observer = Recorder("main", [])

    sentence.attach(observer)
    sentence.attach(observer)
    sentence.append_empty_token()

    assert messages == []


def test_observer_errors_propagate() -> None:
    class Exploding:
        def update(self, subject: ReactiveSentence) -> None:
            raise RuntimeError("boom")

    sentence = ReactiveSentence()
    sentence.attach(Exploding())

    with pytest.raises(RuntimeError, match="boom"):
        sentence.append_empty_token()


def test_update_token_merges_given_fields() -> None:
    sentence, log = loaded_sentence()
    feats = sentence.get_token("2").feats
    feats["Number"] = "Sing"

    merged = sentence.update_token("2", lemma="kitty", feats=feats)

    updated = sentence.get_token(2)
    assert updated.lemma == "kitty"
    assert updated.feats == {"Number": "Sing"}
    assert merged == updated
    assert len(log) == 1


def test_update_token_keeps_fields_it_was_not_given() -> None:
    sentence, _log = loaded_sentence()

    sentence.update_token(NormalId(1), form="A")

    token = sentence.get_token(1)
    assert token.form == "A"
    assert token.lemma == "the"
    assert token.upos == "DET"
    assert token.feats == {"Definite": "Def"}
    assert token.head == 2
    assert token.deprel == "det"


def test_update_token_does_not_alias_caller_dicts() -> None:
    sentence, _log = make_sentence("a", "b")
    misc = {"Typo": "Yes"}

    sentence.update_token(1, misc=misc)
    misc["Typo"] = "No"

    assert sentence.get_token(1).misc == {"Typo": "Yes"}


def test_update_token_rejects_id_and_unknown_fields() -> None:
    sentence, log = make_sentence("a", "b")

    with pytest.raises(TypeError):
        sentence.update_token(1, id=NormalId(2))
    with pytest.raises(TypeError):
        sentence.update_token(1, colour="red")

    assert log == []
    assert sentence.get_token(1).form == "a"


def test_update_token_dispatches_on_id_kind() -> None:
    sentence = ReactiveSentence()
    state = make_state("a", "b", "c")
    state.tree.groups["1-2"] = Token(id=GroupId(1, 2), form="ab", misc={"Note": "x"})
    state.tree.enhanced_nodes["2.1"] = Token(id=EnhancedId(2, 1), form="_")
    sentence.from_state(state)

    sentence.update_token("1-2", form="AB")
    sentence.update_token(EnhancedId(2, 1), form="ghost", deprel="orphan")

    assert sentence.get_token("1-2").form == "AB"
    assert sentence.get_token("1-2").misc == {"Note": "x"}
    assert sentence.get_token("2.1").form == "ghost"
    assert sentence.get_token("1").form == "a"


def test_update_token_missing_id_raises_and_does_not_notify() -> None:
    sentence, log = make_sentence("a", "b")

    with pytest.raises(TokenNotFoundError):
        sentence.update_token(9, form="ghost")
    with pytest.raises(TokenNotFoundError):
        sentence.update_token("1-2", form="ab")

    assert log == []
    assert len(sentence) == 2


def test_accessors_never_alias_internal_state() -> None:
    sentence, _ = make_sentence("a", "b")

    token = sentence.get_token(1)
    token.form = "mutated"
    tree = sentence.tree
    tree.nodes["2"].form = "also mutated"
    meta = sentence.meta
    meta["sent_id"] = "changed"

    assert sentence.get_underscored_text() == "a_b"
    assert sentence.meta == {"sent_id": "t1"}


def test_from_state_and_update_tree_copy_their_input() -> None:
    state = make_state("a", "b")
    sentence = ReactiveSentence()
    sentence.from_state(state)
    state.tree.nodes["1"].form = "changed"

    tree = make_state("x", "y", "z").tree
    sentence.update_tree(tree)
    tree.nodes["1"].form = "changed"

    assert sentence.get_underscored_text() == "x_y_z"
    assert sentence.meta == {"sent_id": "t1"}


def test_update_sentence_replaces_tree_and_meta() -> None:
    sentence, log = make_sentence("a")
    replacement = make_state("b", "c")
    replacement.meta = {"sent_id": "t2", "text": "b c"}

    sentence.update_sentence(replacement)

    assert sentence.meta == {"sent_id": "t2", "text": "b c"}
    assert log == [("main", "b_c")]


def test_toggle_boolean_feature_is_its_own_inverse() -> None:
    sentence, log = loaded_sentence()
    original = sentence.get_token(3).misc

    assert sentence.toggle_boolean_feature(3, "Typo") is True
    assert sentence.get_token(3).misc == {"SpaceAfter": "No", "Typo": "Yes"}
    assert sentence.toggle_boolean_feature(3, "Typo") is False
    assert sentence.get_token(3).misc == original
    assert len(log) == 2


def test_toggle_on_missing_token_raises() -> None:
    sentence, log = make_sentence("a")

    with pytest.raises(TokenNotFoundError):
        sentence.toggle_boolean_feature(5, "Typo")

    assert log == []


def test_remove_token_renumbers_following_tokens() -> None:
    sentence, log = make_sentence("a", "b", "c")

    sentence.remove_token("2")

    tree = sentence.tree
    assert [(key, token.form) for key, token in tree.nodes.items()] == [
        ("1", "a"),
        ("2", "c"),
    ]
    assert log == [("main", "a_c")]


def test_remove_token_out_of_range_is_structural_error() -> None:
    sentence, log = make_sentence("a")

    with pytest.raises(StructuralError):
        sentence.remove_token(4)

    assert log == []


def test_split_token_after_scenario() -> None:
    sentence, log = make_sentence("The", "cats")

    sentence.split_token_after(1)

    assert [t.form for t in sentence.tree.nodes.values()] == ["The", "_", "cats"]
    assert sentence.get_underscored_text() == "The___cats"
    assert log == [("main", "The___cats")]


def test_split_token_after_keeps_analysis_on_predecessor() -> None:
    sentence, _ = loaded_sentence()

    sentence.split_token_after(2)

    cats = sentence.get_token(2)
    new = sentence.get_token(3)
    assert (cats.form, cats.lemma, cats.upos, cats.head) == ("cats", "cat", "NOUN", 4)
    assert cats.feats == {"Number": "Plur"}
    assert cats.deps == {"4": "nsubj"}
    assert (new.form, new.lemma, new.upos, new.xpos, new.deprel) == ("_",) * 5
    assert (new.feats, new.deps, new.misc, new.head) == ({}, {}, {}, -1)
    assert sentence.get_token(1).head == 2
    assert sentence.get_token(5).head == 4
    check_contiguity(sentence.tree)


def test_split_token_before_keeps_analysis_on_successor() -> None:
    sentence, log = loaded_sentence()

    sentence.split_token_before(2)

    new = sentence.get_token(2)
    cats = sentence.get_token(3)
    assert (new.form, new.lemma, new.upos, new.head) == ("_", "_", "_", -1)
    assert (new.feats, new.deps, new.misc) == ({}, {}, {})
    assert (cats.form, cats.lemma, cats.upos, cats.head) == ("cats", "cat", "NOUN", 4)
    assert cats.feats == {"Number": "Plur"}
    # dependents of "cats" stay attached to it
    assert sentence.get_token(1).head == 3
    assert log == [("main", "The___cats_sleep_.")]


def test_split_rejects_unknown_or_group_ids() -> None:
    sentence, log = make_sentence("a", "b")

    with pytest.raises(StructuralError):
        sentence.split_token_after(7)
    with pytest.raises(StructuralError):
        sentence.split_token_before("1-2")
    with pytest.raises(StructuralError):
        sentence.split_token_before(0)
    with pytest.raises(StructuralError):
        sentence.split_token_after("x")

    assert log == []


def test_append_empty_token_on_empty_tree() -> None:
    sentence = ReactiveSentence()
    log: List[Tuple[str, str]] = []
    sentence.attach(Recorder("main", log))

    token = sentence.append_empty_token()

    assert token.key == "1"
    assert list(sentence.tree.nodes) == ["1"]
    assert sentence.get_token("1").form == "_"
    assert log == [("main", "_")]


def test_append_empty_token_uses_next_id() -> None:
    sentence, _ = make_sentence("a", "b", "c")

    sentence.append_empty_token()
    sentence.append_empty_token()

    assert list(sentence.tree.nodes) == ["1", "2", "3", "4", "5"]
    assert sentence.get_token(5).head == -1


def test_export_text_with_meta_merges_overrides() -> None:
    sentence, _ = loaded_sentence()
    override = {"text": "Cats sleep.", "translator": "me"}

    exported = sentence.export_text_with_meta(override)

    lines = exported.splitlines()
    assert lines[:3] == [
        "# text = Cats sleep.",
        "# translator = me",
        "# sent_id = en-1",
    ]
    assert override == {"text": "Cats sleep.", "translator": "me"}
    assert sentence.meta == {"sent_id": "en-1", "text": "The cats sleep."}


def test_plain_and_underscored_text() -> None:
    sentence, _ = loaded_sentence()

    assert sentence.get_plain_text() == "The cats sleep."
    assert sentence.get_underscored_text() == "The_cats_sleep_."


def test_all_feature_keys_in_first_seen_order() -> None:
    sentence, _ = loaded_sentence()

    assert sentence.get_all_feature_keys() == [
        *BASE_FEATURE_KEYS,
        "FEATS.Definite",
        "FEATS.Number",
        "FEATS.Mood",
        "MISC.SpaceAfter",
        "MISC.Typo",
    ]


def test_save_and_restore_round_trip() -> None:
    sentence, log = loaded_sentence()
    snapshot = sentence.save()

    sentence.remove_token(1)
    sentence.restore(snapshot)

    assert sentence.export_text() == CONLL
    assert len(log) == 2
