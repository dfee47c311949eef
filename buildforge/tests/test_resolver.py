"""
Tests for the build resolver.

Tests:
- Trait semantics (data, add, choice, ref, roll)
- Choice precedence
- Roll memoization
- Cycle detection
- Error propagation
"""

import random

import pytest

from ..engine_core import (
    BuildResolver,
    CycleDetected,
    MemoryFeatureStore,
    MissingBaseValue,
    RollParseError,
    RollTokenError,
    TypeMismatch,
    UnknownFeature,
    evaluate_build,
)
from ..library_schema import IntValue, TextValue, meta
from ..library_schema.feature import add, choice, data, feature, ref, roll


def make_store(*features):
    return MemoryFeatureStore(features)


class TestDataAndAdd:
    """Tests for value traits."""

    def test_last_write_wins(self):
        store = make_store(feature("root", [], data("x", 1), data("x", 2)))
        character = evaluate_build(store, ["root"])
        assert character.values["x"] == IntValue(2)

    def test_data_accepts_text_and_flags(self):
        store = make_store(feature("root", [], data("size", "small"), data("flying", False)))
        character = evaluate_build(store, ["root"])
        assert character.values["size"] == TextValue("small")
        assert character.value("flying") is False

    def test_add_accumulates(self):
        store = make_store(feature("root", [], data("x", 10), add("x", 2), add("x", -5)))
        assert evaluate_build(store, ["root"]).value("x") == 7

    def test_add_without_base_fails(self):
        store = make_store(feature("root", [], add("x", 1)))
        with pytest.raises(MissingBaseValue) as exc:
            evaluate_build(store, ["root"])
        assert exc.value.name == "x"

    def test_add_to_text_fails(self):
        store = make_store(feature("root", [], data("x", "ten"), add("x", 1)))
        with pytest.raises(TypeMismatch):
            evaluate_build(store, ["root"])

    def test_add_text_delta_fails(self):
        store = make_store(feature("root", [], data("x", 10), add("x", "one")))
        with pytest.raises(TypeMismatch):
            evaluate_build(store, ["root"])

    def test_add_bool_delta_fails(self):
        store = make_store(feature("root", [], data("x", 10), add("x", True)))
        with pytest.raises(TypeMismatch):
            evaluate_build(store, ["root"])


class TestRefs:
    """Tests for ref traits and traversal order."""

    def test_ref_inlines_feature(self):
        store = make_store(
            feature("root", [], data("x", 1), ref("child")),
            feature("child", [], add("x", 4)),
        )
        character = evaluate_build(store, ["root"])
        assert character.value("x") == 5
        assert character.features == {"root", "child"}

    def test_depth_first_order(self):
        store = make_store(
            feature("root", [], data("x", 1), ref("a"), data("x", 3)),
            feature("a", [], data("x", 2)),
        )
        assert evaluate_build(store, ["root"]).value("x") == 3

    def test_adoption_order(self):
        store = make_store(
            feature("first", [], data("x", 1)),
            feature("second", [], data("x", 2)),
        )
        assert evaluate_build(store, ["first", "second"]).value("x") == 2
        assert evaluate_build(store, ["second", "first"]).value("x") == 1

    def test_shared_feature_evaluated_per_reach(self):
        store = make_store(
            feature("root", [], data("x", 0), ref("inc"), ref("inc")),
            feature("inc", [], add("x", 1)),
        )
        character = evaluate_build(store, ["root"])
        assert character.value("x") == 2
        assert character.features == {"root", "inc"}

    def test_missing_ref_fails(self):
        store = make_store(feature("root", [], ref("ghost")))
        with pytest.raises(UnknownFeature) as exc:
            evaluate_build(store, ["root"])
        assert exc.value.feature_id == "ghost"

    def test_adopting_unknown_feature_fails(self):
        resolver = BuildResolver(make_store())
        with pytest.raises(UnknownFeature):
            resolver.adopt_feature("ghost")
        assert resolver.adopted == ()


class TestChoices:
    """Tests for choice traits."""

    @pytest.fixture
    def store(self):
        return make_store(
            feature("root", [], data("x", 0), choice("pick", meta("opt"), default="opt.b")),
            feature("opt.a", ["opt"], data("x", 1)),
            feature("opt.b", ["opt"], data("x", 2)),
            feature("other", ["misc"], data("x", 99)),
        )

    def test_options_recorded(self, store):
        character = evaluate_build(store, ["root"])
        assert character.choices["pick"] == ["opt.a", "opt.b"]

    def test_default_used_without_decision(self, store):
        character = evaluate_build(store, ["root"])
        assert character.value("x") == 2
        assert "opt.b" in character.features

    def test_decision_overrides_default(self, store):
        character = evaluate_build(store, ["root"], {"pick": "opt.a"})
        assert character.value("x") == 1
        assert "opt.b" not in character.features

    def test_decision_outside_options_falls_back_to_default(self, store):
        character = evaluate_build(store, ["root"], {"pick": "other"})
        assert character.value("x") == 2
        assert "other" not in character.features

    def test_no_default_no_decision_selects_nothing(self):
        store = make_store(
            feature("root", [], choice("pick", meta("opt"))),
            feature("opt.a", ["opt"], data("x", 1)),
        )
        character = evaluate_build(store, ["root"])
        assert character.choices["pick"] == ["opt.a"]
        assert character.features == {"root"}

    def test_default_outside_options_selects_nothing(self):
        store = make_store(
            feature("root", [], choice("pick", meta("opt"), default="elsewhere")),
            feature("elsewhere", ["misc"]),
        )
        assert evaluate_build(store, ["root"]).features == {"root"}

    def test_latest_decision_wins(self, store):
        resolver = BuildResolver(store)
        resolver.adopt_feature("root")
        resolver.record_choice("pick", "opt.a")
        resolver.record_choice("pick", "opt.b")
        assert resolver.evaluate().value("x") == 2

    def test_clear_choice(self, store):
        resolver = BuildResolver(store)
        resolver.adopt_feature("root")
        resolver.record_choice("pick", "opt.a")
        resolver.clear_choice("pick")
        resolver.clear_choice("never-made")
        assert resolver.evaluate().value("x") == 2

    def test_choice_point_reached_twice_overwrites_options(self):
        store = make_store(
            feature("root", [], choice("pick", meta("a")), choice("pick", meta("b"))),
            feature("x.a", ["a"]),
            feature("x.b", ["b"]),
        )
        assert evaluate_build(store, ["root"]).choices["pick"] == ["x.b"]


class TestRolls:
    """Tests for roll traits."""

    def test_roll_sets_value(self, scripted):
        store = make_store(feature("root", [], roll("hp", "1d8+2")))
        character = evaluate_build(store, ["root"], rng=scripted([5]))
        assert character.value("hp") == 7
        assert character.rolls["hp"].dice == (5,)

    def test_roll_memoized_within_evaluation(self, scripted):
        store = make_store(
            feature("root", [], roll("hp", "1d8"), ref("again"), add("hp", 0)),
            feature("again", [], roll("hp", "1d8"), data("hp.copy", 0), add("hp.copy", 0)),
        )
        rng = scripted([3])
        character = evaluate_build(store, ["root"], rng=rng)
        assert character.value("hp") == 3
        assert len(rng.calls) == 1

    def test_memoized_roll_restores_value(self, scripted):
        store = make_store(
            feature("root", [], roll("r", "1d6"), add("r", 10), ref("again")),
            feature("again", [], roll("r", "2d6")),
        )
        character = evaluate_build(store, ["root"], rng=scripted([4]))
        assert character.value("r") == 4

    def test_fresh_evaluation_rolls_again(self, scripted):
        store = make_store(feature("root", [], roll("r", "1d20")))
        resolver = BuildResolver(store, rng=scripted([4, 17]))
        resolver.adopt_feature("root")
        assert resolver.evaluate().value("r") == 4
        assert resolver.evaluate().value("r") == 17

    def test_evaluate_uses_given_rng(self, scripted):
        store = make_store(feature("root", [], roll("r", "1d20")))
        own = scripted([])
        resolver = BuildResolver(store, rng=own)
        resolver.adopt_feature("root")
        assert resolver.evaluate(rng=scripted([6])).value("r") == 6
        assert resolver.evaluate(rng=scripted([6])).value("r") == 6
        assert own.calls == []

    def test_seeded_evaluations_reproducible(self):
        store = make_store(feature("root", [], roll("a", "4d6kh3"), roll("b", "1d20+3")))
        first = evaluate_build(store, ["root"], rng=random.Random(9))
        second = evaluate_build(store, ["root"], rng=random.Random(9))
        assert first.to_dict() == second.to_dict()

    def test_bad_roll_expression_fails(self):
        store = make_store(feature("root", [], roll("r", "1d6+")))
        with pytest.raises(RollParseError):
            evaluate_build(store, ["root"])

    def test_bad_roll_character_fails(self):
        store = make_store(feature("root", [], roll("r", "1x6")))
        with pytest.raises(RollTokenError):
            evaluate_build(store, ["root"])


class TestCycles:
    """Tests for cycle detection."""

    def test_mutual_refs_detected(self):
        store = make_store(
            feature("A", [], ref("B")),
            feature("B", [], ref("A")),
        )
        with pytest.raises(CycleDetected) as exc:
            evaluate_build(store, ["A"])
        assert exc.value.path == ["A", "B", "A"]

    def test_self_ref_detected(self):
        store = make_store(feature("A", [], ref("A")))
        with pytest.raises(CycleDetected):
            evaluate_build(store, ["A"])

    def test_cycle_through_choice_detected(self):
        store = make_store(
            feature("A", ["loop"], choice("c", meta("loop"), default="A")),
        )
        with pytest.raises(CycleDetected):
            evaluate_build(store, ["A"])

    def test_diamond_is_not_a_cycle(self):
        store = make_store(
            feature("top", [], data("x", 0), ref("left"), ref("right")),
            feature("left", [], ref("bottom")),
            feature("right", [], ref("bottom")),
            feature("bottom", [], add("x", 1)),
        )
        assert evaluate_build(store, ["top"]).value("x") == 2

    def test_same_root_adopted_twice(self):
        store = make_store(feature("root", [], data("x", 1)))
        resolver = BuildResolver(store)
        resolver.adopt_feature("root")
        resolver.adopt_feature("root")
        assert resolver.evaluate().value("x") == 1
