"""
Build Resolver - Recursive feature evaluation.

The resolver holds what the player has decided so far:
- the root features they adopted, in order
- their decision for each choice point

evaluate() walks every adopted feature depth-first, applying traits
in declaration order, following refs and the selected option of each
choice, and returns the resulting Character.

Errors are raised, never defaulted: a missing feature, an add on an
unset or non-numeric value, a bad roll expression or a reference
cycle all abort the evaluation.
"""

from __future__ import annotations
from typing import Iterable, Mapping
import logging
import random

from ..library_schema import (
    Feature,
    DataTrait,
    AddTrait,
    ChoiceTrait,
    RefTrait,
    RollTrait,
    IntValue,
)
from .character import Character
from .dice import RandomSource, parse_roll
from .errors import CycleDetected, MissingBaseValue, TypeMismatch
from .feature_store import FeatureStore

logger = logging.getLogger(__name__)


class BuildResolver:
    """
    Evaluates a build against a feature store.

    Usage:
        resolver = BuildResolver(store, rng=random.Random(7))
        resolver.adopt_feature("pathfinder")
        resolver.record_choice("ancestry", "ancestry.dwarf")
        character = resolver.evaluate()
    """

    def __init__(self, store: FeatureStore, rng: RandomSource | None = None):
        self.store = store
        self.rng = rng if rng is not None else random.Random()
        self._adopted: list[str] = []
        self._decisions: dict[str, str] = {}

    @property
    def adopted(self) -> tuple[str, ...]:
        return tuple(self._adopted)

    @property
    def decisions(self) -> dict[str, str]:
        return dict(self._decisions)

    def adopt_feature(self, feature_id: str):
        """Add a root feature. Raises UnknownFeature if the store lacks it."""
        self.store.get_feature(feature_id)
        self._adopted.append(feature_id)

    def record_choice(self, choice_id: str, feature_id: str):
        """Record (or replace) the player's decision for a choice point."""
        self._decisions[choice_id] = feature_id

    def clear_choice(self, choice_id: str):
        self._decisions.pop(choice_id, None)

    def evaluate(self, rng: RandomSource | None = None) -> Character:
        """
        Evaluate every adopted feature into a fresh Character.

        Roll traits draw from `rng` when given, otherwise from the
        resolver's own source.
        """
        rng = rng if rng is not None else self.rng
        character = Character()
        for feature_id in self._adopted:
            self._evaluate_feature(self.store.get_feature(feature_id), character, [], rng)
        return character

    def _evaluate_feature(self, feature: Feature, character: Character, path: list[str], rng):
        if feature.id in path:
            raise CycleDetected(path + [feature.id])

        path.append(feature.id)
        try:
            character.features.add(feature.id)
            for trait in feature.traits:
                self._apply_trait(feature, trait, character, path, rng)
        finally:
            path.pop()

    def _apply_trait(self, feature: Feature, trait, character: Character, path: list[str], rng):
        if isinstance(trait, DataTrait):
            character.values[trait.name] = trait.value

        elif isinstance(trait, AddTrait):
            if trait.name not in character.values:
                raise MissingBaseValue(trait.name)
            current = character.values[trait.name]
            if not isinstance(current, IntValue):
                raise TypeMismatch(trait.name, current.raw)
            if not isinstance(trait.value, IntValue):
                raise TypeMismatch(trait.name, trait.value.raw)
            character.values[trait.name] = IntValue(current.value + trait.value.value)

        elif isinstance(trait, ChoiceTrait):
            options = self.store.query(trait.query)
            character.choices[trait.choice_id] = [o.id for o in options]
            selected = self._select_option(trait, options)
            if selected is None:
                logger.debug("Choice '%s' in '%s' left open", trait.choice_id, feature.id)
                return
            logger.debug("Choice '%s' resolved to '%s'", trait.choice_id, selected.id)
            self._evaluate_feature(selected, character, path, rng)

        elif isinstance(trait, RefTrait):
            self._evaluate_feature(self.store.get_feature(trait.feature_id), character, path, rng)

        elif isinstance(trait, RollTrait):
            if trait.name not in character.rolls:
                result = parse_roll(trait.expr).roll(rng)
                logger.debug("Rolled '%s' (%s) -> %d", trait.name, trait.expr, result.total)
                character.rolls[trait.name] = result
            character.values[trait.name] = IntValue(character.rolls[trait.name].total)

        else:
            raise TypeError(f"Unsupported trait in '{feature.id}': {trait!r}")

    def _select_option(self, trait: ChoiceTrait, options: list[Feature]) -> Feature | None:
        """Player decision first, then the default; either must be an option."""
        by_id = {o.id: o for o in options}
        decision = self._decisions.get(trait.choice_id)
        if decision in by_id:
            return by_id[decision]
        if trait.default in by_id:
            return by_id[trait.default]
        return None


def evaluate_build(
    store: FeatureStore,
    adopt: Iterable[str],
    choices: Mapping[str, str] | None = None,
    rng: RandomSource | None = None,
) -> Character:
    """
    Evaluate a build in one call.

    Args:
        store: Feature store to resolve against
        adopt: Root feature ids, in adoption order
        choices: Decisions by choice id
        rng: Random source for roll traits

    Returns:
        The resolved Character
    """
    resolver = BuildResolver(store, rng=rng)
    for feature_id in adopt:
        resolver.adopt_feature(feature_id)
    for choice_id, feature_id in (choices or {}).items():
        resolver.record_choice(choice_id, feature_id)
    return resolver.evaluate()
