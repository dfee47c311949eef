"""
Feature DSL - Tagged rule fragments and the traits they apply.

A feature is a named bundle of traits. Evaluating a feature applies its
traits in declaration order:
- data:   set a value unconditionally
- add:    add to a value that must already exist
- choice: offer the features matching a query, follow at most one
- ref:    inline another feature by id
- roll:   roll a dice expression once per build and bind its total

Key design decisions:
- Features and traits are immutable once loaded
- Choices are resolved by caller decisions, falling back to a default
- Roll expressions stay as text and are parsed when first evaluated
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Union

from .query import Query
from .values import Value, value_from_raw


@dataclass(frozen=True)
class DataTrait:
    name: str
    value: Value


@dataclass(frozen=True)
class AddTrait:
    name: str
    value: Value


@dataclass(frozen=True)
class ChoiceTrait:
    """
    A branch point.

    `query` enumerates the options; `default` is the feature id used
    when the player has not decided (or decided on something that is
    not an option).
    """
    choice_id: str
    query: Query
    default: str | None = None


@dataclass(frozen=True)
class RefTrait:
    feature_id: str


@dataclass(frozen=True)
class RollTrait:
    name: str
    expr: str  # e.g. "4d6kh3", "1d8+2"


Trait = Union[DataTrait, AddTrait, ChoiceTrait, RefTrait, RollTrait]


@dataclass(frozen=True)
class Feature:
    """
    A named rule fragment.

    Tags only matter for membership; duplicates collapse.
    """
    id: str
    tags: frozenset[str] = frozenset()
    traits: tuple[Trait, ...] = ()

    def __post_init__(self):
        # Accept any iterable from loaders and builders
        object.__setattr__(self, "tags", frozenset(self.tags))
        object.__setattr__(self, "traits", tuple(self.traits))

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


@dataclass
class Library:
    """An ordered collection of features. Only used to build a store."""
    features: list[Feature] = field(default_factory=list)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    def __len__(self) -> int:
        return len(self.features)


# =============================================================================
# Builder functions
# =============================================================================

def data(name: str, value: Any) -> DataTrait:
    return DataTrait(name=name, value=value_from_raw(value))


def add(name: str, value: Any) -> AddTrait:
    return AddTrait(name=name, value=value_from_raw(value))


def choice(choice_id: str, query: Query, default: str | None = None) -> ChoiceTrait:
    return ChoiceTrait(choice_id=choice_id, query=query, default=default)


def ref(feature_id: str) -> RefTrait:
    return RefTrait(feature_id=feature_id)


def roll(name: str, expr: str) -> RollTrait:
    return RollTrait(name=name, expr=expr)


def feature(feature_id: str, tags: Iterable[str] = (), *traits: Trait) -> Feature:
    """Shorthand used by hand-authored libraries."""
    return Feature(id=feature_id, tags=frozenset(tags), traits=tuple(traits))
