"""Library schema - features, traits, tag queries and trait values."""

from .values import Value, IntValue, TextValue, BoolValue, value_from_raw
from .query import Query, Meta, And, Or, meta, all_of, any_of
from .feature import (
    Feature,
    Library,
    Trait,
    DataTrait,
    AddTrait,
    ChoiceTrait,
    RefTrait,
    RollTrait,
)

__all__ = [
    "Value",
    "IntValue",
    "TextValue",
    "BoolValue",
    "value_from_raw",
    "Query",
    "Meta",
    "And",
    "Or",
    "meta",
    "all_of",
    "any_of",
    "Feature",
    "Library",
    "Trait",
    "DataTrait",
    "AddTrait",
    "ChoiceTrait",
    "RefTrait",
    "RollTrait",
]
