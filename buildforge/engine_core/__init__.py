"""
Engine Core - Feature storage, dice rolling and build resolution.

The engine is the runtime that:
1. Indexes a Library into a FeatureStore
2. Answers tag queries for choice points
3. Parses and rolls dice expressions
4. Resolves adopted features and choices into a Character
"""

from .errors import (
    BuildError,
    UnknownFeature,
    MissingBaseValue,
    TypeMismatch,
    CycleDetected,
    RollError,
    RollTokenError,
    RollParseError,
)
from .feature_store import FeatureStore, MemoryFeatureStore
from .dice import Roll, RollExpr, RandomSource, parse_roll, roll_expression, tokenize
from .character import Character
from .resolver import BuildResolver, evaluate_build

__all__ = [
    "BuildError",
    "UnknownFeature",
    "MissingBaseValue",
    "TypeMismatch",
    "CycleDetected",
    "RollError",
    "RollTokenError",
    "RollParseError",
    "FeatureStore",
    "MemoryFeatureStore",
    "Roll",
    "RollExpr",
    "RandomSource",
    "parse_roll",
    "roll_expression",
    "tokenize",
    "Character",
    "BuildResolver",
    "evaluate_build",
]
