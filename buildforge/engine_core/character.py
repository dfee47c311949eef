"""
Character - The accumulator a build evaluation writes into.

A character is created fresh for every evaluation and owned by that
evaluation until it returns. It records:
- which features were resolved
- which options each choice point offered
- the current value of every named attribute
- every roll made, memoized by name
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from ..library_schema import Value
from .dice import Roll


@dataclass
class Character:
    features: set[str] = field(default_factory=set)
    choices: dict[str, list[str]] = field(default_factory=dict)
    values: dict[str, Value] = field(default_factory=dict)
    rolls: dict[str, Roll] = field(default_factory=dict)

    def has_feature(self, feature_id: str) -> bool:
        return feature_id in self.features

    def value(self, name: str, default: Any = None) -> Any:
        """Raw scalar for a value name."""
        if name not in self.values:
            return default
        return self.values[name].raw

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view of the character."""
        return {
            "features": sorted(self.features),
            "choices": {k: list(v) for k, v in self.choices.items()},
            "values": {k: v.raw for k, v in self.values.items()},
            "rolls": {
                k: {"total": r.total, "dice": list(r.dice)}
                for k, r in self.rolls.items()
            },
        }
