"""
Trait Values - Tagged union for the values a trait can carry.

Libraries store loosely typed scalars (numbers, text, flags). The engine
keeps them as explicit variants so arithmetic is only ever performed
on integers:
- IntValue: numeric, the only variant `add` accepts
- TextValue: free text (e.g. a size category or a language)
- BoolValue: flags (e.g. darkvision)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class IntValue:
    value: int

    @property
    def raw(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TextValue:
    value: str

    @property
    def raw(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BoolValue:
    value: bool

    @property
    def raw(self) -> bool:
        return self.value

    def __str__(self) -> str:
        return "true" if self.value else "false"


Value = Union[IntValue, TextValue, BoolValue]


def value_from_raw(raw: Any) -> Value:
    """
    Wrap a plain scalar in its Value variant.

    bool is checked before int since bool is an int subclass.
    Raises TypeError for anything that is not a scalar.
    """
    if isinstance(raw, (IntValue, TextValue, BoolValue)):
        return raw
    if isinstance(raw, bool):
        return BoolValue(raw)
    if isinstance(raw, int):
        return IntValue(raw)
    if isinstance(raw, str):
        return TextValue(raw)
    raise TypeError(f"Unsupported trait value: {raw!r}")
