"""
Build Errors - Failures surfaced by evaluation and dice parsing.

None of these are recovered from inside the engine. A failed
evaluation is reported whole; any partially built character is
discarded.
"""

from __future__ import annotations
from typing import Any, Sequence


class BuildError(Exception):
    """Base class for build evaluation failures."""


class UnknownFeature(BuildError):
    """A lookup, adoption or ref named a feature the store does not have."""

    def __init__(self, feature_id: str):
        self.feature_id = feature_id
        super().__init__(f"Unknown feature '{feature_id}'")


class MissingBaseValue(BuildError):
    """An add trait ran before anything set the value."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Cannot add to '{name}': value is not set")


class TypeMismatch(BuildError):
    """An add trait met a value that is not an integer."""

    def __init__(self, name: str, value: Any):
        self.name = name
        self.value = value
        super().__init__(f"Value '{name}' is not numeric: {value!r}")


class CycleDetected(BuildError):
    """A feature was re-entered while already being evaluated."""

    def __init__(self, path: Sequence[str]):
        self.path = list(path)
        super().__init__("Feature cycle detected: " + " -> ".join(self.path))


class RollError(BuildError):
    """Base class for dice expression failures."""

    def __init__(self, text: str, message: str):
        self.text = text
        super().__init__(f"{message} in roll expression {text!r}")


class RollTokenError(RollError):
    """A character outside the roll alphabet, or a constant above MAX_CONST."""

    def __init__(self, text: str, position: int, message: str | None = None):
        self.position = position
        char = text[position] if position < len(text) else "end of input"
        if message is None:
            message = f"Unexpected {char!r} at position {position}"
        super().__init__(text, message)


class RollParseError(RollError):
    """The tokens do not form a valid roll expression."""
