"""
Pytest fixtures for Buildforge tests.
"""

import pytest

from ..engine_core import MemoryFeatureStore
from ..games.pathfinder import create_pathfinder_library
from ..library_schema import Library


class ScriptedRandom:
    """
    Random source that returns a fixed sequence of outcomes.

    Each randint(a, b) call returns the next scripted value, which
    must fall inside [a, b].
    """

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[tuple[int, int]] = []

    def randint(self, a: int, b: int) -> int:
        if not self.outcomes:
            raise AssertionError("ScriptedRandom ran out of outcomes")
        value = self.outcomes.pop(0)
        assert a <= value <= b, f"scripted {value} outside [{a}, {b}]"
        self.calls.append((a, b))
        return value


@pytest.fixture
def scripted():
    """Factory for scripted random sources."""
    return ScriptedRandom


@pytest.fixture
def pathfinder_library() -> Library:
    return create_pathfinder_library()


@pytest.fixture
def pathfinder_store(pathfinder_library) -> MemoryFeatureStore:
    return MemoryFeatureStore.from_library(pathfinder_library)
