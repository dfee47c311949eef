"""
Pathfinder - The built-in sample library

Pathfinder 2e builds attributes from a flat baseline:
- Every attribute starts at 10
- Ancestries grant fixed boosts, a free boost and sometimes a flaw
- Backgrounds grant a further boost and a trained skill
- Each boost adds 2, each flaw subtracts 2

This module contains the hand-authored library used as the default
data set for the API and as the regression fixture in tests.
"""

from .library import ATTRIBUTES, BASE_SCORE, BOOST, create_pathfinder_library

__all__ = [
    "ATTRIBUTES",
    "BASE_SCORE",
    "BOOST",
    "create_pathfinder_library",
]
