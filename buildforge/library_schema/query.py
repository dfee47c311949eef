"""
Tag Query Algebra - Boolean filters over feature tags.

Queries are how a choice discovers its options:
- Meta("ancestry")                      features tagged "ancestry"
- And((Meta("boost"), Meta("attr")))    tagged both "boost" and "attr"
- Or((Meta("str"), Meta("dex")))        tagged "str" or "dex"

An Or only ever holds Meta leaves; an And may hold any query. This
mirrors the library data format and is preserved as-is.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Meta:
    """Matches features carrying `tag`."""
    tag: str


@dataclass(frozen=True)
class And:
    """Narrows the candidates by each sub-query in turn. Empty matches all."""
    queries: tuple[Query, ...] = ()


@dataclass(frozen=True)
class Or:
    """Matches features carrying any of the listed tags. Empty matches none."""
    queries: tuple[Meta, ...] = ()


Query = Union[Meta, And, Or]


# =============================================================================
# Builders
# =============================================================================

def meta(tag: str) -> Meta:
    return Meta(tag)


def all_of(*queries: Query) -> And:
    return And(tuple(queries))


def any_of(*tags: str | Meta) -> Or:
    return Or(tuple(t if isinstance(t, Meta) else Meta(t) for t in tags))
