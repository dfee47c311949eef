"""
Feature Store - Read-only index over a feature library.

The store answers two questions for the resolver:
1. Which feature has this id?
2. Which features match this tag query?

Built once from a Library and never mutated afterwards, so a single
store can back any number of builds.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterable, Iterator
import logging

from ..library_schema import Feature, Library, Query, Meta, And, Or
from .errors import UnknownFeature

logger = logging.getLogger(__name__)


class FeatureStore(ABC):
    """Lookup and query contract the resolver depends on."""

    @abstractmethod
    def lookup_feature(self, feature_id: str) -> Feature | None:
        """Return the feature with this exact id, or None."""

    @abstractmethod
    def query(self, query: Query) -> list[Feature]:
        """Return every feature matching the query, in a stable order."""

    def get_feature(self, feature_id: str) -> Feature:
        """Like lookup_feature, but raises UnknownFeature."""
        found = self.lookup_feature(feature_id)
        if found is None:
            raise UnknownFeature(feature_id)
        return found


class MemoryFeatureStore(FeatureStore):
    """
    In-memory store keyed by feature id.

    Query results follow library order. If a library repeats an id, the
    later definition replaces the earlier one.
    """

    def __init__(self, features: Iterable[Feature] = ()):
        self._features: dict[str, Feature] = {}
        for f in features:
            if f.id in self._features:
                logger.debug("Feature '%s' redefined; keeping last definition", f.id)
            self._features[f.id] = f

    @classmethod
    def from_library(cls, library: Library) -> MemoryFeatureStore:
        return cls(library.features)

    def __len__(self) -> int:
        return len(self._features)

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self._features

    def feature_ids(self) -> list[str]:
        return list(self._features)

    def lookup_feature(self, feature_id: str) -> Feature | None:
        return self._features.get(feature_id)

    def query(self, query: Query) -> list[Feature]:
        return list(self._narrow(query, iter(self._features.values())))

    def _narrow(self, query: Query, candidates: Iterator[Feature]) -> Iterator[Feature]:
        """Lazily filter candidates by a query."""
        if isinstance(query, Meta):
            return (f for f in candidates if query.tag in f.tags)

        if isinstance(query, And):
            # Each sub-query filters what the previous ones let through
            for sub in query.queries:
                candidates = self._narrow(sub, candidates)
            return candidates

        if isinstance(query, Or):
            tags = [m.tag for m in query.queries]
            return (f for f in candidates if any(t in f.tags for t in tags))

        raise TypeError(f"Unsupported query: {query!r}")
