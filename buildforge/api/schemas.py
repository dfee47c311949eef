"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between clients and the engine,
including the JSON form of a feature library. Every library document
converts to the engine's Library without loss, and every feature can be
rendered back.

Error Codes:
- LIBRARY_NOT_FOUND: Library ID not registered
- BUILD_NOT_FOUND: Build does not exist or has ended
- UNKNOWN_FEATURE: A feature id was adopted or referenced but not defined
- MISSING_BASE_VALUE: An add trait ran before its value was set
- TYPE_MISMATCH: An add trait met a non-numeric value
- CYCLE_DETECTED: Features reference each other in a loop
- ROLL_SYNTAX_ERROR: A roll expression could not be parsed
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, Field, StrictBool, StrictInt, StrictStr

from ..library_schema import (
    Feature,
    Library,
    Query,
    Meta,
    And,
    Or,
    Trait,
    DataTrait,
    AddTrait,
    ChoiceTrait,
    RefTrait,
    RollTrait,
    value_from_raw,
)


# =============================================================================
# Enums
# =============================================================================

class BuildStatus(str, Enum):
    """Build session status values."""
    CREATED = "created"
    EVALUATED = "evaluated"
    FAILED = "failed"
    CLOSED = "closed"


class ErrorCode(str, Enum):
    """Structured error codes."""
    LIBRARY_NOT_FOUND = "LIBRARY_NOT_FOUND"
    LIBRARY_EXISTS = "LIBRARY_EXISTS"
    BUILD_NOT_FOUND = "BUILD_NOT_FOUND"
    UNKNOWN_FEATURE = "UNKNOWN_FEATURE"
    MISSING_BASE_VALUE = "MISSING_BASE_VALUE"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    CYCLE_DETECTED = "CYCLE_DETECTED"
    ROLL_SYNTAX_ERROR = "ROLL_SYNTAX_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# bool first: pydantic's strict types keep True from becoming 1
ScalarValue = Union[StrictBool, StrictInt, StrictStr]


# =============================================================================
# Library Document - Queries
# =============================================================================

class MetaQuery(BaseModel):
    """Matches features carrying a tag."""
    kind: Literal["meta"] = "meta"
    tag: str

    def to_query(self) -> Meta:
        return Meta(self.tag)


class AndQuery(BaseModel):
    """All sub-queries must match. Empty matches everything."""
    kind: Literal["and"] = "and"
    queries: list["QueryModel"] = Field(default_factory=list)

    def to_query(self) -> And:
        return And(tuple(q.to_query() for q in self.queries))


class OrQuery(BaseModel):
    """Any listed tag matches. Only meta leaves; empty matches nothing."""
    kind: Literal["or"] = "or"
    queries: list[MetaQuery] = Field(default_factory=list)

    def to_query(self) -> Or:
        return Or(tuple(q.to_query() for q in self.queries))


QueryModel = Annotated[Union[MetaQuery, AndQuery, OrQuery], Field(discriminator="kind")]
AndQuery.model_rebuild()


def query_to_model(query: Query) -> Union[MetaQuery, AndQuery, OrQuery]:
    """Render an engine query as its schema model."""
    if isinstance(query, Meta):
        return MetaQuery(tag=query.tag)
    if isinstance(query, And):
        return AndQuery(queries=[query_to_model(q) for q in query.queries])
    if isinstance(query, Or):
        return OrQuery(queries=[MetaQuery(tag=m.tag) for m in query.queries])
    raise TypeError(f"Unsupported query: {query!r}")


# =============================================================================
# Library Document - Traits and Features
# =============================================================================

class DataTraitModel(BaseModel):
    kind: Literal["data"] = "data"
    name: str
    value: ScalarValue

    def to_trait(self) -> DataTrait:
        return DataTrait(name=self.name, value=value_from_raw(self.value))


class AddTraitModel(BaseModel):
    kind: Literal["add"] = "add"
    name: str
    value: ScalarValue

    def to_trait(self) -> AddTrait:
        return AddTrait(name=self.name, value=value_from_raw(self.value))


class ChoiceTraitModel(BaseModel):
    kind: Literal["choice"] = "choice"
    id: str = Field(..., description="Choice point id players decide on")
    query: QueryModel
    default: Optional[str] = Field(None, description="Feature id used when undecided")

    def to_trait(self) -> ChoiceTrait:
        return ChoiceTrait(choice_id=self.id, query=self.query.to_query(), default=self.default)


class RefTraitModel(BaseModel):
    kind: Literal["ref"] = "ref"
    id: str = Field(..., description="Feature id to inline")

    def to_trait(self) -> RefTrait:
        return RefTrait(feature_id=self.id)


class RollTraitModel(BaseModel):
    kind: Literal["roll"] = "roll"
    name: str
    expr: str = Field(..., description="Dice expression, e.g. 4d6kh3 or 1d20+5")

    def to_trait(self) -> RollTrait:
        return RollTrait(name=self.name, expr=self.expr)


TraitModel = Annotated[
    Union[DataTraitModel, AddTraitModel, ChoiceTraitModel, RefTraitModel, RollTraitModel],
    Field(discriminator="kind"),
]


def trait_to_model(trait: Trait) -> BaseModel:
    """Render an engine trait as its schema model."""
    if isinstance(trait, DataTrait):
        return DataTraitModel(name=trait.name, value=trait.value.raw)
    if isinstance(trait, AddTrait):
        return AddTraitModel(name=trait.name, value=trait.value.raw)
    if isinstance(trait, ChoiceTrait):
        return ChoiceTraitModel(
            id=trait.choice_id,
            query=query_to_model(trait.query),
            default=trait.default,
        )
    if isinstance(trait, RefTrait):
        return RefTraitModel(id=trait.feature_id)
    if isinstance(trait, RollTrait):
        return RollTraitModel(name=trait.name, expr=trait.expr)
    raise TypeError(f"Unsupported trait: {trait!r}")


class FeatureModel(BaseModel):
    """A feature: id, tags and ordered traits."""
    id: str
    tags: list[str] = Field(default_factory=list)
    traits: list[TraitModel] = Field(default_factory=list)

    def to_feature(self) -> Feature:
        return Feature(
            id=self.id,
            tags=frozenset(self.tags),
            traits=tuple(t.to_trait() for t in self.traits),
        )

    @classmethod
    def from_feature(cls, feature: Feature) -> "FeatureModel":
        return cls(
            id=feature.id,
            tags=sorted(feature.tags),
            traits=[trait_to_model(t) for t in feature.traits],
        )


class LibraryDocument(BaseModel):
    """JSON form of a feature library."""
    features: list[FeatureModel] = Field(default_factory=list)

    def to_library(self) -> Library:
        return Library(features=[f.to_feature() for f in self.features])


# =============================================================================
# Request Models
# =============================================================================

class RegisterLibraryRequest(LibraryDocument):
    """Register a library under an id."""
    library_id: str = Field(..., min_length=1)


class CreateBuildRequest(BaseModel):
    """Start a build against a library."""
    library_id: str = "pathfinder"
    seed: Optional[int] = Field(None, description="Seed for reproducible rolls")


class AdoptFeatureRequest(BaseModel):
    feature_id: str


class RecordChoiceRequest(BaseModel):
    choice_id: str
    feature_id: str


class QueryRequest(BaseModel):
    """Tag query to run against a library."""
    query: QueryModel


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class LibraryInfo(BaseModel):
    library_id: str
    feature_count: int
    builtin: bool = False


class LibraryListResponse(BaseModel):
    libraries: list[LibraryInfo] = Field(default_factory=list)
    count: int = 0
    api_version: str = "v1"


class QueryResponse(BaseModel):
    """Features matching a query, in library order."""
    library_id: str
    features: list[FeatureModel] = Field(default_factory=list)
    count: int = 0
    api_version: str = "v1"


class BuildResponse(BaseModel):
    """Build session information."""
    build_id: str
    library_id: str
    status: BuildStatus
    adopted: list[str] = Field(default_factory=list)
    choices: dict[str, str] = Field(default_factory=dict)
    seed: Optional[int] = None
    last_error: Optional[str] = None
    created_at: float = 0.0
    api_version: str = "v1"


class BuildListResponse(BaseModel):
    builds: list[str] = Field(default_factory=list)
    count: int = 0
    api_version: str = "v1"


class EndBuildResponse(BaseModel):
    success: bool
    build_id: str
    api_version: str = "v1"


class RollInfo(BaseModel):
    total: int
    dice: list[int] = Field(default_factory=list)


class CharacterResponse(BaseModel):
    """
    Resolved character.

    `choices` lists the options each choice point offered, so clients
    can present the next decision.
    """
    build_id: str
    features: list[str] = Field(default_factory=list)
    choices: dict[str, list[str]] = Field(default_factory=dict)
    values: dict[str, ScalarValue] = Field(default_factory=dict)
    rolls: dict[str, RollInfo] = Field(default_factory=dict)
    api_version: str = "v1"


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    environment: str
    libraries: int = 0
    active_builds: int = 0
