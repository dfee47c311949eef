"""
API Service - Business logic layer between API and engine.

The service:
1. Registers feature libraries and builds their stores
2. Answers feature lookups and tag queries
3. Manages build sessions
4. Maps engine errors to structured error responses

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
import logging

from pydantic import ValidationError

from .. import __version__
from ..engine_core import (
    BuildError,
    CycleDetected,
    FeatureStore,
    MemoryFeatureStore,
    MissingBaseValue,
    RollError,
    TypeMismatch,
    UnknownFeature,
)
from ..games import BUILTIN_LIBRARIES
from ..library_schema import Library, Query
from ..session import BuildSession, SessionManager
from .schemas import (
    # Requests
    RegisterLibraryRequest,
    CreateBuildRequest,
    AdoptFeatureRequest,
    RecordChoiceRequest,
    LibraryDocument,
    # Responses
    LibraryInfo,
    LibraryListResponse,
    FeatureModel,
    QueryResponse,
    BuildResponse,
    CharacterResponse,
    RollInfo,
    ErrorResponse,
    HealthResponse,
    # Enums
    BuildStatus,
    ErrorCode,
)

logger = logging.getLogger(__name__)


def error_code_for(error: BuildError) -> ErrorCode:
    """Machine-readable code for an engine error."""
    if isinstance(error, UnknownFeature):
        return ErrorCode.UNKNOWN_FEATURE
    if isinstance(error, MissingBaseValue):
        return ErrorCode.MISSING_BASE_VALUE
    if isinstance(error, TypeMismatch):
        return ErrorCode.TYPE_MISMATCH
    if isinstance(error, CycleDetected):
        return ErrorCode.CYCLE_DETECTED
    if isinstance(error, RollError):
        return ErrorCode.ROLL_SYNTAX_ERROR
    return ErrorCode.INTERNAL_ERROR


def _error_details(error: BuildError) -> dict:
    if isinstance(error, UnknownFeature):
        return {"feature_id": error.feature_id}
    if isinstance(error, (MissingBaseValue, TypeMismatch)):
        return {"name": error.name}
    if isinstance(error, CycleDetected):
        return {"path": error.path}
    if isinstance(error, RollError):
        return {"expr": error.text}
    return {}


def build_error_response(error: BuildError) -> ErrorResponse:
    return ErrorResponse(
        error=str(error),
        error_code=error_code_for(error),
        details=_error_details(error),
    )


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        # Start a build on the built-in library
        build = service.create_build(CreateBuildRequest(library_id="pathfinder"))

        # Decide and evaluate
        service.adopt_feature(build.build_id, AdoptFeatureRequest(feature_id="pathfinder"))
        service.record_choice(build.build_id, RecordChoiceRequest(
            choice_id="ancestry", feature_id="ancestry.dwarf"))
        character = service.evaluate_build(build.build_id)
    """
    session_manager: SessionManager = field(default_factory=SessionManager)
    environment: str = "development"
    load_builtins: bool = True

    # Feature stores by library ID
    _stores: dict[str, FeatureStore] = field(default_factory=dict)
    _builtin_ids: set[str] = field(default_factory=set)

    def __post_init__(self):
        if self.load_builtins:
            for library_id, factory in BUILTIN_LIBRARIES.items():
                self.add_library(library_id, factory())
                self._builtin_ids.add(library_id)

    # =========================================================================
    # Libraries
    # =========================================================================

    def add_library(self, library_id: str, library: Library) -> LibraryInfo:
        """Index a library and make it available to builds."""
        store = MemoryFeatureStore.from_library(library)
        self._stores[library_id] = store
        logger.info("Registered library '%s' (%d features)", library_id, len(store))
        return self._library_info(library_id)

    def register_library(self, request: RegisterLibraryRequest) -> LibraryInfo | ErrorResponse:
        """Register a library document. Built-in libraries cannot be replaced."""
        if request.library_id in self._builtin_ids:
            return ErrorResponse(
                error=f"Library '{request.library_id}' is built in",
                error_code=ErrorCode.LIBRARY_EXISTS,
            )
        return self.add_library(request.library_id, request.to_library())

    def load_library_dir(self, directory: str | Path) -> list[str]:
        """
        Register every *.json library document in a directory.

        The library id is the file stem. Files that fail to parse are
        skipped with a warning.
        """
        loaded = []
        for path in sorted(Path(directory).glob("*.json")):
            try:
                document = LibraryDocument.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, ValidationError) as e:
                logger.warning("Skipping library file %s: %s", path, e)
                continue
            self.add_library(path.stem, document.to_library())
            loaded.append(path.stem)
        return loaded

    def list_libraries(self) -> LibraryListResponse:
        libraries = [self._library_info(lid) for lid in self._stores]
        return LibraryListResponse(libraries=libraries, count=len(libraries))

    def get_feature(self, library_id: str, feature_id: str) -> FeatureModel | ErrorResponse:
        store = self._stores.get(library_id)
        if store is None:
            return self._library_not_found(library_id)
        found = store.lookup_feature(feature_id)
        if found is None:
            return build_error_response(UnknownFeature(feature_id))
        return FeatureModel.from_feature(found)

    def query_features(self, library_id: str, query: Query) -> QueryResponse | ErrorResponse:
        store = self._stores.get(library_id)
        if store is None:
            return self._library_not_found(library_id)
        features = store.query(query)
        return QueryResponse(
            library_id=library_id,
            features=[FeatureModel.from_feature(f) for f in features],
            count=len(features),
        )

    # =========================================================================
    # Builds
    # =========================================================================

    def create_build(self, request: CreateBuildRequest) -> BuildResponse | ErrorResponse:
        store = self._stores.get(request.library_id)
        if store is None:
            return self._library_not_found(request.library_id)
        session = self.session_manager.create_session(
            library_id=request.library_id,
            store=store,
            seed=request.seed,
        )
        return self._build_to_response(session)

    def get_build(self, build_id: str) -> BuildResponse | ErrorResponse:
        session = self.session_manager.get_session(build_id)
        if session is None:
            return self._build_not_found(build_id)
        return self._build_to_response(session)

    def end_build(self, build_id: str) -> bool:
        return self.session_manager.end_session(build_id)

    def list_builds(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    def adopt_feature(self, build_id: str, request: AdoptFeatureRequest) -> BuildResponse | ErrorResponse:
        session = self.session_manager.get_session(build_id)
        if session is None:
            return self._build_not_found(build_id)
        try:
            session.adopt(request.feature_id)
        except UnknownFeature as e:
            return build_error_response(e)
        return self._build_to_response(session)

    def record_choice(self, build_id: str, request: RecordChoiceRequest) -> BuildResponse | ErrorResponse:
        session = self.session_manager.get_session(build_id)
        if session is None:
            return self._build_not_found(build_id)
        session.choose(request.choice_id, request.feature_id)
        return self._build_to_response(session)

    def evaluate_build(self, build_id: str) -> CharacterResponse | ErrorResponse:
        session = self.session_manager.get_session(build_id)
        if session is None:
            return self._build_not_found(build_id)
        try:
            character = session.evaluate()
        except BuildError as e:
            return build_error_response(e)

        return CharacterResponse(
            build_id=build_id,
            features=sorted(character.features),
            choices={k: list(v) for k, v in character.choices.items()},
            values={k: v.raw for k, v in character.values.items()},
            rolls={
                k: RollInfo(total=r.total, dice=list(r.dice))
                for k, r in character.rolls.items()
            },
        )

    def health(self) -> HealthResponse:
        return HealthResponse(
            version=__version__,
            environment=self.environment,
            libraries=len(self._stores),
            active_builds=len(self.session_manager.list_active_sessions()),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _library_info(self, library_id: str) -> LibraryInfo:
        store = self._stores[library_id]
        return LibraryInfo(
            library_id=library_id,
            feature_count=len(store),
            builtin=library_id in self._builtin_ids,
        )

    def _build_to_response(self, session: BuildSession) -> BuildResponse:
        return BuildResponse(
            build_id=session.session_id,
            library_id=session.library_id,
            status=BuildStatus(session.state.value),
            adopted=list(session.resolver.adopted),
            choices=session.resolver.decisions,
            seed=session.seed,
            last_error=session.last_error,
            created_at=session.created_at,
        )

    def _library_not_found(self, library_id: str) -> ErrorResponse:
        return ErrorResponse(
            error=f"Library not found: {library_id}",
            error_code=ErrorCode.LIBRARY_NOT_FOUND,
            details={"library_id": library_id},
        )

    def _build_not_found(self, build_id: str) -> ErrorResponse:
        return ErrorResponse(
            error=f"Build not found: {build_id}",
            error_code=ErrorCode.BUILD_NOT_FOUND,
            details={"build_id": build_id},
        )
