"""
FastAPI Application - REST API for character builds.

Endpoints:
    GET    /api/v1/health                                    Service health
    GET    /api/v1/libraries                                 List libraries
    POST   /api/v1/libraries                                 Register a library
    GET    /api/v1/libraries/{id}/features/{feature_id}      Look up a feature
    POST   /api/v1/libraries/{id}/query                      Run a tag query
    POST   /api/v1/builds                                    Start a build
    GET    /api/v1/builds                                    List builds
    GET    /api/v1/builds/{id}                               Get build status
    DELETE /api/v1/builds/{id}                               End a build
    POST   /api/v1/builds/{id}/features                      Adopt a feature
    POST   /api/v1/builds/{id}/choices                       Record a choice
    POST   /api/v1/builds/{id}/evaluate                      Resolve the character

Build Flow:
    1. POST /builds with a library_id (and a seed for reproducible rolls)
    2. POST /features to adopt the root feature
    3. POST /evaluate; the response lists the options of every choice reached
    4. POST /choices for each decision, then evaluate again

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Union
import logging
import os

from .. import __version__

# Environment configuration
BUILDFORGE_ENV = os.getenv("BUILDFORGE_ENV", "development")
BUILDFORGE_LIBRARY_DIR = os.getenv("BUILDFORGE_LIBRARY_DIR", None)
BUILDFORGE_LOG_LEVEL = os.getenv("BUILDFORGE_LOG_LEVEL", "INFO")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

logger = logging.getLogger(__name__)


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    from fastapi import FastAPI, Request
    from fastapi.encoders import jsonable_encoder
    from fastapi.exceptions import RequestValidationError
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse

    from .service import APIService
    from .schemas import (
        # Request models
        RegisterLibraryRequest,
        CreateBuildRequest,
        AdoptFeatureRequest,
        RecordChoiceRequest,
        QueryRequest,
        # Response models
        LibraryInfo,
        LibraryListResponse,
        FeatureModel,
        QueryResponse,
        BuildResponse,
        BuildListResponse,
        EndBuildResponse,
        CharacterResponse,
        ErrorResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )

    logging.basicConfig(level=BUILDFORGE_LOG_LEVEL.upper())

    app = FastAPI(
        title="Buildforge API",
        description="""
Character build resolution over feature libraries.

## Error Codes

| Code | Description |
|------|-------------|
| `LIBRARY_NOT_FOUND` | Library ID not registered |
| `LIBRARY_EXISTS` | Built-in library cannot be replaced |
| `BUILD_NOT_FOUND` | Build does not exist |
| `UNKNOWN_FEATURE` | Feature id not defined in the library |
| `MISSING_BASE_VALUE` | Add trait ran before its value was set |
| `TYPE_MISMATCH` | Add trait met a non-numeric value |
| `CYCLE_DETECTED` | Features reference each other in a loop |
| `ROLL_SYNTAX_ERROR` | Roll expression could not be parsed |
| `VALIDATION_ERROR` | Request body failed schema validation |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService(environment=BUILDFORGE_ENV)
    if service is None and BUILDFORGE_LIBRARY_DIR:
        loaded = api_service.load_library_dir(BUILDFORGE_LIBRARY_DIR)
        logger.info("Loaded %d libraries from %s", len(loaded), BUILDFORGE_LIBRARY_DIR)

    # =========================================================================
    # Error helpers
    # =========================================================================

    _STATUS_BY_CODE = {
        ErrorCode.LIBRARY_NOT_FOUND: 404,
        ErrorCode.BUILD_NOT_FOUND: 404,
        ErrorCode.LIBRARY_EXISTS: 409,
        ErrorCode.INTERNAL_ERROR: 500,
    }

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Render an ErrorResponse with its HTTP status."""
        return JSONResponse(
            status_code=_STATUS_BY_CODE.get(error.error_code, 422),
            content=error.model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return make_error_response(ErrorResponse(
            error="Request validation failed",
            error_code=ErrorCode.VALIDATION_ERROR,
            details={"errors": jsonable_encoder(exc.errors())},
        ))

    def respond(result):
        if isinstance(result, ErrorResponse):
            return make_error_response(result)
        return result

    # =========================================================================
    # System
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Service health",
    )
    async def health_check() -> HealthResponse:
        return api_service.health()

    # =========================================================================
    # Library Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/libraries",
        response_model=LibraryListResponse,
        tags=["Libraries"],
        summary="List registered libraries",
    )
    async def list_libraries() -> LibraryListResponse:
        return api_service.list_libraries()

    @app.post(
        "/api/v1/libraries",
        response_model=LibraryInfo,
        status_code=201,
        responses={409: {"model": ErrorResponse}},
        tags=["Libraries"],
        summary="Register a feature library",
    )
    async def register_library(request: RegisterLibraryRequest) -> Union[LibraryInfo, JSONResponse]:
        """
        Register a library document.

        Registering an existing id replaces that library for new builds.
        Builds already started keep the store they were created with.
        """
        return respond(api_service.register_library(request))

    @app.get(
        "/api/v1/libraries/{library_id}/features/{feature_id}",
        response_model=FeatureModel,
        responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
        tags=["Libraries"],
        summary="Look up a feature by id",
    )
    async def get_feature(library_id: str, feature_id: str) -> Union[FeatureModel, JSONResponse]:
        return respond(api_service.get_feature(library_id, feature_id))

    @app.post(
        "/api/v1/libraries/{library_id}/query",
        response_model=QueryResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Libraries"],
        summary="Find features matching a tag query",
    )
    async def query_features(library_id: str, request: QueryRequest) -> Union[QueryResponse, JSONResponse]:
        return respond(api_service.query_features(library_id, request.query.to_query()))

    # =========================================================================
    # Build Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/builds",
        response_model=BuildResponse,
        status_code=201,
        responses={404: {"model": ErrorResponse, "description": "Unknown library_id"}},
        tags=["Builds"],
        summary="Start a build",
    )
    async def create_build(request: CreateBuildRequest) -> Union[BuildResponse, JSONResponse]:
        return respond(api_service.create_build(request))

    @app.get(
        "/api/v1/builds",
        response_model=BuildListResponse,
        tags=["Builds"],
        summary="List active builds",
    )
    async def list_builds() -> BuildListResponse:
        builds = api_service.list_builds()
        return BuildListResponse(builds=builds, count=len(builds))

    @app.get(
        "/api/v1/builds/{build_id}",
        response_model=BuildResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Builds"],
        summary="Get build status",
    )
    async def get_build(build_id: str) -> Union[BuildResponse, JSONResponse]:
        return respond(api_service.get_build(build_id))

    @app.delete(
        "/api/v1/builds/{build_id}",
        response_model=EndBuildResponse,
        tags=["Builds"],
        summary="End a build",
    )
    async def end_build(build_id: str) -> EndBuildResponse:
        success = api_service.end_build(build_id)
        return EndBuildResponse(success=success, build_id=build_id)

    @app.post(
        "/api/v1/builds/{build_id}/features",
        response_model=BuildResponse,
        responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
        tags=["Builds"],
        summary="Adopt a root feature",
    )
    async def adopt_feature(build_id: str, request: AdoptFeatureRequest) -> Union[BuildResponse, JSONResponse]:
        return respond(api_service.adopt_feature(build_id, request))

    @app.post(
        "/api/v1/builds/{build_id}/choices",
        response_model=BuildResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Builds"],
        summary="Record a choice",
    )
    async def record_choice(build_id: str, request: RecordChoiceRequest) -> Union[BuildResponse, JSONResponse]:
        """
        Record the player's decision for a choice point.

        A decision naming a feature that is not among the offered
        options is kept but ignored during evaluation.
        """
        return respond(api_service.record_choice(build_id, request))

    @app.post(
        "/api/v1/builds/{build_id}/evaluate",
        response_model=CharacterResponse,
        responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
        tags=["Builds"],
        summary="Resolve the character",
    )
    async def evaluate_build(build_id: str) -> Union[CharacterResponse, JSONResponse]:
        return respond(api_service.evaluate_build(build_id))

    return app
