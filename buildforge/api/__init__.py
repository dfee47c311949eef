"""
API Module - HTTP interface to the build engine.

Exposes the engine via REST API. A client:
1. Registers a library (or uses a built-in one)
2. Starts a build
3. Adopts root features and records choices
4. Evaluates to get the resolved character

All build state is session-scoped. No persistent storage.

Run with: uvicorn buildforge.api.app:create_app --factory
"""

from .schemas import (
    # Library documents
    LibraryDocument,
    FeatureModel,
    # Requests
    RegisterLibraryRequest,
    CreateBuildRequest,
    AdoptFeatureRequest,
    RecordChoiceRequest,
    QueryRequest,
    # Responses
    BuildResponse,
    CharacterResponse,
    ErrorResponse,
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    "LibraryDocument",
    "FeatureModel",
    "RegisterLibraryRequest",
    "CreateBuildRequest",
    "AdoptFeatureRequest",
    "RecordChoiceRequest",
    "QueryRequest",
    "BuildResponse",
    "CharacterResponse",
    "ErrorResponse",
    "ErrorCode",
    "APIService",
    "create_app",
]
