"""
Tests for API layer.

Tests:
- API service methods
- Build lifecycle via API
- Library registration and loading
- Error mapping
"""

import json

import pytest

from ..api.schemas import (
    AdoptFeatureRequest,
    BuildStatus,
    CreateBuildRequest,
    ErrorCode,
    LibraryDocument,
    RecordChoiceRequest,
    RegisterLibraryRequest,
)
from ..api.service import APIService
from ..library_schema import meta


def register(service, library_id, features):
    request = RegisterLibraryRequest.model_validate({"library_id": library_id, "features": features})
    return service.register_library(request)


class TestAPIService:
    """Tests for APIService."""

    @pytest.fixture
    def service(self):
        """Create a fresh API service."""
        return APIService()

    def test_builtin_library_registered(self, service):
        response = service.list_libraries()
        assert response.count == 1
        assert response.libraries[0].library_id == "pathfinder"
        assert response.libraries[0].builtin

    def test_create_build(self, service):
        response = service.create_build(CreateBuildRequest(library_id="pathfinder"))
        assert response.build_id
        assert response.status == BuildStatus.CREATED
        assert response.adopted == []

    def test_create_build_unknown_library(self, service):
        response = service.create_build(CreateBuildRequest(library_id="nope"))
        assert response.error_code == ErrorCode.LIBRARY_NOT_FOUND

    def test_dwarf_build_via_service(self, service):
        build = service.create_build(CreateBuildRequest())
        service.adopt_feature(build.build_id, AdoptFeatureRequest(feature_id="pathfinder"))
        service.record_choice(build.build_id, RecordChoiceRequest(choice_id="ancestry", feature_id="ancestry.dwarf"))
        status = service.record_choice(
            build.build_id, RecordChoiceRequest(choice_id="free-attr", feature_id="boost.str"),
        )
        assert status.choices == {"ancestry": "ancestry.dwarf", "free-attr": "boost.str"}

        character = service.evaluate_build(build.build_id)
        assert character.values["attr.con"] == 12
        assert character.values["attr.str"] == 12
        assert character.values["attr.cha"] == 8
        assert "attrs.default" in character.features
        assert service.get_build(build.build_id).status == BuildStatus.EVALUATED

    def test_adopt_unknown_feature(self, service):
        build = service.create_build(CreateBuildRequest())
        response = service.adopt_feature(build.build_id, AdoptFeatureRequest(feature_id="ghost"))
        assert response.error_code == ErrorCode.UNKNOWN_FEATURE
        assert response.details == {"feature_id": "ghost"}

    def test_missing_build(self, service):
        assert service.get_build("nope").error_code == ErrorCode.BUILD_NOT_FOUND
        assert service.evaluate_build("nope").error_code == ErrorCode.BUILD_NOT_FOUND
        response = service.adopt_feature("nope", AdoptFeatureRequest(feature_id="pathfinder"))
        assert response.error_code == ErrorCode.BUILD_NOT_FOUND

    def test_end_build(self, service):
        build = service.create_build(CreateBuildRequest())
        assert service.end_build(build.build_id)
        assert build.build_id not in service.list_builds()
        assert not service.end_build(build.build_id)

    def test_seeded_rolls(self, service):
        totals = []
        for _ in range(2):
            build = service.create_build(CreateBuildRequest(seed=5))
            service.adopt_feature(build.build_id, AdoptFeatureRequest(feature_id="pathfinder.rolled"))
            totals.append(service.evaluate_build(build.build_id).rolls)
        assert totals[0] == totals[1]
        assert set(totals[0]) == {"attr.str", "attr.dex", "attr.con", "attr.int", "attr.wis", "attr.cha"}

    def test_reevaluation_keeps_rolls(self, service):
        build = service.create_build(CreateBuildRequest(seed=11))
        service.adopt_feature(build.build_id, AdoptFeatureRequest(feature_id="pathfinder.rolled"))
        first = service.evaluate_build(build.build_id).rolls
        service.record_choice(build.build_id, RecordChoiceRequest(choice_id="ancestry", feature_id="ancestry.elf"))
        assert service.evaluate_build(build.build_id).rolls == first

    def test_get_feature(self, service):
        response = service.get_feature("pathfinder", "boost.str")
        assert response.id == "boost.str"
        assert response.tags == ["attr.str", "boost"]
        assert response.traits[0].kind == "add"
        assert response.traits[0].value == 2

    def test_get_feature_errors(self, service):
        assert service.get_feature("pathfinder", "ghost").error_code == ErrorCode.UNKNOWN_FEATURE
        assert service.get_feature("nope", "boost.str").error_code == ErrorCode.LIBRARY_NOT_FOUND

    def test_query_features(self, service):
        response = service.query_features("pathfinder", meta("ancestry"))
        assert response.count == 3
        assert [f.id for f in response.features] == ["ancestry.dwarf", "ancestry.elf", "ancestry.human"]


class TestLibraryRegistration:
    """Tests for registering custom libraries."""

    @pytest.fixture
    def service(self):
        return APIService(load_builtins=False)

    def test_register_and_build(self, service):
        info = register(service, "tiny", [
            {"id": "root", "traits": [
                {"kind": "data", "name": "hp", "value": 5},
                {"kind": "add", "name": "hp", "value": 3},
            ]},
        ])
        assert info.feature_count == 1
        build = service.create_build(CreateBuildRequest(library_id="tiny"))
        service.adopt_feature(build.build_id, AdoptFeatureRequest(feature_id="root"))
        assert service.evaluate_build(build.build_id).values == {"hp": 8}

    def test_builtin_cannot_be_replaced(self):
        service = APIService()
        response = register(service, "pathfinder", [])
        assert response.error_code == ErrorCode.LIBRARY_EXISTS

    @pytest.mark.parametrize("features, code", [
        ([{"id": "r", "traits": [{"kind": "add", "name": "x", "value": 1}]}], ErrorCode.MISSING_BASE_VALUE),
        ([{"id": "r", "traits": [
            {"kind": "data", "name": "x", "value": "a"},
            {"kind": "add", "name": "x", "value": 1},
        ]}], ErrorCode.TYPE_MISMATCH),
        ([{"id": "r", "traits": [{"kind": "ref", "id": "r"}]}], ErrorCode.CYCLE_DETECTED),
        ([{"id": "r", "traits": [{"kind": "ref", "id": "ghost"}]}], ErrorCode.UNKNOWN_FEATURE),
        ([{"id": "r", "traits": [{"kind": "roll", "name": "x", "expr": "2d"}]}], ErrorCode.ROLL_SYNTAX_ERROR),
        ([{"id": "r", "traits": [{"kind": "roll", "name": "x", "expr": "2?6"}]}], ErrorCode.ROLL_SYNTAX_ERROR),
        ([{"id": "r", "traits": [{"kind": "roll", "name": "x", "expr": "1000000000d6"}]}], ErrorCode.ROLL_SYNTAX_ERROR),
    ])
    def test_evaluation_errors(self, service, features, code):
        register(service, "broken", features)
        build = service.create_build(CreateBuildRequest(library_id="broken"))
        service.adopt_feature(build.build_id, AdoptFeatureRequest(feature_id="r"))

        response = service.evaluate_build(build.build_id)
        assert response.error_code == code
        status = service.get_build(build.build_id)
        assert status.status == BuildStatus.FAILED
        assert status.last_error

    def test_load_library_dir(self, service, tmp_path):
        document = {"features": [{"id": "root", "tags": ["root"]}]}
        (tmp_path / "homebrew.json").write_text(json.dumps(document), encoding="utf-8")
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

        loaded = service.load_library_dir(tmp_path)

        assert loaded == ["homebrew"]
        assert service.get_feature("homebrew", "root").tags == ["root"]

    def test_document_round_trip_through_store(self, service, pathfinder_library):
        from ..api.schemas import FeatureModel

        document = LibraryDocument(features=[FeatureModel.from_feature(f) for f in pathfinder_library])
        service.add_library("copy", document.to_library())
        build = service.create_build(CreateBuildRequest(library_id="copy"))
        service.adopt_feature(build.build_id, AdoptFeatureRequest(feature_id="pathfinder"))
        service.record_choice(build.build_id, RecordChoiceRequest(choice_id="ancestry", feature_id="ancestry.dwarf"))
        assert service.evaluate_build(build.build_id).values["attr.cha"] == 8
