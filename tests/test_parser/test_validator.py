"""Tests for specmodel.parser.validator."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
from openapi_spec_validator import OpenAPIV30SpecValidator, OpenAPIV31SpecValidator

from specmodel.exceptions import ValidationError
from specmodel.parser.detect import parse_content
from specmodel.parser.validator import (
    error_pointer,
    fill_missing_components,
    validate_document,
    validator_for,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


def _tree(name: str) -> dict:
    return parse_content((FIXTURES_DIR / name).read_bytes())


class TestValidatorFor:
    """Test validator class selection by version."""

    def test_30(self) -> None:
        assert validator_for("3.0.3") is OpenAPIV30SpecValidator

    def test_31(self) -> None:
        assert validator_for("3.1.0") is OpenAPIV31SpecValidator


class TestErrorPointer:
    """Test JSON Pointer extraction from validator errors."""

    def test_from_absolute_path(self) -> None:
        err = SimpleNamespace(absolute_path=["paths", "/pets", "get", "responses"], message="")
        assert error_pointer(err) == "#/paths/~1pets/get/responses"

    def test_from_message(self) -> None:
        err = SimpleNamespace(absolute_path=[], message="Unresolvable: '#/components/schemas/X'")
        assert error_pointer(err) == "#/components/schemas/X"

    def test_none(self) -> None:
        assert error_pointer(SimpleNamespace(absolute_path=[], message="bad")) is None


class TestValidateDocument:
    """Test validation outcomes."""

    def test_valid_document(self) -> None:
        tree = parse_content((FIXTURES_DIR / "sample_v3.yaml").read_bytes())
        assert validate_document(tree, "sample_v3.yaml") == []

    def test_empty_responses_fatal(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_document(_tree("empty_responses_v3.yaml"), "empty_responses_v3.yaml")
        err = exc_info.value
        assert err.location == "empty_responses_v3.yaml"
        assert err.pointer is not None
        assert err.pointer.startswith("#/paths/~1pets")
        assert err.cause is not None

    def test_unresolved_ref_tolerated(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING", logger="specmodel.parser.validator"):
            unresolved = validate_document(_tree("unresolved_ref_v3.yaml"), "dangling.yaml")
        assert "#/components/schemas/Missing" in unresolved
        assert "unresolved" in caplog.text

    def test_missing_info_fatal(self) -> None:
        tree = {"openapi": "3.0.3", "paths": {}}
        with pytest.raises(ValidationError, match="Invalid OpenAPI document"):
            validate_document(tree, "x.yaml")

    def test_31_document(self) -> None:
        tree = {
            "openapi": "3.1.0",
            "info": {"title": "t", "version": "1"},
            "paths": {"/a": {"get": {"responses": {"200": {"description": "ok"}}}}},
        }
        assert validate_document(tree, "x.yaml") == []


def _dangling(**paths: dict) -> dict:
    """A valid document plus ``/a``, whose response schema ref leads nowhere."""
    ok = {"200": {"description": "ok"}}
    dangling = {
        "200": {
            "description": "ok",
            "content": {
                "application/json": {"schema": {"$ref": "#/components/schemas/Missing"}}
            },
        }
    }
    tree = {
        "openapi": "3.0.3",
        "info": {"title": "t", "version": "1"},
        "paths": {"/a": {"get": {"operationId": "getA", "responses": dangling}}},
    }
    for path, item in paths.items():
        tree["paths"][path] = item or {"get": {"responses": ok}}
    return tree


class TestUnresolvedRefsStayStrict:
    """A tolerated dangling ref must not hide any other defect."""

    def test_dangling_ref_alone_passes(self) -> None:
        assert validate_document(_dangling(), "x.yaml") == ["#/components/schemas/Missing"]

    def test_undeclared_path_parameter_still_fatal(self) -> None:
        tree = _dangling(**{"/b/{id}": {}})
        with pytest.raises(ValidationError):
            validate_document(tree, "x.yaml")

    def test_duplicate_operation_id_still_fatal(self) -> None:
        ok = {"200": {"description": "ok"}}
        tree = _dangling(**{"/c": {"get": {"operationId": "getA", "responses": ok}}})
        with pytest.raises(ValidationError):
            validate_document(tree, "x.yaml")

    def test_schema_defect_after_dangling_ref_fatal(self) -> None:
        tree = _dangling(**{"/d": {"get": {"responses": {}}}})
        with pytest.raises(ValidationError) as exc_info:
            validate_document(tree, "x.yaml")
        assert exc_info.value.pointer.startswith("#/paths/~1d")

    def test_missing_parameter_component_tolerated(self) -> None:
        tree = _dangling()
        tree["paths"]["/a"]["get"]["parameters"] = [{"$ref": "#/components/parameters/Gone"}]
        assert validate_document(tree, "x.yaml") == [
            "#/components/parameters/Gone",
            "#/components/schemas/Missing",
        ]

    def test_input_tree_not_modified(self) -> None:
        tree = _dangling()
        validate_document(tree, "x.yaml")
        assert "components" not in tree


class TestFillMissingComponents:
    """Test placeholder filling of missing component targets."""

    def test_fills_by_section(self) -> None:
        refs = [
            "#/components/schemas/S",
            "#/components/parameters/P",
            "#/components/responses/R",
            "#/components/requestBodies/B",
        ]
        patched, unfilled = fill_missing_components({"components": {"schemas": {}}}, refs)
        assert unfilled == []
        components = patched["components"]
        assert components["schemas"]["S"] == {}
        assert components["parameters"]["P"] == {"name": "P", "in": "header", "schema": {}}
        assert components["responses"]["R"] == {"description": ""}
        assert components["requestBodies"]["B"] == {"content": {}}

    def test_escaped_name(self) -> None:
        patched, _ = fill_missing_components({}, ["#/components/schemas/a~1b"])
        assert "a/b" in patched["components"]["schemas"]

    def test_refs_outside_components_unfilled(self) -> None:
        tree = {"paths": {}}
        patched, unfilled = fill_missing_components(
            tree, ["#/paths/~1x/get", "#/components/schemas"]
        )
        assert unfilled == ["#/paths/~1x/get", "#/components/schemas"]
        assert patched == tree
        assert patched is not tree

    def test_non_mapping_section_unfilled(self) -> None:
        _, unfilled = fill_missing_components(
            {"components": {"schemas": []}}, ["#/components/schemas/S"]
        )
        assert unfilled == ["#/components/schemas/S"]
