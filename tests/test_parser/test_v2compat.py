"""Tests for specmodel.parser.v2compat."""

from __future__ import annotations

from pathlib import Path

import yaml

from specmodel.parser.v2compat import preprocess_v2_for_compatibility, rewrite_v2_tree

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


def _op(tree: dict, path: str, method: str = "post") -> dict:
    return tree["paths"][path][method]


# ---------------------------------------------------------------------------
# Multiple body parameters
# ---------------------------------------------------------------------------


class TestMultipleBody:
    """Test merging of several in: body parameters."""

    def test_merged_into_single_body(self) -> None:
        data = (FIXTURES_DIR / "multi_body_v2.yaml").read_bytes()
        out, changed = preprocess_v2_for_compatibility(data)
        assert changed is True

        params = _op(yaml.safe_load(out), "/x")["parameters"]
        bodies = [p for p in params if p["in"] == "body"]
        assert len(bodies) == 1
        body = bodies[0]
        assert body["name"] == "body"
        assert body["schema"]["type"] == "object"
        assert body["schema"]["properties"] == {
            "a": {"type": "string"},
            "b": {"type": "integer"},
        }
        assert body["schema"]["required"] == ["a"]

    def test_unnamed_parameter_becomes_field(self) -> None:
        doc = {
            "paths": {
                "/x": {
                    "put": {
                        "parameters": [
                            {"in": "body", "schema": {"type": "string"}},
                            {"in": "body", "name": "n", "type": "integer"},
                        ]
                    }
                }
            }
        }
        assert rewrite_v2_tree(doc) is True
        schema = doc["paths"]["/x"]["put"]["parameters"][0]["schema"]
        assert set(schema["properties"]) == {"field", "n"}
        assert schema["properties"]["n"] == {"type": "integer"}
        assert "required" not in schema

    def test_other_parameters_kept_after_body(self) -> None:
        doc = {
            "paths": {
                "/x": {
                    "post": {
                        "parameters": [
                            {"in": "query", "name": "q", "type": "string"},
                            {"in": "body", "name": "a", "schema": {"type": "string"}},
                            {"in": "body", "name": "b", "schema": {"type": "string"}},
                        ]
                    }
                }
            }
        }
        rewrite_v2_tree(doc)
        params = doc["paths"]["/x"]["post"]["parameters"]
        assert [p["in"] for p in params] == ["body", "query"]

    def test_non_mapping_entries_dropped(self) -> None:
        bodies = [
            {"in": "body", "name": "a", "schema": {"type": "string"}},
            {"in": "body", "name": "b", "schema": {"type": "string"}},
        ]
        form = [
            {"in": "body", "name": "a", "schema": {"type": "string"}},
            {"in": "formData", "name": "f", "type": "string"},
        ]
        doc = {
            "paths": {
                "/multi": {"post": {"parameters": [None, *bodies, "junk"]}},
                "/form": {"post": {"parameters": [None, *form, "junk"]}},
            }
        }
        assert rewrite_v2_tree(doc) is True
        for path in ("/multi", "/form"):
            params = doc["paths"][path]["post"]["parameters"]
            assert all(isinstance(p, dict) for p in params)
        assert len(doc["paths"]["/multi"]["post"]["parameters"]) == 1
        assert len(doc["paths"]["/form"]["post"]["parameters"]) == 2


# ---------------------------------------------------------------------------
# Mixed body and formData
# ---------------------------------------------------------------------------


class TestMixedBodyFormData:
    """Test conversion of body parameters into formData."""

    def test_body_converted_to_form_data(self) -> None:
        data = (FIXTURES_DIR / "mixed_form_v2.yaml").read_bytes()
        out, changed = preprocess_v2_for_compatibility(data)
        assert changed is True

        op = _op(yaml.safe_load(out), "/upload")
        assert all(p["in"] != "body" for p in op["parameters"])
        assert "multipart/form-data" in op["consumes"]
        desc = next(p for p in op["parameters"] if p["name"] == "desc")
        assert desc == {"in": "formData", "name": "desc", "type": "string"}

    def test_ref_schema_degrades_to_string(self) -> None:
        doc = {
            "paths": {
                "/u": {
                    "post": {
                        "consumes": ["application/x-www-form-urlencoded"],
                        "parameters": [
                            {"in": "body", "name": "pet", "required": True,
                             "schema": {"$ref": "#/definitions/Pet"}},
                            {"in": "formData", "name": "file", "type": "file"},
                        ],
                    }
                }
            }
        }
        rewrite_v2_tree(doc)
        op = doc["paths"]["/u"]["post"]
        pet = op["parameters"][0]
        assert pet["in"] == "formData"
        assert pet["type"] == "string"
        assert pet["required"] is True
        assert op["consumes"] == ["application/x-www-form-urlencoded", "multipart/form-data"]

    def test_array_schema_keeps_items(self) -> None:
        doc = {
            "paths": {
                "/u": {
                    "post": {
                        "parameters": [
                            {"in": "body", "name": "ids",
                             "schema": {"type": "array", "items": {"type": "integer"}}},
                            {"in": "formData", "name": "f", "type": "string"},
                        ],
                    }
                }
            }
        }
        rewrite_v2_tree(doc)
        ids = doc["paths"]["/u"]["post"]["parameters"][0]
        assert ids["type"] == "array"
        assert ids["items"] == {"type": "integer"}


# ---------------------------------------------------------------------------
# Pass-through
# ---------------------------------------------------------------------------


class TestPassThrough:
    """Test that unrecognised or compliant input is returned unchanged."""

    def test_single_body_unchanged(self) -> None:
        data = (FIXTURES_DIR / "petstore_v2.yaml").read_bytes()
        out, changed = preprocess_v2_for_compatibility(data)
        assert changed is False
        assert out is data

    def test_unparseable_input_unchanged(self) -> None:
        data = b"{not: [valid"
        out, changed = preprocess_v2_for_compatibility(data)
        assert changed is False
        assert out is data

    def test_odd_shapes_ignored(self) -> None:
        doc = {
            "paths": {
                "/a": "not a path item",
                "/b": {"get": ["not", "an", "operation"], "parameters": []},
                "/c": {"post": {"parameters": "nope"}},
            }
        }
        assert rewrite_v2_tree(doc) is False

    def test_no_paths(self) -> None:
        assert rewrite_v2_tree({"swagger": "2.0"}) is False
