"""Heuristic rewrites of Swagger 2.0 operations that block conversion.

Two shapes seen in the wild violate the v2 model and cannot be converted to
OpenAPI 3 as-is:

* **Multiple body parameters** on one operation. They are merged into a
  single ``in: body`` parameter named ``body`` whose schema is an object
  with one property per original parameter (named after the parameter,
  ``"field"`` when unnamed) and ``required`` listing the parameters that
  were individually required.
* **Body mixed with formData**. Every body parameter becomes an equivalent
  ``in: formData`` parameter (a primitive ``type``/``format``/``items`` is
  derived from its schema, ``string`` when the schema cannot be represented,
  e.g. an object ``$ref``) and ``multipart/form-data`` is added to the
  operation's ``consumes``.

The rewrites operate on the generic tree, never on a typed model, because
the inputs are by definition not valid v2. Anything unrecognised passes
through untouched; these functions never raise.
"""

from __future__ import annotations

import logging
from typing import Any

import yaml

from specmodel.exceptions import ParseError
from specmodel.parser.detect import parse_content

logger = logging.getLogger(__name__)

_V2_METHODS = frozenset({"get", "post", "put", "delete", "patch", "options", "head"})
_MULTIPART = "multipart/form-data"


def preprocess_v2_for_compatibility(data: bytes) -> tuple[bytes, bool]:
    """Rewrite incompatible operations in a Swagger 2.0 document.

    Args:
        data: Raw JSON or YAML bytes.

    Returns:
        ``(bytes, modified)``. When nothing was rewritten (or the input
        could not be parsed) the original *data* object is returned
        unchanged with ``modified=False``; otherwise the rewritten document
        is serialised as YAML.
    """
    try:
        doc = parse_content(data)
    except ParseError:
        return data, False

    if not rewrite_v2_tree(doc):
        return data, False

    out = yaml.safe_dump(doc, sort_keys=False, allow_unicode=True)
    return out.encode("utf-8"), True


def rewrite_v2_tree(doc: dict[str, Any]) -> bool:
    """Apply the compatibility rewrites to *doc* in place.

    Returns:
        True if any operation was modified.
    """
    paths = doc.get("paths")
    if not isinstance(paths, dict):
        return False

    modified = False
    for path, item in paths.items():
        if not isinstance(item, dict):
            continue
        for method, op in item.items():
            if str(method).lower() not in _V2_METHODS or not isinstance(op, dict):
                continue
            if _rewrite_operation(op):
                logger.info("Rewrote incompatible parameters of %s %s", method.upper(), path)
                modified = True
    return modified


def _rewrite_operation(op: dict[str, Any]) -> bool:
    params = op.get("parameters")
    if not isinstance(params, list) or not params:
        return False

    body_count = sum(1 for p in params if _location(p) == "body")
    has_form_data = any(_location(p) == "formdata" for p in params)

    if body_count == 0:
        return False

    if has_form_data:
        op["parameters"] = [
            _form_data_from_body(p) if _location(p) == "body" else p
            for p in params
            if isinstance(p, dict)
        ]
        consumes = op.get("consumes")
        if not isinstance(consumes, list):
            consumes = []
        if _MULTIPART not in consumes:
            op["consumes"] = [*consumes, _MULTIPART]
        return True

    if body_count > 1:
        properties: dict[str, Any] = {}
        required: list[str] = []
        others: list[Any] = []
        for p in params:
            if not isinstance(p, dict):
                continue
            if _location(p) != "body":
                others.append(p)
                continue
            name = _string(p.get("name")) or "field"
            properties[name] = _schema_from_param(p) or {"type": "string"}
            if p.get("required") is True:
                required.append(name)

        schema: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        merged = {"in": "body", "name": "body", "schema": schema}
        op["parameters"] = [merged, *others]
        return True

    return False


def _location(param: Any) -> str:
    if not isinstance(param, dict):
        return ""
    return _string(param.get("in")).lower()


def _string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _schema_from_param(param: dict[str, Any]) -> dict[str, Any] | None:
    """Return the parameter's schema, or synthesise one from type/items/format."""
    schema = param.get("schema")
    if isinstance(schema, dict):
        return schema

    type_ = _string(param.get("type"))
    if not type_:
        return None
    result: dict[str, Any] = {"type": type_}
    if isinstance(param.get("items"), dict):
        result["items"] = param["items"]
    if _string(param.get("format")):
        result["format"] = param["format"]
    return result


def _form_data_from_body(param: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        "in": "formData",
        "name": _string(param.get("name")) or "field",
    }
    if _string(param.get("description")):
        out["description"] = param["description"]
    if isinstance(param.get("required"), bool):
        out["required"] = param["required"]

    type_ = ""
    format_ = ""
    items: Any = None
    schema = param.get("schema")
    if isinstance(schema, dict):
        type_ = _string(schema.get("type"))
        format_ = _string(schema.get("format"))
        if isinstance(schema.get("items"), dict):
            items = schema["items"]
        if not type_ and "$ref" in schema:
            # a referenced object has no formData representation
            type_ = "string"
    if not type_:
        type_ = _string(param.get("type"))
        format_ = _string(param.get("format"))
        if isinstance(param.get("items"), dict):
            items = param["items"]

    out["type"] = type_ or "string"
    if items is not None:
        out["items"] = items
    if format_:
        out["format"] = format_
    return out
