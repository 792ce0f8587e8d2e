"""Convert schema nodes of a document tree into :class:`~specmodel.models.SchemaOrRef`.

Named schemas come from two sources, tried in order:

1. the original Swagger 2.0 ``definitions`` kept in a
   :class:`~specmodel.models.V2Enrichment`, and
2. the (possibly converted) OpenAPI 3 ``components.schemas`` node.

A ``$ref`` never gets inlined; it becomes a
:class:`~specmodel.models.SchemaRef` that callers resolve by name.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from specmodel.models import Schema, SchemaOrRef, SchemaRef, V2Enrichment
from specmodel.parser.converter import rewrite_ref

logger = logging.getLogger(__name__)

_COMPOSITIONS = (("allOf", "all_of"), ("anyOf", "any_of"), ("oneOf", "one_of"))


def schema_from_v3(node: Any) -> Optional[SchemaOrRef]:
    """Convert an OpenAPI 3 schema node.

    A missing (``None``) node becomes an ``object`` placeholder so a named
    component never disappears from the schema table.
    """
    if node is None:
        return SchemaOrRef(schema=Schema(type="object"))
    return _convert(node, v2=False)


def schema_from_v2(node: Any, name: str = "") -> Optional[SchemaOrRef]:
    """Convert a Swagger 2.0 schema node, rewriting ``#/definitions/`` refs.

    Returns ``None`` when *node* is not a mapping.
    """
    result = _convert(node, v2=True)
    if result is None or result.is_ref or not name:
        return result
    return SchemaOrRef(schema=result.schema_.model_copy(update={"name": name}))


def extract_schemas(
    tree: dict[str, Any],
    enrichment: Optional[V2Enrichment] = None,
) -> dict[str, Schema]:
    """Build the name-keyed schema table, in sorted name order.

    Each ``components.schemas`` entry is taken from the retained v2
    definition of the same name when there is one, otherwise from the v3
    node. A top-level ``$ref`` entry is stored as a name-only placeholder.
    """
    components = tree.get("components")
    schemas = components.get("schemas") if isinstance(components, dict) else None
    if not isinstance(schemas, dict):
        return {}

    definitions = enrichment.definitions if enrichment is not None else {}
    table: dict[str, Schema] = {}
    for key, node in sorted(schemas.items(), key=lambda kv: str(kv[0])):
        name = str(key)
        converted: Optional[SchemaOrRef] = None
        if name in definitions:
            converted = schema_from_v2(definitions[name], name)
            if converted is None:
                logger.warning("Ignoring malformed Swagger 2.0 definition %r", name)
        if converted is None:
            converted = schema_from_v3(node)
        if converted is None:
            continue

        if converted.is_ref:
            table[name] = Schema(name=name)
        else:
            table[name] = converted.schema_.model_copy(update={"name": name})
    return table


def _convert(node: Any, v2: bool) -> Optional[SchemaOrRef]:
    if not isinstance(node, dict):
        return None

    ref = node.get("$ref")
    if isinstance(ref, str):
        return SchemaOrRef(ref=SchemaRef(ref=rewrite_ref(ref) if v2 else ref))

    fields: dict[str, Any] = {
        "type": _schema_type(node.get("type")),
        "format": _text(node.get("format")),
        "description": _text(node.get("description")),
        "example": _example(node),
    }

    enum = node.get("enum")
    if isinstance(enum, list) and enum:
        fields["enum"] = list(enum)

    required = node.get("required")
    if isinstance(required, list):
        fields["required"] = [r for r in required if isinstance(r, str)]

    properties = node.get("properties")
    if isinstance(properties, dict):
        converted = {}
        for prop, child in sorted(properties.items(), key=lambda kv: str(kv[0])):
            value = _convert(child, v2)
            if value is not None:
                converted[str(prop)] = value
        fields["properties"] = converted

    items = _convert(node.get("items"), v2)
    if items is not None:
        fields["items"] = items

    for key, field in _COMPOSITIONS:
        members = node.get(key)
        if isinstance(members, list):
            fields[field] = [m for m in (_convert(x, v2) for x in members) if m is not None]

    return SchemaOrRef(schema=Schema(**fields))


def _schema_type(value: Any) -> str:
    """Return the type string; for a 3.1 type array, its first non-null entry."""
    if isinstance(value, list):
        non_null = [t for t in value if isinstance(t, str) and t != "null"]
        return non_null[0] if non_null else ""
    return _text(value)


def _example(node: dict[str, Any]) -> Any:
    if "example" in node:
        return node["example"]
    examples = node.get("examples")
    if isinstance(examples, list) and examples:
        return examples[0]
    return None


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""
