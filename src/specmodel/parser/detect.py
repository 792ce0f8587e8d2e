"""Permissive JSON/YAML parsing and OpenAPI/Swagger version detection.

Before committing to the v2 or v3 code path the raw bytes are parsed into a
generic dict and classified by their top-level marker:

* ``openapi`` starting with ``3.`` -- :attr:`~specmodel.models.SpecVersion.OPENAPI_3`
* ``swagger`` starting with ``2.`` -- :attr:`~specmodel.models.SpecVersion.SWAGGER_2`

Anything else is a :class:`~specmodel.exceptions.ParseError`.

YAML mappings may use non-string keys (``200:`` loads as an ``int``) and
unquoted dates load as :class:`datetime.date`. :func:`parse_content`
normalises both so the tree is plain JSON data, which the validator and the
builder rely on.
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, Optional

import yaml

from specmodel.exceptions import ParseError
from specmodel.models import SpecVersion

logger = logging.getLogger(__name__)


def parse_content(content: bytes | str, location: Optional[str] = None) -> dict[str, Any]:
    """Parse content as JSON or YAML into a JSON-compatible dict.

    Tries JSON first, then falls back to YAML. Valid JSON is also valid
    YAML, but JSON parsing is stricter and faster.

    Args:
        content: Raw bytes (decoded as UTF-8) or text.
        location: File path or URL, used for error reporting only.

    Returns:
        The parsed dictionary with string keys throughout.

    Raises:
        ParseError: If the content is not UTF-8, cannot be parsed as either
            format, or its root is not a mapping.
    """
    if isinstance(content, bytes):
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ParseError(
                f"Document is not valid UTF-8: {exc}", location=location, cause=exc
            ) from exc
    else:
        text = content

    if not text.strip():
        raise ParseError("Document is empty", location=location)

    try:
        result = json.loads(text)
    except json.JSONDecodeError as json_error:
        try:
            result = yaml.safe_load(text)
        except yaml.YAMLError as yaml_error:
            raise ParseError(
                "Failed to parse document as JSON or YAML"
                f"\n  JSON error: {json_error}"
                f"\n  YAML error: {yaml_error}",
                location=location,
                cause=yaml_error,
            ) from yaml_error

    if not isinstance(result, dict):
        raise ParseError(
            "Document must be a JSON/YAML object (got "
            f"{type(result).__name__ if result is not None else 'empty document'})",
            location=location,
        )
    return _normalise(result)


def _normalise(obj: Any) -> Any:
    """Stringify mapping keys and date scalars, recursively."""
    if isinstance(obj, dict):
        return {_normalise_key(k): _normalise(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_normalise(item) for item in obj]
    if isinstance(obj, (datetime.date, datetime.datetime)):
        return obj.isoformat()
    return obj


def _normalise_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, bool):
        # YAML 1.1 reads bare ``yes``/``no``/``on``/``off`` keys as booleans
        return "true" if key else "false"
    if isinstance(key, (datetime.date, datetime.datetime)):
        return key.isoformat()
    return str(key)


def _marker(tree: dict[str, Any], key: str) -> str:
    value = tree.get(key)
    if value is None or isinstance(value, (bool, dict, list)):
        return ""
    return str(value).strip()


def detect_version(tree: dict[str, Any], location: Optional[str] = None) -> SpecVersion:
    """Classify a parsed document as OpenAPI 3 or Swagger 2.

    Args:
        tree: The generic document as returned by :func:`parse_content`.
        location: File path or URL, used for error reporting only.

    Returns:
        The detected :class:`~specmodel.models.SpecVersion`.

    Raises:
        ParseError: If neither a ``openapi: 3.x`` nor a ``swagger: 2.x``
            marker is present.
    """
    if _marker(tree, "openapi").startswith("3."):
        version = SpecVersion.OPENAPI_3
    elif _marker(tree, "swagger").startswith("2."):
        version = SpecVersion.SWAGGER_2
    else:
        raise ParseError(
            "Missing or unknown version (expected 'openapi: 3.x' or 'swagger: 2.0')",
            location=location,
        )
    logger.debug("Detected %s document at %s", version.name, location or "<memory>")
    return version
