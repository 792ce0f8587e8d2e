"""Validate OpenAPI 3 document trees with :mod:`openapi_spec_validator`.

Validation is strict with one deliberate exception: references that lead
nowhere. A document whose only defect is an internal ``$ref`` to a missing
component is still useful for building a service model, so

1. internal refs are pre-scanned with
   :func:`~specmodel.parser.resolver.find_unresolved_refs` and reported as
   warnings,
2. a copy of the tree is validated in which every missing
   ``#/components/<section>/<name>`` target is filled with a minimal valid
   placeholder, so every other defect of the document is still reported,
   and
3. a :class:`referencing.exceptions.Unresolvable` raised for a missing
   target that could not be filled (a pointer outside ``components``) is
   treated as permissive continuation.

Every other validator failure becomes a
:class:`~specmodel.exceptions.ValidationError` with a JSON Pointer to the
offending node when one can be extracted.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Any, Optional

from openapi_spec_validator import (
    OpenAPIV30SpecValidator,
    OpenAPIV31SpecValidator,
    validate,
)
from openapi_spec_validator.validation.exceptions import OpenAPIValidationError
from referencing.exceptions import Unresolvable

from specmodel.exceptions import ValidationError
from specmodel.parser.resolver import find_unresolved_refs, split_pointer, to_pointer

logger = logging.getLogger(__name__)

_POINTER_IN_TEXT = re.compile(r"#/[^\s'\"]+")


def validator_for(openapi_version: str) -> type:
    """Pick the validator class for an ``openapi`` version string."""
    if openapi_version.strip().startswith("3.1"):
        return OpenAPIV31SpecValidator
    return OpenAPIV30SpecValidator


def error_pointer(exc: Exception) -> Optional[str]:
    """Extract a JSON Pointer for a validator error.

    The error's ``absolute_path`` is preferred. When it is empty the first
    ``#/...`` literal in the message is used, e.g. the target of a broken
    ``$ref``.
    """
    path = getattr(exc, "absolute_path", None)
    if path:
        return to_pointer(list(path))
    match = _POINTER_IN_TEXT.search(str(getattr(exc, "message", "") or exc))
    if match:
        return match.group(0)
    return None


def component_placeholder(section: str, name: str) -> dict[str, Any]:
    """Return the smallest valid object for a ``components`` section."""
    if section == "parameters":
        # a header parameter never takes part in path-template checks
        return {"name": name, "in": "header", "schema": {}}
    if section == "responses":
        return {"description": ""}
    if section == "requestBodies":
        return {"content": {}}
    if section == "headers":
        return {"schema": {}}
    if section == "securitySchemes":
        return {"type": "http", "scheme": "bearer"}
    return {}


def fill_missing_components(
    tree: dict[str, Any], refs: list[str]
) -> tuple[dict[str, Any], list[str]]:
    """Copy *tree* and add a placeholder for each missing component in *refs*.

    Returns:
        ``(patched_tree, unfilled)`` where *unfilled* lists the refs that do
        not name a ``#/components/<section>/<name>`` entry, or whose path is
        blocked by a non-mapping node.
    """
    patched = copy.deepcopy(tree)
    unfilled: list[str] = []
    for ref in refs:
        parts = split_pointer(ref)
        if len(parts) != 3 or parts[0] != "components":
            unfilled.append(ref)
            continue
        _, section, name = parts
        components = patched.setdefault("components", {})
        if not isinstance(components, dict):
            unfilled.append(ref)
            continue
        entries = components.setdefault(section, {})
        if not isinstance(entries, dict):
            unfilled.append(ref)
            continue
        entries.setdefault(name, component_placeholder(section, name))
    return patched, unfilled


def validate_document(
    tree: dict[str, Any],
    location: str,
    openapi_version: Optional[str] = None,
) -> list[str]:
    """Validate an OpenAPI 3 tree.

    Args:
        tree: The bundled document tree. It is not modified.
        location: File path or URL, used for error reporting.
        openapi_version: The ``openapi`` field; read from *tree* when omitted.

    Returns:
        The internal refs that do not resolve and were tolerated.

    Raises:
        ValidationError: The document violates the OpenAPI rules.
    """
    version = openapi_version or str(tree.get("openapi", ""))
    unresolved = find_unresolved_refs(tree)
    for ref in unresolved:
        logger.warning("Continuing past unresolved $ref %s in %s", ref, location)

    patched, unfilled = fill_missing_components(tree, unresolved) if unresolved else (tree, [])

    cls = validator_for(version)
    try:
        validate(patched, cls=cls)
    except Unresolvable as exc:
        if _unresolvable_ref(exc) not in unfilled:
            raise ValidationError(
                f"Invalid OpenAPI document: {exc}",
                location=location,
                pointer=_unresolvable_ref(exc) or None,
                cause=exc,
            ) from exc
        logger.warning(
            "Validation of %s stopped at unresolved reference %s; continuing",
            location, _unresolvable_ref(exc),
        )
    except OpenAPIValidationError as exc:
        cause = _unresolvable_cause(exc)
        if cause is not None and _unresolvable_ref(cause) in unfilled:
            logger.warning(
                "Validation of %s stopped at unresolved reference %s; continuing",
                location, _unresolvable_ref(cause),
            )
            return unresolved
        raise ValidationError(
            f"Invalid OpenAPI document: {exc.message}",
            location=location,
            pointer=error_pointer(exc),
            cause=exc,
        ) from exc

    logger.debug("Validated %s as OpenAPI %s", location, version)
    return unresolved


def _unresolvable_ref(exc: Unresolvable) -> str:
    """Normalise the ref of an ``Unresolvable`` to a ``#/...`` pointer."""
    ref = str(getattr(exc, "ref", "") or "")
    if "#" in ref:
        return ref[ref.index("#"):]
    if ref.startswith("/"):
        return "#" + ref
    return ref


def _unresolvable_cause(exc: BaseException) -> Optional[Unresolvable]:
    """Return the ``Unresolvable`` a wrapped validator error originates from."""
    cause = exc.__cause__ or exc.__context__
    while cause is not None:
        if isinstance(cause, Unresolvable):
            return cause
        cause = cause.__cause__ or cause.__context__
    return None
