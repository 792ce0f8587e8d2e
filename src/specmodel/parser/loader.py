"""Load an OpenAPI 3 or Swagger 2.0 document into a validated OpenAPI 3 tree.

:func:`load_document` runs the document half of the pipeline::

    fetch -> parse + detect version
        v3: bundle external refs -> validate
        v2: preprocess -> bundle external refs -> keep v2 data -> convert -> validate

The result is a :class:`~specmodel.models.ParsedDocument`. For Swagger 2.0
input it carries a :class:`~specmodel.models.V2Enrichment` holding the
original definitions and operations, which
:func:`~specmodel.builder.build_service_model` consults before the converted
nodes.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import httpx

from specmodel.exceptions import ConversionError
from specmodel.models import (
    LoaderSettings,
    ParsedDocument,
    RawDocument,
    SpecVersion,
    V2Enrichment,
)
from specmodel.parser.converter import convert_v2_to_v3
from specmodel.parser.detect import detect_version, parse_content
from specmodel.parser.fetcher import fetch_document
from specmodel.parser.resolver import bundle_external_refs
from specmodel.parser.v2compat import preprocess_v2_for_compatibility
from specmodel.parser.validator import validate_document

logger = logging.getLogger(__name__)


def load_document(
    source: str,
    settings: Optional[LoaderSettings] = None,
    cancel: Optional[threading.Event] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> ParsedDocument:
    """Fetch, classify, convert and validate the document named by *source*.

    Args:
        source: An ``http``/``https`` URL or a filesystem path.
        settings: Fetch and external-ref settings.
        cancel: Cancellation token observed while fetching.
        transport: Optional httpx transport for remote fetches.

    Returns:
        The validated OpenAPI 3 document.

    Raises:
        InputError: Empty input, blocked scheme, or unreadable file.
        NetworkError: The document (or a remote ``$ref``) could not be fetched.
        ParseError: Broken syntax or no known version marker.
        ConversionError: The Swagger 2.0 document cannot be converted.
        ValidationError: The OpenAPI 3 document is invalid.
    """
    settings = settings or LoaderSettings()
    raw = fetch_document(source, settings, cancel=cancel, transport=transport)
    return load_raw_document(raw, settings, cancel=cancel, transport=transport)


def load_raw_document(
    raw: RawDocument,
    settings: Optional[LoaderSettings] = None,
    cancel: Optional[threading.Event] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> ParsedDocument:
    """Run the parse/convert/validate stages over already-fetched bytes."""
    settings = settings or LoaderSettings()
    tree = parse_content(raw.data, location=raw.location)
    version = raw.version or detect_version(tree, location=raw.location)

    enrichment: Optional[V2Enrichment] = None
    if version is SpecVersion.SWAGGER_2:
        data, modified = preprocess_v2_for_compatibility(raw.data)
        if modified:
            logger.info("Applied Swagger 2.0 compatibility rewrites to %s", raw.location)
            tree = parse_content(data, location=raw.location)
        tree = _bundle(tree, raw, settings, cancel, transport)
        enrichment = V2Enrichment.from_tree(tree)
        try:
            tree = convert_v2_to_v3(tree)
        except ConversionError as exc:
            if exc.location is None:
                exc.location = raw.location
            raise
    else:
        tree = _bundle(tree, raw, settings, cancel, transport)

    openapi_version = str(tree.get("openapi", "")).strip()
    unresolved = validate_document(tree, raw.location, openapi_version)

    return ParsedDocument(
        tree=tree,
        location=raw.location,
        source_version=version,
        openapi_version=openapi_version,
        enrichment=enrichment,
        unresolved_refs=unresolved,
    )


def _bundle(
    tree: dict[str, Any],
    raw: RawDocument,
    settings: LoaderSettings,
    cancel: Optional[threading.Event],
    transport: Optional[httpx.BaseTransport],
) -> dict[str, Any]:
    return bundle_external_refs(
        tree,
        raw.location,
        settings=settings,
        root_is_url=raw.is_url,
        cancel=cancel,
        transport=transport,
    )
