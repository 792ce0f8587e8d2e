"""Shared test fixtures for specmodel.

Provides the fixture directory, raw and parsed sample documents, and a
helper to build an :class:`httpx.MockTransport` that serves documents from
memory. These fixtures are automatically discovered by pytest and available
to all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import httpx
import pytest
import yaml

from specmodel.models import ParsedDocument
from specmodel.parser.loader import load_document

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Raw document fixtures (plain dicts loaded from YAML files)
# ---------------------------------------------------------------------------


def _load_yaml(name: str) -> dict[str, Any]:
    with open(FIXTURES_DIR / name, encoding="utf-8") as f:
        return yaml.safe_load(f)


@pytest.fixture
def sample_v3_raw() -> dict[str, Any]:
    """Load the raw OpenAPI 3 sample (pets + admin) as a dict."""
    return _load_yaml("sample_v3.yaml")


@pytest.fixture
def petstore_v2_raw() -> dict[str, Any]:
    """Load the raw Swagger 2.0 petstore as a dict."""
    return _load_yaml("petstore_v2.yaml")


# ---------------------------------------------------------------------------
# Parsed document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_v3_doc() -> ParsedDocument:
    """Load and validate the OpenAPI 3 sample."""
    return load_document(str(FIXTURES_DIR / "sample_v3.yaml"))


@pytest.fixture
def petstore_v2_doc() -> ParsedDocument:
    """Load, convert and validate the Swagger 2.0 petstore."""
    return load_document(str(FIXTURES_DIR / "petstore_v2.yaml"))


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def serve() -> Callable[[dict[str, bytes]], httpx.MockTransport]:
    """Return a factory for a MockTransport serving ``{url: body}`` with 200, else 404."""

    def _factory(documents: dict[str, bytes]) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            body = documents.get(str(request.url))
            if body is None:
                return httpx.Response(404, text="not found")
            return httpx.Response(200, content=body)

        return httpx.MockTransport(handler)

    return _factory
