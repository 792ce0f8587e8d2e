"""Build a :class:`~specmodel.models.ServiceModel` from a validated OpenAPI 3 tree.

The builder walks ``paths`` in sorted order and every path item's
operations in the fixed :class:`~specmodel.models.HTTPMethod` order, so two
builds over identical input produce identical models. For each operation
it:

* merges path-level and operation-level parameters keyed by ``(in, name)``,
  the operation-level entry winning, and sorts the result by ``(in, name)``;
* converts the request body and responses, dereferencing component
  ``$ref``s and sorting media by mime type and responses by status code;
* consults the retained Swagger 2.0 operation when the converted media
  schema is a bare ``object`` without properties, substituting the
  original definition reference;
* applies the method, path-pattern and tag filters of
  :class:`~specmodel.models.BuildOptions`.

The builder performs no I/O.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from specmodel.builder.filters import EndpointFilter
from specmodel.builder.schemas import extract_schemas, schema_from_v3
from specmodel.exceptions import ConversionError
from specmodel.models import (
    BuildOptions,
    EndpointModel,
    HTTPMethod,
    Media,
    ParameterModel,
    ParsedDocument,
    RequestBodyModel,
    ResponseModel,
    SchemaOrRef,
    SchemaRef,
    Server,
    ServiceModel,
    V2Enrichment,
)
from specmodel.parser.resolver import lookup

logger = logging.getLogger(__name__)

_DEFINITIONS = "#/definitions/"
_SCHEMAS = "#/components/schemas/"


def build_service_model(
    document: Union[ParsedDocument, dict[str, Any], None],
    options: Optional[BuildOptions] = None,
    enrichment: Optional[V2Enrichment] = None,
) -> ServiceModel:
    """Reduce an OpenAPI 3 document to the flattened service model.

    Args:
        document: A :class:`~specmodel.models.ParsedDocument`, or a bare
            OpenAPI 3 tree.
        options: Endpoint filters. ``None`` retains every endpoint.
        enrichment: Retained Swagger 2.0 data. Defaults to the document's
            own enrichment when *document* is a ``ParsedDocument``.

    Returns:
        The immutable :class:`~specmodel.models.ServiceModel`.

    Raises:
        ConversionError: If *document* is missing or is not a mapping.
    """
    if document is None:
        raise ConversionError("nil document")
    if isinstance(document, ParsedDocument):
        tree = document.tree
        if enrichment is None:
            enrichment = document.enrichment
    else:
        tree = document
    if not isinstance(tree, dict):
        raise ConversionError(f"Document must be a mapping, got {type(tree).__name__}")

    return _Builder(tree, EndpointFilter(options), enrichment).build()


class _Builder:
    def __init__(
        self,
        tree: dict[str, Any],
        endpoint_filter: EndpointFilter,
        enrichment: Optional[V2Enrichment],
    ) -> None:
        self._tree = tree
        self._filter = endpoint_filter
        self._enrichment = enrichment

    def build(self) -> ServiceModel:
        info = self._tree.get("info")
        info = info if isinstance(info, dict) else {}

        endpoints = self._endpoints()
        tags = sorted({tag for ep in endpoints for tag in ep.tags})

        model = ServiceModel(
            title=_text(info.get("title")),
            version=_text(info.get("version")),
            description=_text(info.get("description")),
            servers=self._servers(),
            tags=tags,
            endpoints=endpoints,
            schemas=extract_schemas(self._tree, self._enrichment),
        )
        logger.debug(
            "Built service model %r: %d endpoints, %d schemas",
            model.title, len(model.endpoints), len(model.schemas),
        )
        return model

    def _servers(self) -> list[Server]:
        servers = self._tree.get("servers")
        if not isinstance(servers, list):
            return []
        return [
            Server(url=_text(s.get("url")), description=_text(s.get("description")))
            for s in servers
            if isinstance(s, dict)
        ]

    # ------------------------------------------------------------------ #
    # Endpoints
    # ------------------------------------------------------------------ #

    def _endpoints(self) -> list[EndpointModel]:
        paths = self._tree.get("paths")
        if not isinstance(paths, dict):
            return []

        endpoints: list[EndpointModel] = []
        for path in sorted(paths):
            item = self._deref(paths[path])
            if not isinstance(item, dict):
                continue

            base: dict[tuple[str, str], ParameterModel] = {}
            for param in self._parameters(item.get("parameters")):
                base[(param.location, param.name)] = param

            for method in HTTPMethod:
                op = item.get(method.value)
                if not isinstance(op, dict):
                    continue
                if not self._filter.allows_method(method) or not self._filter.allows_path(path):
                    continue

                tags = _clean_tags(op.get("tags"))
                if not self._filter.allows_tags(tags):
                    continue

                merged = dict(base)
                for param in self._parameters(op.get("parameters")):
                    merged[(param.location, param.name)] = param

                endpoints.append(
                    EndpointModel(
                        id=f"{method.value} {path}",
                        method=method,
                        path=path,
                        summary=_text(op.get("summary")),
                        description=_text(op.get("description")),
                        tags=tags,
                        parameters=[merged[key] for key in sorted(merged)],
                        request_body=self._request_body(op, path, method),
                        responses=self._responses(op, path, method),
                    )
                )
        return endpoints

    def _parameters(self, params: Any) -> list[ParameterModel]:
        if not isinstance(params, list):
            return []
        result = []
        for node in params:
            node = self._deref(node)
            if not isinstance(node, dict):
                continue
            name = _text(node.get("name"))
            location = _text(node.get("in"))
            if not name or not location:
                continue

            schema: Optional[SchemaOrRef] = None
            if isinstance(node.get("schema"), dict):
                schema = schema_from_v3(node["schema"])
            else:
                media = self._media_list(node.get("content"))
                if media:
                    schema = media[0].schema_

            result.append(
                ParameterModel(
                    name=name,
                    location=location,
                    required=node.get("required") is True,
                    description=_text(node.get("description")),
                    schema=schema,
                )
            )
        return result

    def _request_body(
        self, op: dict[str, Any], path: str, method: HTTPMethod
    ) -> Optional[RequestBodyModel]:
        body = self._deref(op.get("requestBody"))
        if not isinstance(body, dict):
            return None
        content = self._media_list(body.get("content"))
        content = self._enrich(content, self._v2_body_ref(path, method))
        return RequestBodyModel(required=body.get("required") is True, content=content)

    def _responses(
        self, op: dict[str, Any], path: str, method: HTTPMethod
    ) -> list[ResponseModel]:
        responses = op.get("responses")
        if not isinstance(responses, dict):
            return []

        result = []
        # a bare yaml.safe_load tree keeps status codes as int keys
        for code, node in sorted(responses.items(), key=lambda kv: str(kv[0])):
            status = str(code)
            if status.startswith("x-"):
                continue
            response = self._deref(node)
            if not isinstance(response, dict):
                continue
            content = self._media_list(response.get("content"))
            content = self._enrich(content, self._v2_response_ref(path, method, status))
            result.append(
                ResponseModel(
                    status=status,
                    description=_text(response.get("description")),
                    content=content,
                )
            )
        return result

    def _media_list(self, content: Any) -> list[Media]:
        if not isinstance(content, dict):
            return []
        result = []
        for mime in sorted(content):
            entry = content[mime]
            if not isinstance(entry, dict):
                continue
            schema = entry.get("schema")
            result.append(
                Media(
                    mime=mime,
                    schema=schema_from_v3(schema) if isinstance(schema, dict) else None,
                    example=self._example(entry),
                )
            )
        return result

    def _example(self, entry: dict[str, Any]) -> Any:
        if "example" in entry:
            return entry["example"]
        examples = entry.get("examples")
        if not isinstance(examples, dict) or not examples:
            return None
        example = self._deref(examples[sorted(examples)[0]])
        if isinstance(example, dict):
            return example.get("value")
        return None

    # ------------------------------------------------------------------ #
    # Swagger 2.0 enrichment
    # ------------------------------------------------------------------ #

    @staticmethod
    def _enrich(content: list[Media], v2_ref: Optional[str]) -> list[Media]:
        """Replace a bare ``object`` schema of the first media entry with *v2_ref*."""
        if not content or v2_ref is None:
            return content
        first = content[0].schema_
        if first is None or first.is_ref or first.schema_ is None:
            return content
        if first.schema_.type != "object" or first.schema_.properties:
            return content

        replaced = content[0].model_copy(
            update={"schema_": SchemaOrRef(ref=SchemaRef(ref=v2_ref))}
        )
        return [replaced, *content[1:]]

    def _v2_operation(self, path: str, method: HTTPMethod) -> Optional[dict[str, Any]]:
        if self._enrichment is None:
            return None
        op = self._enrichment.operations.get(path, {}).get(method.value)
        return op if isinstance(op, dict) else None

    def _v2_body_ref(self, path: str, method: HTTPMethod) -> Optional[str]:
        op = self._v2_operation(path, method)
        if op is None:
            return None
        params = op.get("parameters")
        if not isinstance(params, list):
            return None
        for param in params:
            if isinstance(param, dict) and param.get("in") == "body":
                return _definition_ref(param.get("schema"))
        return None

    def _v2_response_ref(self, path: str, method: HTTPMethod, status: str) -> Optional[str]:
        op = self._v2_operation(path, method)
        if op is None:
            return None
        responses = op.get("responses")
        if not isinstance(responses, dict):
            return None
        response = responses.get(status)
        if not isinstance(response, dict):
            return None
        return _definition_ref(response.get("schema"))

    # ------------------------------------------------------------------ #
    # References
    # ------------------------------------------------------------------ #

    def _deref(self, node: Any) -> Any:
        """Follow internal ``$ref`` chains; ``None`` when one leads nowhere."""
        seen: set[str] = set()
        while isinstance(node, dict) and isinstance(node.get("$ref"), str):
            ref = node["$ref"]
            if ref in seen or not ref.startswith("#"):
                logger.warning("Skipping unresolvable $ref %s", ref)
                return None
            seen.add(ref)
            target = lookup(self._tree, ref)
            if target is None:
                logger.warning("Skipping unresolved $ref %s", ref)
                return None
            node = target
        return node


def _definition_ref(schema: Any) -> Optional[str]:
    if not isinstance(schema, dict):
        return None
    ref = schema.get("$ref")
    if isinstance(ref, str) and ref.startswith(_DEFINITIONS):
        return _SCHEMAS + ref[len(_DEFINITIONS):]
    return None


def _clean_tags(tags: Any) -> list[str]:
    if not isinstance(tags, list):
        return []
    return [t.strip() for t in tags if isinstance(t, str) and t.strip()]


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()
