"""Canonical Pydantic models shared across all specmodel modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Settings models** -- knobs for the loader, the builder and the generation
pipeline:
    :class:`LoaderSettings`, :class:`BuildOptions`, :class:`GenerateConfig`,
    and :class:`EmitOptions`.

**Document models** -- intermediate artefacts of one pipeline run:
    :class:`SpecVersion`, :class:`RawDocument`, :class:`V2Enrichment`, and
    :class:`ParsedDocument`.

**Service model** -- the terminal, generator-agnostic artefact handed to
emitters:
    :class:`HTTPMethod`, :class:`Server`, :class:`SchemaRef`, :class:`Schema`,
    :class:`SchemaOrRef`, :class:`ParameterModel`, :class:`Media`,
    :class:`RequestBodyModel`, :class:`ResponseModel`, :class:`EndpointModel`,
    and :class:`ServiceModel`.

Service-model classes are frozen: they are built once per run and handed to
emitters as read-only values.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _clean_strings(values: Optional[list[str]]) -> list[str]:
    """Trim entries, drop blanks and duplicates, keep first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values or []:
        trimmed = str(value).strip()
        if not trimmed or trimmed in seen:
            continue
        seen.add(trimmed)
        result.append(trimmed)
    return result


# --- Enumerations ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised on OpenAPI path items.

    Declaration order is the fixed order in which operations of one path
    are processed, so iterating the enum yields GET, POST, PUT, DELETE,
    PATCH, HEAD, OPTIONS, TRACE.
    """

    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"
    PATCH = "patch"
    HEAD = "head"
    OPTIONS = "options"
    TRACE = "trace"


class SpecVersion(int, enum.Enum):
    """Major version family of an input document."""

    SWAGGER_2 = 2
    OPENAPI_3 = 3


# --- Settings ---


class LoaderSettings(BaseModel):
    """Settings for fetching and loading a document.

    Total HTTP attempts are ``max_retries + 1``; the wait before retry *n*
    (0-based) is ``backoff_base * 2 ** n`` seconds.
    """

    http_timeout: float = Field(
        default=10.0, gt=0, description="Per-request HTTP timeout in seconds"
    )
    max_retries: int = Field(
        default=3, ge=0, description="Retries after a transient fetch failure"
    )
    backoff_base: float = Field(
        default=0.2, ge=0, description="Initial backoff delay in seconds"
    )
    allow_external_refs: bool = Field(
        default=False,
        description="Permit $refs leaving a URL-sourced root, and remote refs from a file root",
    )


class BuildOptions(BaseModel):
    """Endpoint filters applied by :func:`~specmodel.builder.build_service_model`.

    Every filter is optional. An empty list means "no restriction". Tag
    include and exclude checks are independent and both applied.
    """

    include_tags: list[str] = Field(default_factory=list)
    exclude_tags: list[str] = Field(default_factory=list)
    methods: list[HTTPMethod] = Field(default_factory=list)
    path_patterns: list[str] = Field(
        default_factory=list, description="Regular expressions searched in the path"
    )

    @field_validator("include_tags", "exclude_tags", "path_patterns", mode="before")
    @classmethod
    def _normalise_strings(cls, value: Any) -> list[str]:
        return _clean_strings(value)

    @field_validator("methods", mode="before")
    @classmethod
    def _normalise_methods(cls, value: Any) -> list[Any]:
        return [
            m.strip().lower() if isinstance(m, str) else m
            for m in (value or [])
        ]


class GenerateConfig(BaseModel):
    """Resolved inputs of one generation run.

    Produced by a command-line or config-file layer and consumed by
    :func:`~specmodel.pipeline.generate`. Strings are trimmed and tag lists
    cleaned on construction; cross-field checks (empty input, overlapping
    tags) are performed by the pipeline so that they surface as
    :class:`~specmodel.exceptions.InvalidUsageError`.
    """

    input: str = ""
    lang: str = "go"
    out: str = ""
    include_tags: list[str] = Field(default_factory=list)
    exclude_tags: list[str] = Field(default_factory=list)
    tool_name: str = ""
    package_name: str = ""
    dry_run: bool = False
    force: bool = False
    verbose: bool = False

    @field_validator("input", "out", "tool_name", "package_name", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("lang", mode="before")
    @classmethod
    def _lang(cls, value: Any) -> str:
        return str(value or "").strip().lower() or "go"

    @field_validator("include_tags", "exclude_tags", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> list[str]:
        if isinstance(value, str):
            value = value.split(",")
        return _clean_strings(value)


class EmitOptions(BaseModel):
    """Options handed to an emitter together with the service model."""

    model_config = ConfigDict(frozen=True)

    out_dir: str
    tool_name: str
    package_name: str = ""
    force: bool = False
    dry_run: bool = False
    verbose: bool = False


class PlannedFile(BaseModel):
    """One file an emitter intends to write, relative to the output directory."""

    model_config = ConfigDict(frozen=True)

    rel_path: str


class EmitResult(BaseModel):
    """Outcome of an emitter run: the planned (or written) files."""

    planned: list[PlannedFile] = Field(default_factory=list)


# --- Documents ---


class RawDocument(BaseModel):
    """Fetched bytes of a document plus where they came from.

    ``version`` is ``None`` until :func:`~specmodel.parser.detect.detect_version`
    has classified the bytes.
    """

    model_config = ConfigDict(frozen=True)

    data: bytes
    location: str = Field(description="Absolute file path or URL")
    is_url: bool = False
    version: Optional[SpecVersion] = None


class V2Enrichment(BaseModel):
    """Original Swagger 2.0 data retained next to a converted document.

    Conversion can lose structural detail, so the builder consults these
    definitions and operations before the converted OpenAPI 3 nodes. The
    value is threaded explicitly through the builder call; nothing is kept
    in a process-wide registry.
    """

    model_config = ConfigDict(frozen=True)

    definitions: dict[str, Any] = Field(
        default_factory=dict, description="v2 ``definitions`` keyed by name"
    )
    operations: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="v2 operation objects keyed by path, then lower-case method",
    )

    @classmethod
    def from_tree(cls, tree: dict[str, Any]) -> V2Enrichment:
        """Collect definitions and operations from a Swagger 2.0 tree."""
        definitions = tree.get("definitions")
        if not isinstance(definitions, dict):
            definitions = {}

        operations: dict[str, dict[str, Any]] = {}
        paths = tree.get("paths")
        if isinstance(paths, dict):
            for path, item in paths.items():
                if not isinstance(item, dict):
                    continue
                ops = {
                    str(method).lower(): op
                    for method, op in item.items()
                    if isinstance(op, dict)
                }
                if ops:
                    operations[str(path)] = ops

        return cls(definitions=definitions, operations=operations)


class ParsedDocument(BaseModel):
    """A loaded, validated OpenAPI 3 document tree.

    ``tree`` is the generic JSON-compatible dict with external refs bundled
    and internal ``$ref`` pointers left in place. ``source_version`` records
    whether the input was Swagger 2.0 (converted) or OpenAPI 3.
    ``unresolved_refs`` lists the pointers that were tolerated by permissive
    validation.
    """

    model_config = ConfigDict(frozen=True)

    tree: dict[str, Any]
    location: str
    source_version: SpecVersion
    openapi_version: str
    enrichment: Optional[V2Enrichment] = None
    unresolved_refs: list[str] = Field(default_factory=list)


# --- Service model ---


class Server(BaseModel):
    """A server entry from the document's ``servers`` array."""

    model_config = ConfigDict(frozen=True)

    url: str
    description: str = ""


class SchemaRef(BaseModel):
    """Named pointer to a schema, e.g. ``#/components/schemas/Pet``."""

    model_config = ConfigDict(frozen=True)

    ref: str

    @property
    def name(self) -> str:
        """The last segment of the pointer (``Pet`` for ``#/components/schemas/Pet``)."""
        return self.ref.rsplit("/", 1)[-1]


class Schema(BaseModel):
    """A concrete schema node.

    Nested schemas are :class:`SchemaOrRef` values, so the tree may refer
    to other named schemas without copying them.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    type: str = ""
    format: str = ""
    description: str = ""
    enum: Optional[list[Any]] = None
    example: Any = None
    required: list[str] = Field(default_factory=list)
    properties: dict[str, SchemaOrRef] = Field(default_factory=dict)
    items: Optional[SchemaOrRef] = None
    all_of: list[SchemaOrRef] = Field(default_factory=list, alias="allOf")
    any_of: list[SchemaOrRef] = Field(default_factory=list, alias="anyOf")
    one_of: list[SchemaOrRef] = Field(default_factory=list, alias="oneOf")


class SchemaOrRef(BaseModel):
    """Either a reference to a named schema or a concrete :class:`Schema`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_: Optional[Schema] = Field(default=None, alias="schema")
    ref: Optional[SchemaRef] = None

    @property
    def is_ref(self) -> bool:
        return self.ref is not None


class ParameterModel(BaseModel):
    """A merged path- or operation-level parameter."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    location: str = Field(alias="in", description="path, query, header or cookie")
    required: bool = False
    description: str = ""
    schema_: Optional[SchemaOrRef] = Field(default=None, alias="schema")


class Media(BaseModel):
    """One media type entry of a request body or response."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mime: str
    schema_: Optional[SchemaOrRef] = Field(default=None, alias="schema")
    example: Any = None


class RequestBodyModel(BaseModel):
    """Request body of an endpoint; ``content`` is sorted by mime type."""

    model_config = ConfigDict(frozen=True)

    required: bool = False
    content: list[Media] = Field(default_factory=list)


class ResponseModel(BaseModel):
    """A response keyed by status code string (``200``, ``4XX``, ``default``)."""

    model_config = ConfigDict(frozen=True)

    status: str
    description: str = ""
    content: list[Media] = Field(default_factory=list)


class EndpointModel(BaseModel):
    """One path + method pair of the API surface.

    ``id`` is ``"<method> <path>"`` (e.g. ``"get /pets"``) and serves as a
    stable lookup key. ``parameters`` are sorted by ``(in, name)`` and
    ``responses`` by status code string.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    method: HTTPMethod
    path: str
    summary: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    parameters: list[ParameterModel] = Field(default_factory=list)
    request_body: Optional[RequestBodyModel] = None
    responses: list[ResponseModel] = Field(default_factory=list)


class ServiceModel(BaseModel):
    """Flattened, generator-agnostic representation of an API surface.

    Endpoints are sorted by path and then by the fixed :class:`HTTPMethod`
    order; ``tags`` holds only the sorted tags of retained endpoints;
    ``schemas`` is keyed by component name in sorted order. Two builds over
    byte-identical input produce identical :meth:`to_json` output.

    See Also:
        :func:`~specmodel.builder.build_service_model`: Builds this model.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    version: str = ""
    description: str = ""
    servers: list[Server] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    endpoints: list[EndpointModel] = Field(default_factory=list)
    schemas: dict[str, Schema] = Field(default_factory=dict)

    def endpoint(self, endpoint_id: str) -> Optional[EndpointModel]:
        """Look up an endpoint by its ``"<method> <path>"`` id."""
        for ep in self.endpoints:
            if ep.id == endpoint_id:
                return ep
        return None

    def to_json(self, indent: int | None = 2) -> str:
        """Serialise to deterministic JSON using field aliases."""
        return self.model_dump_json(by_alias=True, indent=indent)


Schema.model_rebuild()
SchemaOrRef.model_rebuild()
