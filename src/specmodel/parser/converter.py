"""Convert Swagger 2.0 documents into OpenAPI 3.0 structure.

The conversion works on generic dict trees and returns a new tree declaring
``openapi: "3.0.3"``. The mapping follows the OpenAPI 3 migration rules:

* ``host`` / ``basePath`` / ``schemes`` become ``servers``.
* ``definitions``, global ``parameters``, ``responses`` and
  ``securityDefinitions`` move under ``components``. Global body parameters
  become ``components.requestBodies``.
* ``in: body`` and ``in: formData`` parameters become a ``requestBody``
  whose media types come from ``consumes``.
* Response ``schema`` becomes ``content`` keyed by the ``produces`` types.
* Schema ``$ref``s are rewritten from ``#/definitions/X`` to
  ``#/components/schemas/X``; ``type: file`` becomes a binary string and
  ``x-nullable`` becomes ``nullable``.

Operations carrying more than one body parameter, or body mixed with
formData, are rejected with :class:`~specmodel.exceptions.ConversionError`;
:mod:`specmodel.parser.v2compat` rewrites those before conversion.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional

from specmodel.exceptions import ConversionError
from specmodel.parser.resolver import to_pointer

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.3"

_METHODS = ("get", "put", "post", "delete", "options", "head", "patch")
_JSON = "application/json"
_MULTIPART = "multipart/form-data"
_URLENCODED = "application/x-www-form-urlencoded"

# Keys of a v2 non-body parameter (or items object) that describe its value.
_SCHEMA_KEYS = (
    "type",
    "format",
    "items",
    "enum",
    "default",
    "maximum",
    "exclusiveMaximum",
    "minimum",
    "exclusiveMinimum",
    "maxLength",
    "minLength",
    "pattern",
    "maxItems",
    "minItems",
    "uniqueItems",
    "multipleOf",
)

_REF_PREFIXES = (
    ("#/definitions/", "#/components/schemas/"),
    ("#/parameters/", "#/components/parameters/"),
    ("#/responses/", "#/components/responses/"),
)

_OAUTH2_FLOWS = {
    "implicit": ("implicit", ("authorizationUrl",)),
    "password": ("password", ("tokenUrl",)),
    "application": ("clientCredentials", ("tokenUrl",)),
    "accessCode": ("authorizationCode", ("authorizationUrl", "tokenUrl")),
}


def convert_v2_to_v3(v2: dict[str, Any]) -> dict[str, Any]:
    """Convert a Swagger 2.0 tree to an OpenAPI 3.0 tree.

    Args:
        v2: The (possibly preprocessed) Swagger 2.0 document.

    Returns:
        A new OpenAPI 3.0.3 document. The input is not modified.

    Raises:
        ConversionError: If the document lacks an ``info`` object, has a
            malformed ``paths`` object, or an operation has more than one
            body parameter or mixes body and formData parameters.
    """
    return _V2Converter(v2).convert()


def rewrite_ref(ref: str) -> str:
    """Map a v2 internal pointer to its OpenAPI 3 location."""
    for old, new in _REF_PREFIXES:
        if ref.startswith(old):
            return new + ref[len(old):]
    return ref


def _extensions(node: dict[str, Any]) -> dict[str, Any]:
    return {k: copy.deepcopy(v) for k, v in node.items() if str(k).startswith("x-")}


class _V2Converter:
    """Stateful helper holding the document-wide defaults of one conversion."""

    def __init__(self, v2: dict[str, Any]) -> None:
        self._v2 = v2
        self._consumes = self._media_list(v2.get("consumes"))
        self._produces = self._media_list(v2.get("produces"))
        params = v2.get("parameters")
        self._global_params: dict[str, Any] = params if isinstance(params, dict) else {}

    # ------------------------------------------------------------------ #
    # Document
    # ------------------------------------------------------------------ #

    def convert(self) -> dict[str, Any]:
        info = self._v2.get("info")
        if not isinstance(info, dict):
            raise ConversionError("Swagger document has no 'info' object", pointer="#/info")

        paths = self._v2.get("paths", {})
        if paths is None:
            paths = {}
        if not isinstance(paths, dict):
            raise ConversionError("'paths' must be an object", pointer="#/paths")

        out: dict[str, Any] = {"openapi": OPENAPI_VERSION, "info": copy.deepcopy(info)}

        servers = self._servers()
        if servers:
            out["servers"] = servers

        for key in ("tags", "security", "externalDocs"):
            if key in self._v2:
                out[key] = copy.deepcopy(self._v2[key])

        out["paths"] = {}
        for path, item in paths.items():
            if str(path).startswith("x-"):
                out["paths"][path] = copy.deepcopy(item)
            elif isinstance(item, dict):
                out["paths"][path] = self._path_item(path, item)

        components = self._components()
        if components:
            out["components"] = components

        out.update(_extensions(self._v2))
        logger.info("Converted Swagger 2.0 document to OpenAPI %s", OPENAPI_VERSION)
        return out

    def _servers(self) -> list[dict[str, Any]]:
        host = self._v2.get("host")
        base_path = self._v2.get("basePath")
        host = host.strip() if isinstance(host, str) else ""
        base_path = base_path.strip() if isinstance(base_path, str) else ""
        if base_path == "/":
            base_path = ""

        if host:
            schemes = self._v2.get("schemes")
            if not isinstance(schemes, list) or not schemes:
                schemes = ["https"]
            return [{"url": f"{scheme}://{host}{base_path}"} for scheme in schemes]
        if base_path:
            return [{"url": base_path}]
        return []

    def _components(self) -> dict[str, Any]:
        components: dict[str, Any] = {}

        definitions = self._v2.get("definitions")
        if isinstance(definitions, dict) and definitions:
            components["schemas"] = {
                name: self._schema(schema) for name, schema in definitions.items()
            }

        parameters: dict[str, Any] = {}
        request_bodies: dict[str, Any] = {}
        for name, param in self._global_params.items():
            if not isinstance(param, dict):
                continue
            location = str(param.get("in", "")).lower()
            if location == "body":
                request_bodies[name] = self._body(param, self._consumes or [_JSON])
            elif location == "formdata":
                request_bodies[name] = self._form_body([param], self._consumes)
            else:
                parameters[name] = self._parameter(param)
        if parameters:
            components["parameters"] = parameters
        if request_bodies:
            components["requestBodies"] = request_bodies

        responses = self._v2.get("responses")
        if isinstance(responses, dict) and responses:
            components["responses"] = {
                name: self._response(resp, self._produces or [_JSON])
                for name, resp in responses.items()
                if isinstance(resp, dict)
            }

        security = self._v2.get("securityDefinitions")
        if isinstance(security, dict) and security:
            components["securitySchemes"] = {
                name: self._security_scheme(scheme)
                for name, scheme in security.items()
                if isinstance(scheme, dict)
            }

        return components

    # ------------------------------------------------------------------ #
    # Paths and operations
    # ------------------------------------------------------------------ #

    def _path_item(self, path: str, item: dict[str, Any]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if isinstance(item.get("$ref"), str):
            out["$ref"] = rewrite_ref(item["$ref"])

        path_params = item.get("parameters")
        path_params = path_params if isinstance(path_params, list) else []
        shared_body = [p for p in path_params if self._location(p) in ("body", "formdata")]
        plain = [p for p in path_params if self._location(p) not in ("body", "formdata")]
        if plain:
            out["parameters"] = [self._parameter(p) for p in plain]

        for method in _METHODS:
            op = item.get(method)
            if isinstance(op, dict):
                out[method] = self._operation(path, method, op, shared_body)

        out.update(_extensions(item))
        return out

    def _operation(
        self,
        path: str,
        method: str,
        op: dict[str, Any],
        shared_body: list[Any],
    ) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key in ("tags", "summary", "description", "externalDocs", "operationId", "security"):
            if key in op:
                out[key] = copy.deepcopy(op[key])
        if op.get("deprecated") is True:
            out["deprecated"] = True

        op_params = op.get("parameters")
        op_params = op_params if isinstance(op_params, list) else []
        overridden = {self._key(p) for p in op_params}
        params = [p for p in shared_body if self._key(p) not in overridden] + op_params

        plain: list[dict[str, Any]] = []
        bodies: list[dict[str, Any]] = []
        forms: list[dict[str, Any]] = []
        body_refs: list[str] = []
        for param in params:
            if not isinstance(param, dict):
                continue
            ref = param.get("$ref")
            if isinstance(ref, str):
                target = self._global_param(ref)
                location = self._location(target) if target is not None else ""
                if location == "body":
                    body_refs.append(ref)
                    bodies.append(target)
                elif location == "formdata":
                    forms.append(target)
                else:
                    plain.append({"$ref": rewrite_ref(ref)})
                continue
            location = self._location(param)
            if location == "body":
                bodies.append(param)
            elif location == "formdata":
                forms.append(param)
            else:
                plain.append(self._parameter(param))

        pointer = to_pointer(("paths", path, method, "parameters"))
        if len(bodies) > 1:
            raise ConversionError(
                f"{method.upper()} {path}: multiple body parameters cannot exist "
                "for the same operation",
                pointer=pointer,
            )
        if bodies and forms:
            raise ConversionError(
                f"{method.upper()} {path}: body and formData parameters cannot be mixed",
                pointer=pointer,
            )

        if plain:
            out["parameters"] = plain

        consumes = self._media_list(op.get("consumes")) or self._consumes
        if bodies and body_refs:
            name = body_refs[0].rsplit("/", 1)[-1]
            out["requestBody"] = {"$ref": f"#/components/requestBodies/{name}"}
        elif bodies:
            out["requestBody"] = self._body(bodies[0], consumes or [_JSON])
        elif forms:
            out["requestBody"] = self._form_body(forms, consumes)

        produces = self._media_list(op.get("produces")) or self._produces or [_JSON]
        responses = op.get("responses")
        if isinstance(responses, dict):
            out["responses"] = {
                str(code): (
                    copy.deepcopy(resp)
                    if str(code).startswith("x-")
                    else self._response(resp, produces)
                )
                for code, resp in responses.items()
                if isinstance(resp, dict) or str(code).startswith("x-")
            }

        schemes = op.get("schemes")
        if isinstance(schemes, list) and schemes:
            host = self._v2.get("host") or ""
            base_path = self._v2.get("basePath") or ""
            out["servers"] = [
                {"url": f"{scheme}://{host}{base_path}" if host else base_path or "/"}
                for scheme in schemes
            ]

        out.update(_extensions(op))
        return out

    def _global_param(self, ref: str) -> Optional[dict[str, Any]]:
        if not ref.startswith("#/parameters/"):
            return None
        name = ref[len("#/parameters/"):].replace("~1", "/").replace("~0", "~")
        target = self._global_params.get(name)
        return target if isinstance(target, dict) else None

    # ------------------------------------------------------------------ #
    # Parameters and bodies
    # ------------------------------------------------------------------ #

    def _parameter(self, param: Any) -> dict[str, Any]:
        if not isinstance(param, dict):
            return {}
        if isinstance(param.get("$ref"), str):
            return {"$ref": rewrite_ref(param["$ref"])}

        location = param.get("in")
        out: dict[str, Any] = {"name": param.get("name", ""), "in": location}
        if "description" in param:
            out["description"] = param["description"]
        if location == "path":
            out["required"] = True
        elif "required" in param:
            out["required"] = bool(param["required"])
        if location == "query" and param.get("allowEmptyValue") is True:
            out["allowEmptyValue"] = True

        style = self._style(param.get("collectionFormat"), location)
        if style:
            out.update(style)
        if "x-example" in param:
            out["example"] = copy.deepcopy(param["x-example"])

        out["schema"] = self._value_schema(param)
        out.update({k: v for k, v in _extensions(param).items() if k != "x-example"})
        return out

    def _value_schema(self, node: dict[str, Any]) -> dict[str, Any]:
        """Build a schema from the value keywords of a parameter, header or items object."""
        schema: dict[str, Any] = {}
        for key in _SCHEMA_KEYS:
            if key not in node:
                continue
            if key == "items" and isinstance(node["items"], dict):
                schema["items"] = self._value_schema(node["items"])
            else:
                schema[key] = copy.deepcopy(node[key])
        if schema.get("type") == "file":
            schema["type"] = "string"
            schema["format"] = "binary"
        return schema

    @staticmethod
    def _style(collection_format: Any, location: Any) -> dict[str, Any]:
        if collection_format == "csv":
            if location in ("query", "cookie"):
                return {"style": "form", "explode": False}
            return {"style": "simple"}
        if collection_format == "multi":
            return {"style": "form", "explode": True}
        if collection_format == "ssv":
            return {"style": "spaceDelimited"}
        if collection_format == "pipes":
            return {"style": "pipeDelimited"}
        return {}

    def _body(self, param: dict[str, Any], media_types: list[str]) -> dict[str, Any]:
        schema = self._schema(param.get("schema", {}))
        out: dict[str, Any] = {
            "content": {mt: {"schema": copy.deepcopy(schema)} for mt in media_types}
        }
        if param.get("description"):
            out["description"] = param["description"]
        if param.get("required") is True:
            out["required"] = True
        out.update(_extensions(param))
        return out

    def _form_body(self, params: list[dict[str, Any]], consumes: list[str]) -> dict[str, Any]:
        properties: dict[str, Any] = {}
        required: list[str] = []
        has_file = False
        for param in params:
            name = str(param.get("name", ""))
            prop = self._value_schema(param)
            if param.get("type") == "file":
                has_file = True
            if param.get("description"):
                prop["description"] = param["description"]
            properties[name] = prop
            if param.get("required") is True:
                required.append(name)

        schema: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required

        media_types = [c for c in consumes if c in (_MULTIPART, _URLENCODED)]
        if not media_types:
            media_types = [_MULTIPART if has_file else _URLENCODED]

        out: dict[str, Any] = {
            "content": {mt: {"schema": copy.deepcopy(schema)} for mt in media_types}
        }
        if required:
            out["required"] = True
        return out

    # ------------------------------------------------------------------ #
    # Responses, schemas, security
    # ------------------------------------------------------------------ #

    def _response(self, resp: dict[str, Any], produces: list[str]) -> dict[str, Any]:
        if isinstance(resp.get("$ref"), str):
            return {"$ref": rewrite_ref(resp["$ref"])}

        out: dict[str, Any] = {"description": resp.get("description") or ""}

        content: dict[str, Any] = {}
        if "schema" in resp:
            schema = self._schema(resp["schema"])
            content = {mt: {"schema": copy.deepcopy(schema)} for mt in produces}
        examples = resp.get("examples")
        if isinstance(examples, dict):
            for mime, example in examples.items():
                content.setdefault(mime, {})["example"] = copy.deepcopy(example)
        if content:
            out["content"] = content

        headers = resp.get("headers")
        if isinstance(headers, dict) and headers:
            out["headers"] = {
                name: self._header(header)
                for name, header in headers.items()
                if isinstance(header, dict)
            }

        out.update(_extensions(resp))
        return out

    def _header(self, header: dict[str, Any]) -> dict[str, Any]:
        out: dict[str, Any] = {"schema": self._value_schema(header)}
        if header.get("description"):
            out["description"] = header["description"]
        return out

    def _schema(self, node: Any) -> Any:
        if isinstance(node, list):
            return [self._schema(item) for item in node]
        if not isinstance(node, dict):
            return copy.deepcopy(node)

        if isinstance(node.get("$ref"), str):
            return {"$ref": rewrite_ref(node["$ref"])}

        out: dict[str, Any] = {}
        for key, value in node.items():
            if key in ("properties", "patternProperties") and isinstance(value, dict):
                out[key] = {name: self._schema(sub) for name, sub in value.items()}
            elif key in ("items", "additionalProperties", "not", "allOf", "anyOf", "oneOf"):
                out[key] = self._schema(value)
            elif key == "x-nullable":
                out["nullable"] = bool(value)
            elif key == "discriminator" and isinstance(value, str):
                out["discriminator"] = {"propertyName": value}
            else:
                out[key] = copy.deepcopy(value)

        if node.get("type") == "file":
            out["type"] = "string"
            out["format"] = "binary"
        return out

    @staticmethod
    def _security_scheme(scheme: dict[str, Any]) -> dict[str, Any]:
        kind = scheme.get("type")
        if kind == "basic":
            out: dict[str, Any] = {"type": "http", "scheme": "basic"}
        elif kind == "oauth2":
            flow_name, url_keys = _OAUTH2_FLOWS.get(
                str(scheme.get("flow")), ("implicit", ("authorizationUrl",))
            )
            flow: dict[str, Any] = {k: scheme.get(k, "") for k in url_keys}
            flow["scopes"] = copy.deepcopy(scheme.get("scopes") or {})
            out = {"type": "oauth2", "flows": {flow_name: flow}}
        else:
            out = {k: copy.deepcopy(v) for k, v in scheme.items() if not str(k).startswith("x-")}
        if scheme.get("description") and "description" not in out:
            out["description"] = scheme["description"]
        out.update(_extensions(scheme))
        return out

    # ------------------------------------------------------------------ #
    # Small helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _media_list(value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, str) and v]

    @staticmethod
    def _location(param: Any) -> str:
        if not isinstance(param, dict):
            return ""
        return str(param.get("in", "")).lower()

    @staticmethod
    def _key(param: Any) -> tuple[str, str]:
        if not isinstance(param, dict):
            return ("", "")
        return (str(param.get("in", "")).lower(), str(param.get("name", "")))
