"""Resolve ``$ref`` JSON Reference pointers in OpenAPI documents.

OpenAPI documents use ``$ref`` pointers (e.g.,
``{"$ref": "#/components/schemas/Pet"}``) to avoid repetition. The service
model keeps schema references by name, so internal pointers are **not**
inlined; this module instead offers:

* :func:`resolve_pointer` / :func:`lookup` -- follow a single internal
  pointer (RFC 6901 escaping, ``~0`` for ``~`` and ``~1`` for ``/``).
* :func:`find_unresolved_refs` -- list internal pointers that lead nowhere,
  so validation can continue past them deliberately.
* :func:`bundle_external_refs` -- inline every reference that leaves the
  root document (``common.yaml#/Pet``, ``https://.../pet.json``), subject
  to the external-ref policy in :class:`~specmodel.models.LoaderSettings`.

Circular references are detected via a ``seen`` set and left unresolved to
prevent infinite recursion.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Iterator, Optional
from urllib.parse import unquote, urljoin, urlsplit

import httpx

from specmodel.exceptions import ValidationError
from specmodel.models import LoaderSettings
from specmodel.parser.detect import parse_content
from specmodel.parser.fetcher import fetch_url, is_url, read_file

logger = logging.getLogger(__name__)


def escape_token(token: Any) -> str:
    """Escape one JSON Pointer reference token."""
    return str(token).replace("~", "~0").replace("/", "~1")


def to_pointer(parts: list[Any] | tuple[Any, ...]) -> str:
    """Build a ``#/``-prefixed JSON Pointer from path segments."""
    return "#/" + "/".join(escape_token(p) for p in parts)


def split_pointer(ref: str) -> list[str]:
    """Split an internal ``#/...`` pointer into unescaped reference tokens."""
    path_str = unquote(ref[1:]).lstrip("/")
    if not path_str:
        return []
    return [s.replace("~1", "/").replace("~0", "~") for s in path_str.split("/")]


def resolve_pointer(root: Any, ref: str) -> Any:
    """Resolve an internal ``#/...`` pointer against *root*.

    Args:
        root: The document to navigate.
        ref: A pointer such as ``"#/components/schemas/Pet"``. ``"#"`` and
            ``"#/"`` name the whole document.

    Returns:
        The value found at the referenced path.

    Raises:
        ValidationError: If the reference is not internal, or any segment
            in the pointer does not exist in the document.
    """
    if not ref.startswith("#"):
        raise ValidationError(f"Not an internal $ref: {ref}", pointer=ref)

    current: Any = root
    for segment in split_pointer(ref):
        if isinstance(current, dict):
            if segment not in current:
                raise ValidationError(
                    f"Cannot resolve $ref '{ref}': key '{segment}' not found",
                    pointer=ref,
                )
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise ValidationError(
                    f"Cannot resolve $ref '{ref}': invalid array index '{segment}'",
                    pointer=ref,
                    cause=exc,
                ) from exc
        else:
            raise ValidationError(
                f"Cannot resolve $ref '{ref}': cannot navigate into {type(current).__name__}",
                pointer=ref,
            )
    return current


def lookup(root: Any, ref: str) -> Any:
    """Like :func:`resolve_pointer`, but return ``None`` when the pointer leads nowhere."""
    try:
        return resolve_pointer(root, ref)
    except ValidationError:
        return None


def iter_refs(obj: Any, parts: tuple[Any, ...] = ()) -> Iterator[tuple[tuple[Any, ...], str]]:
    """Yield ``(path, ref)`` for every string ``$ref`` in *obj*, depth-first."""
    if isinstance(obj, dict):
        ref = obj.get("$ref")
        if isinstance(ref, str):
            yield parts, ref
        for key, value in obj.items():
            if key != "$ref":
                yield from iter_refs(value, (*parts, key))
    elif isinstance(obj, list):
        for index, item in enumerate(obj):
            yield from iter_refs(item, (*parts, index))


def find_unresolved_refs(tree: dict[str, Any]) -> list[str]:
    """Return the sorted, de-duplicated internal refs of *tree* that do not resolve."""
    missing: set[str] = set()
    for parts, ref in iter_refs(tree):
        if not ref.startswith("#"):
            continue
        try:
            resolve_pointer(tree, ref)
        except ValidationError:
            logger.debug("Unresolved $ref %s at %s", ref, to_pointer(parts))
            missing.add(ref)
    return sorted(missing)


def _deep_resolve(obj: Any, root: dict[str, Any], seen: set[str] | None = None) -> Any:
    """Recursively inline internal ``#/`` pointers of *obj* against *root*.

    External references are left in place for the bundler, and so are
    pointers that do not resolve. A circular pointer is also left in place
    and logged as lost: once inlined into the root it no longer names the
    node it was written for. A **copy** of ``seen`` is created at each
    branch so that parallel sibling references do not interfere with each
    other.
    """
    if seen is None:
        seen = set()

    if isinstance(obj, dict):
        ref = obj.get("$ref")
        if isinstance(ref, str) and ref.startswith("#"):
            if ref in seen:
                # the pointer names a node of the external document, not the root
                logger.warning(
                    "Circular $ref %s in external document cannot be inlined; "
                    "it will not resolve in the bundled document",
                    ref,
                )
                return obj
            try:
                resolved = resolve_pointer(root, ref)
            except ValidationError:
                logger.warning("Leaving unresolved $ref %s in external document", ref)
                return obj
            return _deep_resolve(resolved, root, seen | {ref})
        return {key: _deep_resolve(value, root, seen) for key, value in obj.items()}

    if isinstance(obj, list):
        return [_deep_resolve(item, root, seen) for item in obj]

    return obj


class _Bundler:
    """Inline external references, caching each target document once."""

    def __init__(
        self,
        settings: LoaderSettings,
        root_is_url: bool,
        cancel: Optional[threading.Event],
        transport: Optional[httpx.BaseTransport],
    ) -> None:
        self._settings = settings
        self._root_is_url = root_is_url
        self._cancel = cancel
        self._transport = transport
        self._documents: dict[str, dict[str, Any]] = {}

    def bundle(self, obj: Any, base: str, parts: tuple[Any, ...], stack: frozenset[str]) -> Any:
        if isinstance(obj, dict):
            ref = obj.get("$ref")
            if isinstance(ref, str) and not ref.startswith("#"):
                return self._inline(ref, obj, base, parts, stack)
            return {k: self.bundle(v, base, (*parts, k), stack) for k, v in obj.items()}
        if isinstance(obj, list):
            return [self.bundle(item, base, (*parts, i), stack) for i, item in enumerate(obj)]
        return obj

    def _inline(
        self,
        ref: str,
        node: dict[str, Any],
        base: str,
        parts: tuple[Any, ...],
        stack: frozenset[str],
    ) -> Any:
        target, _, fragment = ref.partition("#")
        location = self._join(base, target)
        if not self._allowed(location):
            raise ValidationError(
                f"External $ref blocked: {ref}",
                location=base,
                pointer=to_pointer(parts),
            )

        key = f"{location}#{fragment}"
        if key in stack:
            return node

        document = self._load(location)
        try:
            value = resolve_pointer(document, "#" + fragment)
        except ValidationError as exc:
            raise ValidationError(
                f"Cannot resolve external $ref '{ref}': {exc}",
                location=location,
                pointer=to_pointer(parts),
                cause=exc,
            ) from exc

        logger.debug("Bundled external $ref %s from %s", ref, location)
        value = _deep_resolve(value, document)
        return self.bundle(value, location, parts, stack | {key})

    def _join(self, base: str, target: str) -> str:
        if is_url(target):
            return target
        if target.startswith("file:"):
            return unquote(urlsplit(target).path)
        if is_url(base):
            return urljoin(base, target)
        return os.path.normpath(os.path.join(os.path.dirname(base), unquote(target)))

    def _allowed(self, location: str) -> bool:
        if self._settings.allow_external_refs:
            return True
        return not self._root_is_url and not is_url(location)

    def _load(self, location: str) -> dict[str, Any]:
        if location not in self._documents:
            if is_url(location):
                data = fetch_url(
                    location, self._settings, cancel=self._cancel, transport=self._transport
                )
            else:
                data = read_file(location)
            self._documents[location] = parse_content(data, location=location)
        return self._documents[location]


def bundle_external_refs(
    tree: dict[str, Any],
    base: str,
    settings: Optional[LoaderSettings] = None,
    root_is_url: bool = False,
    cancel: Optional[threading.Event] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> dict[str, Any]:
    """Inline every ``$ref`` that points outside the root document.

    Internal ``#/...`` pointers of the root are kept. Content pulled from an
    external document has its own internal pointers inlined against that
    document, since they would otherwise point into the wrong tree.

    Args:
        tree: The root document.
        base: Absolute path or URL of the root document; relative refs are
            joined against it.
        settings: External-ref policy and fetch settings.
        root_is_url: Whether *base* was fetched over HTTP. External refs of
            a URL root require ``settings.allow_external_refs``.
        cancel: Cancellation token forwarded to remote fetches.
        transport: Optional httpx transport forwarded to remote fetches.

    Returns:
        A new tree when something was inlined, otherwise *tree* itself.

    Raises:
        ValidationError: A blocked or unresolvable external ref.
        InputError: A referenced file cannot be read.
        NetworkError: A referenced URL cannot be fetched.
        ParseError: A referenced document is not JSON/YAML.
    """
    if not any(not ref.startswith("#") for _, ref in iter_refs(tree)):
        return tree
    bundler = _Bundler(settings or LoaderSettings(), root_is_url, cancel, transport)
    return bundler.bundle(tree, base, (), frozenset())
