"""End-to-end generation: load a document, build the service model, emit.

:func:`generate` is what a command-line layer calls once it has resolved
its flags and config file into a :class:`~specmodel.models.GenerateConfig`.
Errors propagate unchanged as :class:`~specmodel.exceptions.SpecmodelError`
subclasses, whose ``exit_code`` the caller can return.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from typing import Optional

import httpx
from rich.console import Console

from specmodel.builder import build_service_model
from specmodel.emitters import EmitterRegistry
from specmodel.exceptions import EmitterError, InvalidUsageError, SpecmodelError
from specmodel.models import (
    BuildOptions,
    EmitOptions,
    EmitResult,
    GenerateConfig,
    LoaderSettings,
    ServiceModel,
)
from specmodel.output import print_plan
from specmodel.parser import load_document

logger = logging.getLogger(__name__)

DEFAULT_TOOL_NAME = "mcp-tool"

_TITLE_SEPARATORS = re.compile(r"[/_.,:]")
_INVALID_TOOL_CHARS = re.compile(r"[^a-z0-9_-]")


def derive_tool_name(title: str) -> str:
    """Derive a tool name from an API title.

    The title is lower-cased, ``/ _ . , :`` become spaces and the
    remaining words are joined with ``-`` (``"Pet Store: v1.2"`` becomes
    ``"pet-store-v1-2"``). Returns ``""`` for a blank title.
    """
    words = _TITLE_SEPARATORS.sub(" ", (title or "").strip().lower()).split()
    return "-".join(words)


def sanitize_tool_name(name: str) -> str:
    """Reduce an explicit tool name to ``[a-z0-9_-]``, trimming outer dashes."""
    name = (name or "").strip().replace(" ", "-").replace("/", "-").lower()
    return _INVALID_TOOL_CHARS.sub("", name).strip("-")


def resolve_tool_name(config: GenerateConfig, model: ServiceModel) -> str:
    """Pick the tool name: the sanitised override, else derived from the title."""
    if config.tool_name:
        name = sanitize_tool_name(config.tool_name)
    else:
        name = derive_tool_name(model.title)
    return name or DEFAULT_TOOL_NAME


def check_config(config: GenerateConfig) -> None:
    """Reject configurations the pipeline cannot run.

    Raises:
        InvalidUsageError: If ``input`` is empty or a tag is both
            included and excluded.
    """
    if not config.input:
        raise InvalidUsageError("generate: input is required (set via flag or config file)")
    excluded = set(config.exclude_tags)
    overlap = [tag for tag in config.include_tags if tag in excluded]
    if overlap:
        raise InvalidUsageError(
            f"generate: include/exclude tags overlap: {', '.join(overlap)}"
        )


def generate(
    config: GenerateConfig,
    registry: Optional[EmitterRegistry] = None,
    settings: Optional[LoaderSettings] = None,
    cancel: Optional[threading.Event] = None,
    transport: Optional[httpx.BaseTransport] = None,
    console: Optional[Console] = None,
) -> EmitResult:
    """Run one generation.

    Args:
        config: The resolved generation options.
        registry: Where to find the emitter for ``config.lang``. A fresh
            registry (entry-point discovery) is used when omitted.
        settings: Fetch and external-ref settings.
        cancel: Cancellation token observed while fetching.
        transport: Optional httpx transport for remote fetches.
        console: Console for the dry-run plan; stdout by default.

    Returns:
        The emitter's result.

    Raises:
        InvalidUsageError: Bad configuration or unknown language.
        SpecError: The document could not be loaded (see
            :func:`~specmodel.parser.load_document`).
        EmitterError: The emitter failed.
    """
    check_config(config)
    registry = registry or EmitterRegistry()
    emitter = registry.get(config.lang)

    document = load_document(config.input, settings, cancel=cancel, transport=transport)
    model = build_service_model(
        document,
        BuildOptions(include_tags=config.include_tags, exclude_tags=config.exclude_tags),
    )

    tool_name = resolve_tool_name(config, model)
    out_dir = config.out or tool_name
    abs_out = os.path.abspath(out_dir)
    options = EmitOptions(
        out_dir=out_dir,
        tool_name=tool_name,
        package_name=config.package_name,
        force=config.force,
        dry_run=config.dry_run,
        verbose=config.verbose,
    )
    logger.debug("Emitting %s project %r to %s", config.lang, tool_name, abs_out)

    try:
        result = emitter.emit(model, options)
    except SpecmodelError:
        raise
    except OSError as exc:
        raise EmitterError(
            f"output error for {abs_out}: {exc}\n"
            "Hint: choose a different output directory or use force when appropriate."
        ) from exc
    except Exception as exc:
        raise EmitterError(f"Emitter '{config.lang}' failed: {exc}") from exc

    if config.dry_run:
        print_plan(abs_out, [p.rel_path for p in result.planned], console=console)
    return result
