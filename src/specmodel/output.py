"""Rendering of pipeline errors and dry-run plans.

Follows the stdout/stderr split of `clig.dev <https://clig.dev/>`_:

* **stdout** -- the dry-run plan, which callers may pipe.
* **stderr** -- errors.

Both go through Rich consoles. Colour is disabled when ``NO_COLOR`` is set
or ``TERM=dumb``. Paths and messages are printed with markup off so square
brackets in them are never read as Rich styles.
"""

from __future__ import annotations

import os
import sys
from typing import Iterable, Optional

from rich.console import Console

from specmodel.exceptions import SpecError, SpecmodelError


def format_error(exc: BaseException) -> str:
    """Format an error for display.

    A :class:`~specmodel.exceptions.SpecError` renders as::

        spec: <message> (<kind>)
        Location: <path or URL>
        Pointer: <#/json/pointer>

    with the last two lines present only when known. Other errors render as
    their message.
    """
    if isinstance(exc, SpecError):
        lines = [f"spec: {exc.message} ({exc.kind.value})"]
        if exc.location:
            lines.append(f"Location: {exc.location}")
        if exc.pointer:
            lines.append(f"Pointer: {exc.pointer}")
        return "\n".join(lines)
    if isinstance(exc, SpecmodelError):
        return exc.message
    return str(exc)


def print_error(exc: BaseException, console: Optional[Console] = None) -> None:
    """Print :func:`format_error` output to stderr, with a bold-red prefix."""
    console = console or _stderr_console()
    console.print("Error:", style="bold red", end=" ")
    console.print(format_error(exc), markup=False, highlight=False)


def print_plan(
    out_dir: str,
    rel_paths: Iterable[str],
    console: Optional[Console] = None,
) -> None:
    """Print the files an emitter would write::

        Planned writes to /abs/out (2 files):
        - go.mod
        - main.go
    """
    console = console or _stdout_console()
    paths = list(rel_paths)
    console.print(
        f"Planned writes to {out_dir} ({len(paths)} files):", markup=False, highlight=False
    )
    for path in paths:
        console.print(f"- {path}", markup=False, highlight=False)


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _stdout_console() -> Console:
    return Console(file=sys.stdout, no_color=_should_disable_color())


def _stderr_console() -> Console:
    return Console(file=sys.stderr, no_color=_should_disable_color(), stderr=True)


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"
