"""Emitter registry -- discovery and lookup by language key.

The entry-point group used for discovery is ``specmodel.emitters``.
Packages providing an emitter declare it in their ``pyproject.toml``::

    [project.entry-points."specmodel.emitters"]
    go = "my_package.emitter:GoEmitter"

The entry-point name is the language key passed as ``GenerateConfig.lang``.
"""

from __future__ import annotations

import importlib.metadata
import logging

from specmodel.emitters.base import Emitter
from specmodel.exceptions import EmitterError, InvalidUsageError

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "specmodel.emitters"
"""The entry-point group name used for emitter discovery."""


class EmitterRegistry:
    """Maps language keys to :class:`~specmodel.emitters.base.Emitter` instances.

    Emitters are either registered directly with :meth:`register` or
    discovered from installed packages with :meth:`discover`. A directly
    registered emitter is never replaced by a discovered one.

    Example:
        Typical usage::

            registry = EmitterRegistry()
            registry.discover()
            emitter = registry.get("go")
    """

    def __init__(self) -> None:
        self._emitters: dict[str, Emitter] = {}
        self._discovered = False

    def discover(self) -> list[str]:
        """Load every emitter registered under the ``specmodel.emitters`` group.

        Returns:
            The language keys that were loaded. Entry points that fail to
            load are logged as warnings and skipped.
        """
        loaded: list[str] = []
        for ep in importlib.metadata.entry_points().select(group=ENTRY_POINT_GROUP):
            name = ep.name.strip().lower()
            if name in self._emitters:
                logger.debug("Emitter '%s' already registered, skipping entry point", name)
                continue
            try:
                emitter_cls = ep.load()
                self.register(emitter_cls(), name=name)
            except Exception as exc:
                logger.warning("Failed to load emitter '%s': %s", name, exc)
                continue
            loaded.append(name)
        self._discovered = True
        return loaded

    def register(self, emitter: Emitter, name: str | None = None) -> None:
        """Register *emitter* under *name* (default: ``emitter.name``).

        Raises:
            EmitterError: If the key is empty or already registered.
        """
        key = (name or emitter.name or "").strip().lower()
        if not key:
            raise EmitterError("Emitter has no name")
        if key in self._emitters:
            raise EmitterError(f"Emitter '{key}' is already registered")
        self._emitters[key] = emitter
        logger.debug("Registered emitter '%s'", key)

    def get(self, lang: str) -> Emitter:
        """Return the emitter for *lang*, discovering entry points on first miss.

        Raises:
            InvalidUsageError: If no emitter handles *lang*.
        """
        key = lang.strip().lower()
        if key not in self._emitters and not self._discovered:
            self.discover()
        try:
            return self._emitters[key]
        except KeyError:
            allowed = ", ".join(self.languages()) or "none installed"
            raise InvalidUsageError(
                f"generate: unsupported lang {lang!r} (allowed: {allowed})"
            ) from None

    def languages(self) -> list[str]:
        """Return the registered language keys, sorted."""
        return sorted(self._emitters)
