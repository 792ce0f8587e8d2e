"""Abstract base class for specmodel emitters.

An emitter turns a finished :class:`~specmodel.models.ServiceModel` into a
project for one target language. Emitters live outside this package: they
are registered as entry points in the ``specmodel.emitters`` group and
discovered at runtime by :class:`~specmodel.emitters.registry.EmitterRegistry`.

Example:
    Minimal emitter implementation::

        class GoEmitter(Emitter):
            @property
            def name(self) -> str:
                return "go"

            def emit(self, model, options):
                planned = [PlannedFile(rel_path="go.mod"), PlannedFile(rel_path="main.go")]
                if not options.dry_run:
                    ...  # write the files under options.out_dir
                return EmitResult(planned=planned)
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from specmodel.models import EmitOptions, EmitResult, ServiceModel


class Emitter(ABC):
    """Base class for all emitters.

    Subclasses implement :attr:`name` and :meth:`emit`. The service model is
    immutable; emitters read it and never modify it.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the language key the emitter is selected by (e.g. ``"go"``)."""
        ...

    @property
    def description(self) -> str:
        """Return a one-line description. Defaults to ``""``."""
        return ""

    @abstractmethod
    def emit(self, model: ServiceModel, options: EmitOptions) -> EmitResult:
        """Generate output for *model*.

        With ``options.dry_run`` set, the emitter only plans: it returns the
        files it would write and touches nothing on disk.

        Args:
            model: The service model to render.
            options: Output directory, names and write flags.

        Returns:
            The planned (or written) files, relative to ``options.out_dir``.
        """
        ...
