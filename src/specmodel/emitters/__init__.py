"""Emitter interface and discovery.

Emitters render a :class:`~specmodel.models.ServiceModel` for one target
language. They are external collaborators, registered under the
``specmodel.emitters`` entry-point group.
"""

from specmodel.emitters.base import Emitter
from specmodel.emitters.registry import ENTRY_POINT_GROUP, EmitterRegistry

__all__ = ["ENTRY_POINT_GROUP", "Emitter", "EmitterRegistry"]
