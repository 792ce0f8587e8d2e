"""Endpoint filtering by HTTP method, path pattern and tags."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from specmodel.models import BuildOptions, HTTPMethod

logger = logging.getLogger(__name__)

# An empty negative lookahead matches nothing, at any position.
_NEVER = re.compile(r"(?!)")


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a path pattern; an invalid one becomes a pattern that never matches."""
    try:
        return re.compile(pattern)
    except re.error as exc:
        logger.warning("Invalid path pattern %r (%s); it will match no paths", pattern, exc)
        return _NEVER


class EndpointFilter:
    """Decides which endpoints are retained.

    Every restriction is optional. When several are configured an endpoint
    must pass all of them:

    * its method is in the method allow-list,
    * at least one path pattern is found in its path (``re.search``),
    * it carries at least one included tag, and
    * it carries no excluded tag.
    """

    def __init__(self, options: Optional[BuildOptions] = None) -> None:
        options = options or BuildOptions()
        self.include_tags = frozenset(options.include_tags)
        self.exclude_tags = frozenset(options.exclude_tags)
        self.methods = frozenset(options.methods)
        self.patterns = [compile_pattern(p) for p in options.path_patterns]

    def allows_method(self, method: HTTPMethod) -> bool:
        return not self.methods or method in self.methods

    def allows_path(self, path: str) -> bool:
        if not self.patterns:
            return True
        return any(p.search(path) for p in self.patterns)

    def allows_tags(self, tags: Iterable[str]) -> bool:
        tag_set = set(tags)
        if self.include_tags and not tag_set & self.include_tags:
            return False
        if self.exclude_tags and tag_set & self.exclude_tags:
            return False
        return True
