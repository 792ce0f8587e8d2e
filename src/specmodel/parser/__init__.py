"""Document parser -- fetch, detect, repair, convert and validate.

This sub-package is responsible for the first half of the specmodel
pipeline: turning an input string (local file or remote URL, OpenAPI 3 or
Swagger 2.0, JSON or YAML) into a validated
:class:`~specmodel.models.ParsedDocument`.

Typical usage::

    from specmodel.parser import load_document

    doc = load_document("https://petstore.swagger.io/v2/swagger.json")

Sub-modules:

* :mod:`~specmodel.parser.fetcher` -- URL/path classification and HTTP
  retry with backoff.
* :mod:`~specmodel.parser.detect` -- permissive JSON/YAML parsing and
  version detection.
* :mod:`~specmodel.parser.v2compat` -- rewrites of multi-body and mixed
  body/formData Swagger 2.0 operations.
* :mod:`~specmodel.parser.converter` -- Swagger 2.0 to OpenAPI 3.0.
* :mod:`~specmodel.parser.resolver` -- ``$ref`` lookup and external-ref
  bundling.
* :mod:`~specmodel.parser.validator` -- OpenAPI validation with permissive
  continuation past unresolved refs.
* :mod:`~specmodel.parser.loader` -- the stages above, in order.
"""

from specmodel.parser.converter import convert_v2_to_v3
from specmodel.parser.detect import detect_version, parse_content
from specmodel.parser.fetcher import fetch_document
from specmodel.parser.loader import load_document, load_raw_document
from specmodel.parser.v2compat import preprocess_v2_for_compatibility
from specmodel.parser.validator import validate_document

__all__ = [
    "convert_v2_to_v3",
    "detect_version",
    "fetch_document",
    "load_document",
    "load_raw_document",
    "parse_content",
    "preprocess_v2_for_compatibility",
    "validate_document",
]
