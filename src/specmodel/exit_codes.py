"""Numeric process exit codes for callers that surface :mod:`specmodel` errors.

Each constant maps to one error category and is referenced by the
corresponding :class:`~specmodel.exceptions.SpecmodelError` subclass.
A command-line wrapper can ``sys.exit(exc.exit_code)`` so that CI scripts
can tell a bad input apart from an unreachable server without parsing
stderr.
"""

EXIT_SUCCESS = 0
"""The operation completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid generation options (empty input, overlapping tag filters, unknown language)."""

EXIT_INPUT_ERROR = 3
"""The input string is empty, uses a blocked scheme, or names an unreadable file."""

EXIT_NETWORK_ERROR = 4
"""Every attempt to fetch a remote document failed."""

EXIT_PARSE_ERROR = 5
"""The document is not JSON/YAML or carries no OpenAPI 3 / Swagger 2 marker."""

EXIT_VALIDATION_ERROR = 6
"""The document parsed but violates the OpenAPI rules."""

EXIT_CONVERSION_ERROR = 7
"""A Swagger 2.0 document could not be converted to OpenAPI 3."""

EXIT_EMITTER_ERROR = 10
"""An emitter failed to load or to plan its output."""
