"""Exception hierarchy for specmodel.

All exceptions inherit from :class:`SpecmodelError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specmodel.exit_codes`.

Failures of the document pipeline are :class:`SpecError` instances. Each one
carries an :class:`ErrorKind`, a human-readable message, the location (file
path or URL) that triggered it, an optional JSON-Pointer-style locator such
as ``#/paths/~1pets/get`` and the underlying cause.

Subclass hierarchy::

    SpecmodelError            (exit 1)
    +-- SpecError
    |   +-- InputError        (exit 3)
    |   +-- NetworkError      (exit 4)
    |   +-- ParseError        (exit 5)
    |   +-- ValidationError   (exit 6)
    |   +-- ConversionError   (exit 7)
    +-- InvalidUsageError     (exit 2)
    +-- EmitterError          (exit 10)
"""

from __future__ import annotations

import enum
from typing import Optional

from specmodel.exit_codes import (
    EXIT_CONVERSION_ERROR,
    EXIT_EMITTER_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INPUT_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_NETWORK_ERROR,
    EXIT_PARSE_ERROR,
    EXIT_VALIDATION_ERROR,
)


class ErrorKind(str, enum.Enum):
    """Category of a :class:`SpecError`."""

    INPUT = "InputError"
    NETWORK = "NetworkError"
    PARSE = "ParseError"
    VALIDATION = "ValidationError"
    CONVERSION = "ConversionError"


class SpecmodelError(Exception):
    """Base exception for all specmodel errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class SpecError(SpecmodelError):
    """Structured failure raised while fetching, parsing, converting or validating a document.

    Subclasses fix :attr:`kind`; code that only needs the category can
    catch ``SpecError`` and switch on ``exc.kind``.

    Args:
        message: Human-readable error description.
        location: File path or URL of the document being processed.
        pointer: JSON-Pointer-style locator of the offending node, when known.
        cause: The underlying exception, also chained via ``raise ... from``.
    """

    kind: ErrorKind = ErrorKind.PARSE

    def __init__(
        self,
        message: str,
        location: Optional[str] = None,
        pointer: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.location = location
        self.pointer = pointer
        self.cause = cause

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"location={self.location!r}, pointer={self.pointer!r})"
        )


class InputError(SpecError):
    """Raised for an empty input, a blocked URL scheme, or an unreadable local file."""

    kind = ErrorKind.INPUT
    exit_code = EXIT_INPUT_ERROR


class NetworkError(SpecError):
    """Raised when a remote document cannot be fetched (retries exhausted, 4xx, cancelled)."""

    kind = ErrorKind.NETWORK
    exit_code = EXIT_NETWORK_ERROR


class ParseError(SpecError):
    """Raised when the raw bytes are not JSON/YAML or carry no known version marker."""

    kind = ErrorKind.PARSE
    exit_code = EXIT_PARSE_ERROR


class ValidationError(SpecError):
    """Raised when a parsed OpenAPI 3 document violates the OpenAPI rules."""

    kind = ErrorKind.VALIDATION
    exit_code = EXIT_VALIDATION_ERROR


class ConversionError(SpecError):
    """Raised when a Swagger 2.0 document cannot be converted, or a model cannot be built."""

    kind = ErrorKind.CONVERSION
    exit_code = EXIT_CONVERSION_ERROR


class InvalidUsageError(SpecmodelError):
    """Raised for invalid generation options."""

    exit_code = EXIT_INVALID_USAGE


class EmitterError(SpecmodelError):
    """Raised when an emitter cannot be found, loaded, or fails while planning output."""

    exit_code = EXIT_EMITTER_ERROR
