"""Resolve an input string to raw document bytes.

An input is either an ``http``/``https`` URL or a local filesystem path.
``file://`` URLs and every other scheme are rejected outright as
:class:`~specmodel.exceptions.InputError`, whether or not the target exists.

Remote documents are fetched with :mod:`httpx` and retried with exponential
backoff on network errors, HTTP 5xx and HTTP 429. Other 4xx responses fail
immediately. A caller-supplied :class:`threading.Event` cancels the fetch
cooperatively: it is checked before each request and waited on during
backoff.

The public functions are:

* :func:`fetch_document` -- classify the input and return a
  :class:`~specmodel.models.RawDocument`.
* :func:`fetch_url` -- GET with retry; also used for remote ``$ref`` targets.
* :func:`read_file` -- read a local file.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Optional
from urllib.parse import urlsplit

import httpx

from specmodel.exceptions import InputError, NetworkError
from specmodel.models import LoaderSettings, RawDocument

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset({"http", "https"})


def is_url(source: str) -> bool:
    """Return True when *source* has both a scheme and a host."""
    parts = urlsplit(source)
    return bool(parts.scheme) and bool(parts.netloc)


def fetch_document(
    source: str,
    settings: Optional[LoaderSettings] = None,
    cancel: Optional[threading.Event] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> RawDocument:
    """Fetch the document named by *source*.

    Args:
        source: An ``http``/``https`` URL or a filesystem path (absolute or
            relative to the working directory).
        settings: Timeout and retry settings. Defaults to
            :class:`~specmodel.models.LoaderSettings`.
        cancel: Optional cancellation token for remote fetches.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`.

    Returns:
        The raw bytes plus the resolved location (absolute path or URL).

    Raises:
        InputError: Empty input, blocked scheme, or unreadable file.
        NetworkError: The remote document could not be fetched.
    """
    source = (source or "").strip()
    if not source:
        raise InputError("Input is empty")

    settings = settings or LoaderSettings()
    scheme = urlsplit(source).scheme.lower()

    if scheme == "file":
        raise InputError("file:// URLs are blocked", location=source)

    if is_url(source):
        if scheme not in _ALLOWED_SCHEMES:
            raise InputError(
                f"Unsupported URL scheme {scheme!r} (only http/https allowed)",
                location=source,
            )
        data = fetch_url(source, settings, cancel=cancel, transport=transport)
        return RawDocument(data=data, location=source, is_url=True)

    path = os.path.abspath(os.path.expanduser(source))
    return RawDocument(data=read_file(path), location=path, is_url=False)


def read_file(path: str) -> bytes:
    """Read a local file.

    Raises:
        InputError: If the file does not exist or cannot be read.
    """
    try:
        with open(path, "rb") as fh:
            return fh.read()
    except OSError as exc:
        raise InputError(
            f"Failed to read file {path}: {exc.strerror or exc}",
            location=path,
            cause=exc,
        ) from exc


def fetch_url(
    url: str,
    settings: LoaderSettings,
    cancel: Optional[threading.Event] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> bytes:
    """GET *url* with exponential-backoff retry.

    Retries on transport errors (connect, timeout, protocol), HTTP 5xx and
    HTTP 429 up to ``settings.max_retries`` times. The delay doubles each
    attempt starting at ``settings.backoff_base``.

    Raises:
        InputError: If httpx rejects the URL itself.
        NetworkError: On a non-retryable status, when retries are
            exhausted, or when *cancel* is set.
    """
    cancel = cancel or threading.Event()
    attempts = settings.max_retries + 1
    last_error: Exception | None = None
    reason = ""

    with httpx.Client(
        timeout=settings.http_timeout,
        follow_redirects=True,
        transport=transport,
    ) as client:
        for attempt in range(attempts):
            if cancel.is_set():
                raise NetworkError(f"Fetch of {url} cancelled", location=url)

            logger.debug("GET %s (attempt %d/%d)", url, attempt + 1, attempts)
            try:
                response = client.get(url)
            except httpx.InvalidURL as exc:
                raise InputError(f"Invalid URL {url}: {exc}", location=url, cause=exc) from exc
            except httpx.TransportError as exc:
                last_error = exc
                reason = f"{type(exc).__name__}: {exc}"
            else:
                status = response.status_code
                if status < 300:
                    return response.content
                if status >= 500 or status == 429:
                    last_error = None
                    reason = f"transient HTTP {status}"
                else:
                    message = f"HTTP {status} fetching {url}"
                    body = response.text[:1024].strip()
                    if body:
                        message += f": {body}"
                    raise NetworkError(message, location=url)

            if attempt < settings.max_retries:
                delay = settings.backoff_base * 2 ** attempt
                logger.warning(
                    "Fetch of %s failed (%s), retrying in %.2fs (attempt %d/%d)",
                    url, reason, delay, attempt + 1, settings.max_retries,
                )
                if cancel.wait(delay):
                    raise NetworkError(f"Fetch of {url} cancelled", location=url)

    raise NetworkError(
        f"Failed to fetch {url} after {attempts} attempts: {reason}",
        location=url,
        cause=last_error,
    ) from last_error
