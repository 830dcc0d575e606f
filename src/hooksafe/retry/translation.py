"""Translate third-party exceptions into ProcessingError.

This is the only module that knows about httpx and SQLAlchemy exception
hierarchies. The orchestrator passes every processor failure through
translate_error() before classifying it, so the classifier only ever sees
ErrorKind values.

Example:
    ```python
    try:
        await client.post(url, json=body)
    except httpx.HTTPError as e:
        translated = translate_error(e)
        translated.kind  # ErrorKind.UPSTREAM_SERVER for a 503
    ```
"""

from __future__ import annotations

import httpx
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm.exc import StaleDataError

from hooksafe.exceptions import ErrorKind, ProcessingError

from .classifier import kind_of


def _kind_for_status(status_code: int) -> ErrorKind:
    """Map an HTTP response status from an upstream call to an ErrorKind."""
    if status_code == 429:
        return ErrorKind.UPSTREAM_RATE_LIMIT
    if status_code == 408:
        return ErrorKind.TIMEOUT
    if status_code >= 500:
        return ErrorKind.UPSTREAM_SERVER
    if status_code in (401, 403):
        return ErrorKind.UPSTREAM_AUTHENTICATION
    if status_code == 402:
        return ErrorKind.UPSTREAM_DECLINED
    return ErrorKind.UPSTREAM_INVALID_REQUEST


def _third_party_kind(exc: BaseException) -> ErrorKind | None:
    # httpx: TimeoutException is a TransportError, so test it first
    if isinstance(exc, httpx.TimeoutException):
        return ErrorKind.TIMEOUT
    if isinstance(exc, httpx.TransportError):
        return ErrorKind.NETWORK
    if isinstance(exc, httpx.HTTPStatusError):
        return _kind_for_status(exc.response.status_code)

    # SQLAlchemy
    if isinstance(exc, (PoolTimeoutError, OperationalError)):
        return ErrorKind.STORAGE_TIMEOUT
    if isinstance(exc, (IntegrityError, StaleDataError)):
        return ErrorKind.STORAGE_CONFLICT

    return None


def translate_error(exc: BaseException) -> ProcessingError:
    """Express any exception as a ProcessingError with a definite kind.

    Args:
        exc: Exception raised by a processor.

    Returns:
        exc itself if it is already a ProcessingError, otherwise a new
        ProcessingError whose kind reflects the original exception. The new
        error is chained to the original via __cause__.
    """
    if isinstance(exc, ProcessingError):
        return exc

    kind = _third_party_kind(exc)
    if kind is None:
        kind = kind_of(exc)

    translated = ProcessingError(str(exc) or type(exc).__name__, kind)
    translated.__cause__ = exc
    return translated
