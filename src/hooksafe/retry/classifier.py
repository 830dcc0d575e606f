"""Error classification for processing failures.

Decides whether a failed processing attempt is worth retrying. The decision
is made over the closed ErrorKind set only; mapping third-party exceptions
onto that set happens earlier, in hooksafe.retry.translation.

Unknown errors are never retried.
"""

from __future__ import annotations

import asyncio

from hooksafe.exceptions import ErrorKind, ProcessingError

RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset(
    {
        ErrorKind.NETWORK,
        ErrorKind.TIMEOUT,
        ErrorKind.STORAGE_TIMEOUT,
        ErrorKind.STORAGE_CONFLICT,
        ErrorKind.UPSTREAM_CONNECTION,
        ErrorKind.UPSTREAM_SERVER,
        ErrorKind.UPSTREAM_RATE_LIMIT,
    }
)

# Checked in order; subclasses must come before their bases
_BUILTIN_KINDS: tuple[tuple[type[BaseException] | tuple[type[BaseException], ...], ErrorKind], ...] = (
    (ConnectionError, ErrorKind.NETWORK),
    ((TimeoutError, asyncio.CancelledError), ErrorKind.TIMEOUT),
    ((ValueError, TypeError), ErrorKind.INVALID_ARGUMENT),
    (RuntimeError, ErrorKind.INVALID_STATE),
    ((LookupError, AttributeError), ErrorKind.MISSING_REFERENCE),
)


def kind_of(error: BaseException) -> ErrorKind:
    """Return the ErrorKind for an exception.

    ProcessingError carries its own kind. Built-in exception families map to a
    fixed kind; everything else is UNKNOWN.
    """
    if isinstance(error, ProcessingError):
        return error.kind

    for types, kind in _BUILTIN_KINDS:
        if isinstance(error, types):
            return kind

    return ErrorKind.UNKNOWN


def is_retryable(error: BaseException) -> bool:
    """Return True if the failure is transient and the event should be retried.

    Args:
        error: Exception raised by a processing attempt.

    Returns:
        True for transient kinds (network, timeouts, storage conflicts and
        upstream connection/server/rate-limit errors), False otherwise.
    """
    return kind_of(error) in RETRYABLE_KINDS
