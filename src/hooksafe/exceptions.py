"""Hooksafe exception hierarchy.

Provides structured exceptions for error handling throughout the codebase.
All exceptions inherit from HooksafeError for easy catching.

Processing failures are expressed as ProcessingError carrying an ErrorKind.
That closed set of kinds is what the retry classifier reasons about; third-party
exceptions are mapped onto it at the processor boundary (see
hooksafe.retry.translation) so that nothing downstream depends on a specific
SDK's exception types.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds a processing attempt can end with."""

    # Transient
    NETWORK = "network"
    TIMEOUT = "timeout"
    STORAGE_TIMEOUT = "storage_timeout"
    STORAGE_CONFLICT = "storage_conflict"
    UPSTREAM_CONNECTION = "upstream_connection"
    UPSTREAM_SERVER = "upstream_server"
    UPSTREAM_RATE_LIMIT = "upstream_rate_limit"

    # Permanent
    UPSTREAM_AUTHENTICATION = "upstream_authentication"
    UPSTREAM_INVALID_REQUEST = "upstream_invalid_request"
    UPSTREAM_DECLINED = "upstream_declined"
    INVALID_ARGUMENT = "invalid_argument"
    INVALID_STATE = "invalid_state"
    MISSING_REFERENCE = "missing_reference"
    UNKNOWN = "unknown"


# Provider error tags (Stripe-style "type" field) and the kind each maps to
UPSTREAM_ERROR_TYPES: dict[str, ErrorKind] = {
    "api_connection_error": ErrorKind.UPSTREAM_CONNECTION,
    "api_error": ErrorKind.UPSTREAM_SERVER,
    "rate_limit_error": ErrorKind.UPSTREAM_RATE_LIMIT,
    "authentication_error": ErrorKind.UPSTREAM_AUTHENTICATION,
    "invalid_request_error": ErrorKind.UPSTREAM_INVALID_REQUEST,
    "card_error": ErrorKind.UPSTREAM_DECLINED,
}


class HooksafeError(Exception):
    """Base exception for all Hooksafe errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "hooksafe_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class VerificationError(HooksafeError):
    """Inbound webhook failed signature verification or could not be parsed.

    Never retried and never recorded in the idempotency ledger.
    """

    code: str = "verification_error"


class ConfigurationError(HooksafeError):
    """Configuration error.

    Raised when required configuration is missing or invalid.
    """

    code: str = "configuration_error"


class StorageError(HooksafeError):
    """Storage layer used incorrectly (e.g. before initialization)."""

    code: str = "storage_error"


class ProcessingError(HooksafeError):
    """A processing attempt failed with a known kind.

    Attributes:
        kind: The ErrorKind that decides whether the event is retried.
    """

    code: str = "processing_error"
    default_kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        self.kind = kind if kind is not None else self.default_kind
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "kind": self.kind.value,
                "message": self.message,
            }
        }


class RetryableError(ProcessingError):
    """Processing failed for a transient reason and should be retried."""

    code: str = "retryable_error"
    default_kind: ErrorKind = ErrorKind.NETWORK


class PermanentError(ProcessingError):
    """Processing failed for a reason that retrying will not fix."""

    code: str = "permanent_error"
    default_kind: ErrorKind = ErrorKind.UNKNOWN


class UpstreamError(ProcessingError):
    """Error reported by an upstream provider, tagged with the provider's error type.

    Attributes:
        error_type: The provider's error tag, e.g. "rate_limit_error".
    """

    code: str = "upstream_error"

    def __init__(self, message: str, error_type: str | None) -> None:
        self.error_type = error_type
        kind = UPSTREAM_ERROR_TYPES.get(error_type or "", ErrorKind.UNKNOWN)
        super().__init__(message, kind)
