"""Tests for the Hooksafe exception hierarchy."""

import pytest

from hooksafe.exceptions import (
    ConfigurationError,
    ErrorKind,
    HooksafeError,
    PermanentError,
    ProcessingError,
    RetryableError,
    StorageError,
    UpstreamError,
    VerificationError,
)


class TestHooksafeError:
    """Tests for the base exception."""

    def test_message_and_code(self):
        """Base error carries a message and a code."""
        error = HooksafeError("boom")
        assert error.message == "boom"
        assert error.code == "hooksafe_error"
        assert str(error) == "boom"

    def test_to_dict(self):
        """to_dict produces an API-friendly envelope."""
        assert VerificationError("bad signature").to_dict() == {
            "error": {"code": "verification_error", "message": "bad signature"}
        }

    @pytest.mark.parametrize(
        "cls",
        [VerificationError, ConfigurationError, StorageError, ProcessingError],
    )
    def test_subclasses_share_base(self, cls):
        """All Hooksafe errors can be caught with HooksafeError."""
        with pytest.raises(HooksafeError):
            raise cls("x")


class TestProcessingError:
    """Tests for ProcessingError and its variants."""

    def test_kind_in_dict(self):
        """to_dict includes the kind."""
        error = ProcessingError("slow", ErrorKind.TIMEOUT)
        assert error.to_dict() == {
            "error": {"code": "processing_error", "kind": "timeout", "message": "slow"}
        }

    def test_defaults(self):
        """Each variant has a default kind."""
        assert ProcessingError("x").kind is ErrorKind.UNKNOWN
        assert RetryableError("x").kind is ErrorKind.NETWORK
        assert PermanentError("x").kind is ErrorKind.UNKNOWN

    def test_upstream_error_maps_tag(self):
        """UpstreamError derives its kind from the provider tag."""
        error = UpstreamError("slow down", "rate_limit_error")
        assert error.error_type == "rate_limit_error"
        assert error.kind is ErrorKind.UPSTREAM_RATE_LIMIT
        assert error.code == "upstream_error"

    def test_upstream_error_unknown_tag(self):
        """Unrecognised tags are UNKNOWN."""
        assert UpstreamError("?", "brand_new_error").kind is ErrorKind.UNKNOWN
