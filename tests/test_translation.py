"""Tests for third-party exception translation."""

import httpx
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm.exc import StaleDataError

from hooksafe.exceptions import ErrorKind, PermanentError, ProcessingError
from hooksafe.retry import is_retryable, translate_error


def status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://api.example.com/charges")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


class TestHttpxTranslation:
    """Tests for httpx exceptions."""

    def test_timeout(self) -> None:
        """httpx timeouts become TIMEOUT."""
        assert translate_error(httpx.ReadTimeout("slow")).kind is ErrorKind.TIMEOUT

    def test_connect_error(self) -> None:
        """Transport errors become NETWORK."""
        assert translate_error(httpx.ConnectError("refused")).kind is ErrorKind.NETWORK

    @pytest.mark.parametrize(
        ("code", "kind"),
        [
            (429, ErrorKind.UPSTREAM_RATE_LIMIT),
            (408, ErrorKind.TIMEOUT),
            (500, ErrorKind.UPSTREAM_SERVER),
            (503, ErrorKind.UPSTREAM_SERVER),
            (401, ErrorKind.UPSTREAM_AUTHENTICATION),
            (403, ErrorKind.UPSTREAM_AUTHENTICATION),
            (402, ErrorKind.UPSTREAM_DECLINED),
            (400, ErrorKind.UPSTREAM_INVALID_REQUEST),
            (404, ErrorKind.UPSTREAM_INVALID_REQUEST),
        ],
    )
    def test_status_codes(self, code: int, kind: ErrorKind) -> None:
        """HTTP status errors map by status code."""
        assert translate_error(status_error(code)).kind is kind

    def test_server_errors_are_retried(self) -> None:
        """5xx and 429 are transient, other 4xx are not."""
        assert is_retryable(translate_error(status_error(502)))
        assert is_retryable(translate_error(status_error(429)))
        assert not is_retryable(translate_error(status_error(422)))


class TestSqlAlchemyTranslation:
    """Tests for SQLAlchemy exceptions."""

    def test_operational_error(self) -> None:
        """Operational errors become STORAGE_TIMEOUT."""
        exc = OperationalError("SELECT 1", {}, Exception("database is locked"))
        assert translate_error(exc).kind is ErrorKind.STORAGE_TIMEOUT

    def test_pool_timeout(self) -> None:
        """Pool timeouts become STORAGE_TIMEOUT."""
        assert translate_error(PoolTimeoutError("pool exhausted")).kind is ErrorKind.STORAGE_TIMEOUT

    def test_integrity_error(self) -> None:
        """Integrity errors become STORAGE_CONFLICT."""
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        assert translate_error(exc).kind is ErrorKind.STORAGE_CONFLICT

    def test_stale_data_error(self) -> None:
        """Stale data errors become STORAGE_CONFLICT."""
        assert translate_error(StaleDataError("row changed")).kind is ErrorKind.STORAGE_CONFLICT


class TestTranslateError:
    """General behaviour of translate_error()."""

    def test_processing_error_passes_through(self) -> None:
        """A ProcessingError is returned unchanged."""
        original = PermanentError("bad")
        assert translate_error(original) is original

    def test_builtin_fallback(self) -> None:
        """Other exceptions fall back to the built-in mapping."""
        assert translate_error(KeyError("customer")).kind is ErrorKind.MISSING_REFERENCE
        assert translate_error(Exception("??")).kind is ErrorKind.UNKNOWN

    def test_chains_original(self) -> None:
        """The translated error keeps the original as its cause."""
        original = httpx.ConnectError("refused")
        translated = translate_error(original)
        assert isinstance(translated, ProcessingError)
        assert translated.__cause__ is original
        assert translated.message == "refused"

    def test_empty_message_uses_type_name(self) -> None:
        """Exceptions without a message are described by their type."""
        assert translate_error(RuntimeError()).message == "RuntimeError"
