"""
Tests for exception hierarchy.

Tests custom exceptions, their context details and retry helpers.
"""

import pytest

from version_vault.core.exceptions import (
    VersionVaultError,
    RetryableError,
    ConfigurationError,
    AcquisitionError,
    FetchError,
    BlockedError,
    RenderError,
    BrowserError,
    NavigationError,
    SourceParseError,
    CompletionError,
    CompletionConnectionError,
    CompletionRateLimitError,
    CompletionAuthenticationError,
    CompletionParseError,
    MissingFieldError,
    StorageError,
    DatabaseError,
    ExtractionError,
    get_retry_delay,
)


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    def test_base_exception(self):
        """VersionVaultError should be the base for all custom exceptions."""
        exc = VersionVaultError("Test error")

        assert isinstance(exc, Exception)
        assert str(exc) == "Test error"

    @pytest.mark.parametrize("cls", [
        ConfigurationError,
        AcquisitionError,
        BrowserError,
        SourceParseError,
        CompletionError,
        StorageError,
        ExtractionError,
    ])
    def test_top_level_errors(self, cls):
        assert issubclass(cls, VersionVaultError)

    def test_acquisition_errors(self):
        """Fetch, block and render failures are retryable acquisition errors."""
        for cls in (FetchError, BlockedError, RenderError):
            assert issubclass(cls, AcquisitionError)
            assert issubclass(cls, RetryableError)

    def test_navigation_error(self):
        assert issubclass(NavigationError, BrowserError)
        assert issubclass(NavigationError, RetryableError)

    def test_completion_errors(self):
        assert issubclass(CompletionConnectionError, RetryableError)
        assert issubclass(CompletionRateLimitError, RetryableError)
        assert not issubclass(CompletionAuthenticationError, RetryableError)
        assert issubclass(MissingFieldError, CompletionParseError)
        assert issubclass(CompletionParseError, CompletionError)

    def test_database_error(self):
        assert issubclass(DatabaseError, StorageError)


class TestExceptionAttributes:
    """Tests for exception attributes and metadata."""

    def test_fetch_error_context(self):
        """FetchError should carry url and status code."""
        exc = FetchError(
            "Failed to fetch page",
            url="https://example.com",
            status_code=404,
        )

        assert exc.url == "https://example.com"
        assert exc.status_code == 404
        assert "status_code=404" in str(exc)

    def test_blocked_error_type(self):
        exc = BlockedError("Blocked", blocker_type="cloudflare")
        assert exc.details["blocker_type"] == "cloudflare"

    def test_source_parse_error_kind(self):
        exc = SourceParseError("Bad PDF", source_kind="pdf")
        assert exc.source_kind == "pdf"

    def test_parse_error_truncates_raw(self):
        """Raw response text in details is capped."""
        exc = CompletionParseError("Bad JSON", raw="x" * 500)

        assert exc.raw == "x" * 500
        assert len(exc.details["raw"]) == 203

    def test_missing_field_error(self):
        exc = MissingFieldError("Missing", fields=["manufacturer"])
        assert exc.fields == ["manufacturer"]
        assert exc.details["fields"] == ["manufacturer"]

    def test_database_error_with_query(self):
        """DatabaseError should include query context."""
        exc = DatabaseError("Query failed", query="SELECT * FROM scraping_patterns")

        assert exc.query == "SELECT * FROM scraping_patterns"
        assert "SELECT" in str(exc)


class TestRetryHelpers:
    """Tests for get_retry_delay."""

    def test_retry_delay_from_error(self):
        exc = CompletionRateLimitError("Rate limited", retry_after=30)
        assert get_retry_delay(exc) == 30

    def test_retry_delay_default(self):
        assert get_retry_delay(FetchError("oops")) == 2.0
        assert get_retry_delay(ValueError("x"), default=5.0) == 5.0


class TestExceptionCatching:
    """Tests for exception catching patterns."""

    def test_catch_parent_error(self):
        """Parent exceptions catch child exceptions."""
        with pytest.raises(CompletionError):
            raise MissingFieldError("Missing", fields=["category"])

    def test_catch_base_error(self):
        """Base exception catches all custom exceptions."""
        with pytest.raises(VersionVaultError):
            raise NavigationError("net::ERR_HTTP2_PROTOCOL_ERROR")
