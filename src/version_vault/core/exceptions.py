"""
Custom exceptions for VersionVault.

Provides a hierarchy of exceptions for precise error handling across
the acquisition and extraction pipeline. All exceptions inherit from
VersionVaultError.

Exception Hierarchy:
    VersionVaultError (base)
    ├── ConfigurationError
    ├── AcquisitionError
    │   ├── FetchError
    │   ├── BlockedError
    │   └── RenderError
    ├── BrowserError
    │   └── NavigationError
    ├── SourceParseError
    ├── CompletionError
    │   ├── CompletionConnectionError
    │   ├── CompletionRateLimitError
    │   ├── CompletionAuthenticationError
    │   └── CompletionParseError
    │       └── MissingFieldError
    ├── StorageError
    │   └── DatabaseError
    └── ExtractionError
"""

from typing import Any


class VersionVaultError(Exception):
    """
    Base exception for all VersionVault errors.

    Attributes:
        message: Human-readable error description
        details: Optional dictionary with additional context
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(
                f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, details={self.details!r})"


class RetryableError(VersionVaultError):
    """
    Marker class for errors that may succeed on a later attempt.

    Attributes:
        retry_after: Suggested delay in seconds before retry (optional)
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, details)
        self.retry_after = retry_after


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(VersionVaultError):
    """
    Error in configuration loading or validation.

    Raised when:
    - Configuration file is malformed
    - Setting values fail validation
    - A required credential is not present in the environment
    """

    pass


# =============================================================================
# Acquisition Errors
# =============================================================================


class AcquisitionError(VersionVaultError):
    """Base error for getting raw content off the network."""

    pass


class FetchError(AcquisitionError, RetryableError):
    """
    A single fetch attempt failed.

    Raised when:
    - The HTTP request fails at the transport level
    - The server answers with a non-success status
    - No fetcher is registered for the requested method
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        retry_after: float | None = None,
    ) -> None:
        details = details or {}
        if url:
            details["url"] = url
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details, retry_after)
        self.url = url
        self.status_code = status_code


class BlockedError(AcquisitionError, RetryableError):
    """
    A response was recognised as a bot-protection page.

    The blocker_type attribute carries the detected protection system.
    """

    def __init__(
        self,
        message: str,
        blocker_type: str | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
        retry_after: float | None = None,
    ) -> None:
        details = details or {}
        if blocker_type:
            details["blocker_type"] = blocker_type
        if url:
            details["url"] = url
        super().__init__(message, details, retry_after)
        self.blocker_type = blocker_type
        self.url = url


class RenderError(AcquisitionError, RetryableError):
    """
    A headless-browser render failed.

    Raised by renderers when the remote or local browser cannot
    produce page content.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        details: dict[str, Any] | None = None,
        retry_after: float | None = None,
    ) -> None:
        details = details or {}
        if url:
            details["url"] = url
        super().__init__(message, details, retry_after)
        self.url = url


# =============================================================================
# Browser Errors
# =============================================================================


class BrowserError(VersionVaultError):
    """
    Base error for browser/Playwright operations.

    Raised for launch and context failures.
    """

    pass


class NavigationError(BrowserError, RetryableError):
    """
    Error during page navigation.

    The message keeps the browser's error text (for example
    net::ERR_HTTP2_PROTOCOL_ERROR) so blocker detection can classify it.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        retry_after: float | None = None,
    ) -> None:
        details = details or {}
        if url:
            details["url"] = url
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details, retry_after)
        self.url = url
        self.status_code = status_code


# =============================================================================
# Source Errors
# =============================================================================


class SourceParseError(VersionVaultError):
    """
    Error parsing a feed, forum, sitemap or PDF.

    Adapters catch this at their boundary and return empty content.
    """

    def __init__(
        self,
        message: str,
        source_kind: str | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if source_kind:
            details["source_kind"] = source_kind
        if url:
            details["url"] = url
        super().__init__(message, details)
        self.source_kind = source_kind
        self.url = url


# =============================================================================
# Completion Service Errors
# =============================================================================


class CompletionError(VersionVaultError):
    """Base error for completion service (LLM) calls."""

    pass


class CompletionConnectionError(CompletionError, RetryableError):
    """
    Error reaching the completion service.

    Raised when:
    - Network connection fails
    - Request times out
    - The service answers with a server error
    """

    pass


class CompletionRateLimitError(CompletionError, RetryableError):
    """
    The completion service returned 429.

    The retry_after attribute indicates when to resume.
    """

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details, retry_after)


class CompletionAuthenticationError(CompletionError):
    """
    Missing or rejected API credentials.

    This is NOT retryable without fixing credentials.
    """

    pass


class CompletionParseError(CompletionError):
    """
    The completion response was not usable JSON.

    Attributes:
        raw: The offending response text, truncated
    """

    def __init__(
        self,
        message: str,
        raw: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if raw is not None:
            details["raw"] = raw[:200] + "..." if len(raw) > 200 else raw
        super().__init__(message, details)
        self.raw = raw


class MissingFieldError(CompletionParseError):
    """Required fields (manufacturer, category) were absent or empty."""

    def __init__(
        self,
        message: str,
        fields: list[str],
        raw: str | None = None,
    ) -> None:
        super().__init__(message, raw=raw, details={"fields": fields})
        self.fields = fields


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(VersionVaultError):
    """Base error for storage operations."""

    pass


class DatabaseError(StorageError):
    """
    Error in SQLite database operations.

    Raised when:
    - Database connection fails
    - Query execution fails
    - Constraint violations occur
    """

    def __init__(
        self,
        message: str,
        query: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if query:
            details["query"] = query[:200] + \
                "..." if len(query) > 200 else query
        super().__init__(message, details)
        self.query = query


# =============================================================================
# Extraction Errors
# =============================================================================


class ExtractionError(VersionVaultError):
    """
    Error assembling an extraction request.

    Raised for caller mistakes such as an empty product name; runtime
    failures inside the pipeline degrade to fallback results instead.
    """

    pass


# =============================================================================
# Utility Functions
# =============================================================================


def get_retry_delay(error: Exception, default: float = 2.0) -> float:
    """
    Get the recommended retry delay for an error.

    Args:
        error: The exception to check
        default: Delay in seconds when the error does not specify one

    Returns:
        Recommended delay in seconds before retry
    """
    if isinstance(error, RetryableError) and error.retry_after is not None:
        return error.retry_after
    return default
