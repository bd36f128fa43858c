"""
Core module for VersionVault.

Holds the exception hierarchy and the dataclasses shared by every
pipeline stage.
"""

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
from version_vault.core.models import (
    FetchMethod,
    METHOD_CHAIN,
    BlockerType,
    BlockerDetection,
    ScrapingStrategy,
    FetchResponse,
    AcquisitionAttempt,
    FetchResult,
    VersionType,
    VersionEntry,
    ExtractedInfo,
    ValidationResult,
    LearnedPattern,
    AnomalyType,
    Severity,
    Anomaly,
    VersionSnapshot,
)

__all__ = [
    # Exceptions
    "VersionVaultError",
    "RetryableError",
    "ConfigurationError",
    "AcquisitionError",
    "FetchError",
    "BlockedError",
    "RenderError",
    "BrowserError",
    "NavigationError",
    "SourceParseError",
    "CompletionError",
    "CompletionConnectionError",
    "CompletionRateLimitError",
    "CompletionAuthenticationError",
    "CompletionParseError",
    "MissingFieldError",
    "StorageError",
    "DatabaseError",
    "ExtractionError",
    "get_retry_delay",
    # Models
    "FetchMethod",
    "METHOD_CHAIN",
    "BlockerType",
    "BlockerDetection",
    "ScrapingStrategy",
    "FetchResponse",
    "AcquisitionAttempt",
    "FetchResult",
    "VersionType",
    "VersionEntry",
    "ExtractedInfo",
    "ValidationResult",
    "LearnedPattern",
    "AnomalyType",
    "Severity",
    "Anomaly",
    "VersionSnapshot",
]
