"""
Utilities module for VersionVault.

Provides logging setup and in-memory metrics.
"""

from version_vault.utils.logging import (
    setup_logging,
    get_logger,
    get_logger_with_context,
    reset_logging,
)
from version_vault.utils.metrics import (
    Metrics,
    TimingStats,
    increment_fetch_attempts,
    increment_blocked,
    time_completion_call,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "get_logger_with_context",
    "reset_logging",
    # Metrics
    "Metrics",
    "TimingStats",
    "increment_fetch_attempts",
    "increment_blocked",
    "time_completion_call",
]
