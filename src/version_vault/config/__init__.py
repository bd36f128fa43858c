"""
Configuration module for VersionVault.

Provides Pydantic-based settings management with YAML file support
and environment variable overrides.
"""

from version_vault.config.settings import (
    Settings,
    EscalationSettings,
    BrowserSettings,
    BrowserlessSettings,
    WindowingSettings,
    ExtractionSettings,
    ValidationSettings,
    AnomalySettings,
    SourceSettings,
    LLMSettings,
    StorageSettings,
    BatchSettings,
    LoggingSettings,
)
from version_vault.config.loader import (
    load_config,
    get_settings,
    reset_settings,
)

__all__ = [
    "Settings",
    "EscalationSettings",
    "BrowserSettings",
    "BrowserlessSettings",
    "WindowingSettings",
    "ExtractionSettings",
    "ValidationSettings",
    "AnomalySettings",
    "SourceSettings",
    "LLMSettings",
    "StorageSettings",
    "BatchSettings",
    "LoggingSettings",
    "load_config",
    "get_settings",
    "reset_settings",
]
