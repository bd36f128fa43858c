"""
VersionVault - Software release tracking pipeline.

This package fetches vendor release pages, feeds, forums and documents,
escalates around bot protection, narrows the content to the product of
interest, and turns a completion-service response into validated,
deduplicated version history.
"""

from version_vault.config import Settings, load_config
from version_vault.utils.logging import setup_logging, get_logger
from version_vault.core.exceptions import VersionVaultError

__version__ = "0.1.0"
__author__ = "VersionVault Team"

__all__ = [
    "Settings",
    "load_config",
    "setup_logging",
    "get_logger",
    "VersionVaultError",
]
