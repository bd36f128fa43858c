"""
Database module for VersionVault.

Provides SQLite-based storage with:
- Connection management with WAL mode
- Schema initialization
- Repositories for learned patterns and extraction history
"""

from version_vault.storage.database import Database
from version_vault.storage.schema import (
    SchemaManager,
    SCHEMA_VERSION,
)
from version_vault.storage.repositories import (
    PatternRepository,
    VersionHistoryRepository,
    VersionHistoryStore,
)

__all__ = [
    # Database
    "Database",
    # Schema
    "SchemaManager",
    "SCHEMA_VERSION",
    # Repositories
    "PatternRepository",
    "VersionHistoryRepository",
    "VersionHistoryStore",
]
