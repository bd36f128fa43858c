"""
SQLite database connection management.

One connection per thread, WAL journaling and schema setup on first
use. Holds learned scraping patterns and extraction history.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from version_vault.config.settings import StorageSettings
from version_vault.core.exceptions import DatabaseError
from version_vault.storage.schema import SchemaManager
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

MEMORY_PATH = ":memory:"


class Database:
    """
    SQLite database manager.

    Example:
        >>> db = Database.from_settings(settings.storage)
        >>> rows = db.fetch_all("SELECT * FROM scraping_patterns")

        >>> # Throwaway database for tests
        >>> db = Database(":memory:")
    """

    def __init__(
        self,
        database_path: Path | str,
        wal_mode: bool = True,
        cache_size_mb: int = 16,
    ) -> None:
        self.in_memory = str(database_path) == MEMORY_PATH
        self.database_path = Path(database_path)
        self.wal_mode = wal_mode and not self.in_memory
        self.cache_size_mb = cache_size_mb

        self._connections: dict[int, sqlite3.Connection] = {}
        self._lock = threading.Lock()
        self._initialized = False

        self._setup()

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "Database":
        """Open the database configured in settings."""
        return cls(
            database_path=settings.database_path,
            wal_mode=settings.wal_mode,
            cache_size_mb=settings.cache_size_mb,
        )

    def _setup(self) -> None:
        if not self.in_memory:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)

        SchemaManager(self._get_connection()).initialize()
        self._initialized = True
        logger.info(f"Database ready at {self.database_path}")

    def _get_connection(self) -> sqlite3.Connection:
        thread_id = threading.get_ident()

        if thread_id not in self._connections:
            with self._lock:
                if thread_id not in self._connections:
                    self._connections[thread_id] = self._create_connection()

        return self._connections[thread_id]

    def _create_connection(self) -> sqlite3.Connection:
        target = MEMORY_PATH if self.in_memory else str(self.database_path)
        try:
            conn = sqlite3.connect(target, check_same_thread=False, timeout=30.0)
            conn.row_factory = sqlite3.Row

            cache_pages = (self.cache_size_mb * 1024 * 1024) // 4096
            conn.execute(f"PRAGMA cache_size = -{cache_pages}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            conn.execute("PRAGMA foreign_keys = ON")

            logger.debug(f"Created new connection for thread {threading.get_ident()}")
            return conn

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create database connection: {e}",
                details={"path": target},
            ) from e

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back on error."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        conn = self._get_connection()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor
        except sqlite3.Error as e:
            raise DatabaseError(f"Query execution failed: {e}", query=sql) from e

    def fetch_one(self, sql: str, params: tuple = ()) -> dict | None:
        row = self.execute(sql, params).fetchone()
        return dict(row) if row else None

    def fetch_all(self, sql: str, params: tuple = ()) -> list[dict]:
        return [dict(row) for row in self.execute(sql, params).fetchall()]

    def close(self) -> None:
        """Close all connections."""
        with self._lock:
            for conn in self._connections.values():
                try:
                    conn.close()
                except sqlite3.Error as e:
                    logger.warning(f"Error closing connection: {e}")
            self._connections.clear()

        logger.debug("All database connections closed")

    def __repr__(self) -> str:
        status = "initialized" if self._initialized else "not initialized"
        return f"Database(path={str(self.database_path)!r}, {status})"
