"""
Database schema definition and migration.
"""

from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1


class SchemaManager:
    """
    Creates and versions the SQLite schema.

    Example:
        >>> manager = SchemaManager(connection)
        >>> manager.initialize()
        >>> manager.get_version()
        1
    """

    def __init__(self, connection) -> None:
        self.conn = connection

    def initialize(self) -> None:
        """Create all tables if they don't exist."""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)

        current_version = self.conn.execute(
            "SELECT MAX(version) FROM schema_version").fetchone()[0]

        if current_version is None:
            self._create_schema_v1()
            self.conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,)
            )
            self.conn.commit()
            logger.info(f"Created schema version {SCHEMA_VERSION}")
        else:
            logger.debug(f"Schema version {current_version} already exists")

    def _create_schema_v1(self) -> None:
        # One row per domain; upserted on every learn/attempt
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS scraping_patterns (
                domain TEXT PRIMARY KEY,
                success_rate INTEGER NOT NULL DEFAULT 100,
                last_successful_at TEXT,
                strategy TEXT NOT NULL DEFAULT '{}',
                method TEXT,
                notes TEXT DEFAULT '',
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)

        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS version_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                product_key TEXT NOT NULL,
                version TEXT,
                release_date TEXT,
                confidence INTEGER,
                extraction_method TEXT,
                manufacturer TEXT,
                category TEXT,
                versions TEXT NOT NULL DEFAULT '[]',
                source_url TEXT,
                checked_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)

        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_version_history_product "
            "ON version_history(product_key, id)"
        )

    def get_version(self) -> int:
        version = self.conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
        return version or 0

    def needs_migration(self) -> bool:
        return self.get_version() < SCHEMA_VERSION
