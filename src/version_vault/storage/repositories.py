"""
Repository classes for data access.

PatternRepository implements the PatternStore protocol and
VersionHistoryRepository the VersionHistoryStore protocol on top of
the SQLite Database.
"""

import json
from datetime import datetime, timezone
from typing import Protocol

from version_vault.core.models import (
    ExtractedInfo,
    FetchMethod,
    LearnedPattern,
    ScrapingStrategy,
    VersionSnapshot,
)
from version_vault.storage.database import Database
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)


class VersionHistoryStore(Protocol):
    """Previous extraction results, keyed by product."""

    def latest(self, product_key: str) -> VersionSnapshot | None:
        ...

    def record(self, product_key: str, info: ExtractedInfo, source_url: str | None = None) -> int:
        ...


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _parse_method(value: str | None) -> FetchMethod | None:
    try:
        return FetchMethod(value) if value else None
    except ValueError:
        return None


class PatternRepository:
    """
    SQLite-backed PatternStore.

    Example:
        >>> repo = PatternRepository(database)
        >>> learner = PatternLearner(repo)
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def upsert(self, pattern: LearnedPattern) -> None:
        self.db.execute(
            """
            INSERT INTO scraping_patterns
                (domain, success_rate, last_successful_at, strategy, method, notes, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(domain) DO UPDATE SET
                success_rate = excluded.success_rate,
                last_successful_at = excluded.last_successful_at,
                strategy = excluded.strategy,
                method = excluded.method,
                notes = excluded.notes,
                updated_at = excluded.updated_at
            """,
            (
                pattern.domain,
                pattern.success_rate,
                pattern.last_successful.isoformat() if pattern.last_successful else None,
                json.dumps(pattern.strategy.to_dict()),
                pattern.method.value if pattern.method else None,
                pattern.notes,
                datetime.now(timezone.utc).isoformat(),
            ),
        )

    def get(self, domain: str) -> LearnedPattern | None:
        row = self.db.fetch_one("SELECT * FROM scraping_patterns WHERE domain = ?", (domain,))
        return self._from_row(row) if row else None

    def list_all(self) -> list[LearnedPattern]:
        rows = self.db.fetch_all("SELECT * FROM scraping_patterns ORDER BY success_rate DESC, domain")
        return [self._from_row(row) for row in rows]

    def delete(self, domain: str) -> bool:
        cursor = self.db.execute("DELETE FROM scraping_patterns WHERE domain = ?", (domain,))
        return cursor.rowcount > 0

    @staticmethod
    def _from_row(row: dict) -> LearnedPattern:
        try:
            strategy_data = json.loads(row.get("strategy") or "{}")
        except json.JSONDecodeError:
            logger.warning(f"Unreadable strategy stored for {row['domain']}")
            strategy_data = {}
        return LearnedPattern(
            domain=row["domain"],
            success_rate=row.get("success_rate") or 0,
            last_successful=_parse_timestamp(row.get("last_successful_at")),
            strategy=ScrapingStrategy.from_dict(strategy_data if isinstance(strategy_data, dict) else {}),
            method=_parse_method(row.get("method")),
            notes=row.get("notes") or "",
        )


class VersionHistoryRepository:
    """
    Append-only log of extraction results.

    Anomaly detection compares each new result with latest().
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def record(self, product_key: str, info: ExtractedInfo, source_url: str | None = None) -> int:
        """Store one extraction and return its row ID."""
        cursor = self.db.execute(
            """
            INSERT INTO version_history
                (product_key, version, release_date, confidence, extraction_method,
                 manufacturer, category, versions, source_url, checked_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                product_key,
                info.current_version,
                info.release_date,
                info.confidence,
                info.extraction_method,
                info.manufacturer,
                info.category,
                json.dumps([entry.to_dict() for entry in info.versions]),
                source_url,
                datetime.now(timezone.utc).isoformat(),
            ),
        )
        return cursor.lastrowid

    def latest(self, product_key: str) -> VersionSnapshot | None:
        row = self.db.fetch_one(
            "SELECT * FROM version_history WHERE product_key = ? ORDER BY id DESC LIMIT 1",
            (product_key,),
        )
        return self._snapshot(row) if row else None

    def history(self, product_key: str, limit: int = 20) -> list[VersionSnapshot]:
        """Most recent first."""
        rows = self.db.fetch_all(
            "SELECT * FROM version_history WHERE product_key = ? ORDER BY id DESC LIMIT ?",
            (product_key, limit),
        )
        return [self._snapshot(row) for row in rows]

    @staticmethod
    def _snapshot(row: dict) -> VersionSnapshot:
        return VersionSnapshot(
            version=row.get("version"),
            release_date=row.get("release_date"),
            confidence=row.get("confidence"),
            extraction_method=row.get("extraction_method"),
        )
