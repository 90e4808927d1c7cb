"""ContextStore: aiosqlite persistence for synthesis records with expiry."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import aiosqlite

from intake.config import settings
from intake.models import SynthesisRecord

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS synthesis_records (
    conversation_id TEXT NOT NULL,
    message_id TEXT NOT NULL,
    source_media TEXT NOT NULL DEFAULT '[]',
    response_text TEXT NOT NULL,
    mode TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (conversation_id, message_id)
)
"""


class ContextStore:
    """Persists bot answers so threaded replies can find them.

    Singleton accessed via ``ContextStore.get()``.  Pass an explicit *db_path*
    for test isolation.  Records older than the retention window are never
    returned and are purged on every write.
    """

    _instance: ContextStore | None = None

    def __init__(self, db_path: Path | None = None, retention_seconds: int | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self.retention = timedelta(
            seconds=retention_seconds if retention_seconds is not None else settings.context_retention_seconds
        )
        self._initialised = False

    @classmethod
    def get(cls) -> ContextStore:
        """Return the shared ContextStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.commit()
            self._initialised = True
        return db

    def _cutoff(self, now: datetime | None = None) -> str:
        return ((now or datetime.now(UTC)) - self.retention).isoformat()

    # -- Operations ------------------------------------------------------------

    async def put(self, record: SynthesisRecord) -> SynthesisRecord:
        """Insert (or replace) a record and purge expired ones."""
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT OR REPLACE INTO synthesis_records
                    (conversation_id, message_id, source_media, response_text, mode, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                record.to_row(),
            )
            cursor = await db.execute(
                "DELETE FROM synthesis_records WHERE created_at < ?", (self._cutoff(),)
            )
            await db.commit()
            if cursor.rowcount > 0:
                logger.debug("Purged %d expired records", cursor.rowcount)
            logger.info(
                "Saved %s record for %s/%s",
                record.mode,
                record.conversation_id,
                record.message_id,
            )
            return record
        finally:
            await db.close()

    async def lookup(self, conversation_id: str, message_id: str) -> SynthesisRecord | None:
        """Fetch a live record, or None if missing or expired."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                SELECT conversation_id, message_id, source_media, response_text, mode, created_at
                FROM synthesis_records
                WHERE conversation_id = ? AND message_id = ? AND created_at >= ?
                """,
                (conversation_id, message_id, self._cutoff()),
            )
            row = await cursor.fetchone()
            return SynthesisRecord.from_row(row) if row else None
        finally:
            await db.close()
