"""SQLite-backed freshness ledger.

A string key/value map where every entry carries its own expiry. Entries past
``expires_at`` read as absent; the maintenance sweep purges them later.

Like the response cache, every operation catches ``aiosqlite.Error`` and
degrades: reads return ``None``, writes return ``False``. A broken ledger
must never break an update-check or a status report.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import aiosqlite
import structlog

log = structlog.get_logger()

_CREATE_LEDGER_TABLE = """
CREATE TABLE IF NOT EXISTS freshness_ledger (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    written_at  TEXT NOT NULL,
    expires_at  TEXT NOT NULL
)
"""

_CREATE_LEDGER_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_ledger_expires ON freshness_ledger(expires_at)"
)


class Ledger:
    """SQLite-backed TTL key/value store implementing LedgerProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create the ledger table. Called once at startup."""
        await self._db.execute(_CREATE_LEDGER_TABLE)
        await self._db.execute(_CREATE_LEDGER_INDEX)
        await self._db.commit()

    async def get(self, key: str) -> str | None:
        """Read a live entry. Returns ``None`` on miss, expiry or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT value, expires_at FROM freshness_ledger WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            if datetime.now(UTC) >= datetime.fromisoformat(row[1]):
                return None
            return row[0]
        except aiosqlite.Error:
            log.warning("ledger_read_error", key=key, exc_info=True)
            return None

    async def put(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Write an entry, replacing any previous one. Non-fatal on failure."""
        try:
            now = datetime.now(UTC)
            expires_at = now + timedelta(seconds=ttl_seconds)
            await self._db.execute(
                "INSERT OR REPLACE INTO freshness_ledger "
                "(key, value, written_at, expires_at) VALUES (?, ?, ?, ?)",
                (key, value, now.isoformat(), expires_at.isoformat()),
            )
            await self._db.commit()
            return True
        except aiosqlite.Error:
            log.warning("ledger_write_error", key=key, exc_info=True)
            return False

    async def cleanup_expired(self) -> int:
        """Delete expired entries. Returns the number removed, 0 on failure."""
        try:
            cursor = await self._db.execute(
                "DELETE FROM freshness_ledger WHERE expires_at <= ?",
                (datetime.now(UTC).isoformat(),),
            )
            await self._db.commit()
            return cursor.rowcount
        except aiosqlite.Error:
            log.warning("ledger_cleanup_error", exc_info=True)
            return 0
