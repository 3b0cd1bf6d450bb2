"""SQLite response cache for gated status-report requests.

All cache operations catch ``aiosqlite.Error`` internally and degrade
gracefully: read failures return ``None`` (treated as cache miss by callers),
write failures are logged and ignored. Infrastructure errors never cross the
ResponseCache class boundary, so a broken cache only ever costs an extra
origin round trip.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from codepush_edge.models.cache import CachedResponse

if TYPE_CHECKING:
    from codepush_edge.models.http import ProxyResponse

log = structlog.get_logger()

_CREATE_RESPONSE_TABLE = """
CREATE TABLE IF NOT EXISTS response_cache (
    cache_key    TEXT PRIMARY KEY,
    status_code  INTEGER NOT NULL,
    headers      TEXT NOT NULL,
    body         BLOB NOT NULL,
    stored_at    TEXT NOT NULL,
    expires_at   TEXT NOT NULL
)
"""

_CREATE_RESPONSE_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_response_expires ON response_cache(expires_at)"
)


class ResponseCache:
    """SQLite-backed response store implementing ResponseCacheProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_RESPONSE_TABLE)
        await self._db.execute(_CREATE_RESPONSE_INDEX)
        await self._db.commit()

    async def match(self, cache_key: str) -> CachedResponse | None:
        """Read a live entry. Returns ``None`` on miss, expiry or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT cache_key, status_code, headers, body, stored_at, expires_at "
                "FROM response_cache WHERE cache_key = ?",
                (cache_key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            expires_at = datetime.fromisoformat(row[5])
            if datetime.now(UTC) >= expires_at:
                return None

            return CachedResponse(
                cache_key=row[0],
                status_code=row[1],
                headers=json.loads(row[2]),
                body=bytes(row[3]),
                stored_at=datetime.fromisoformat(row[4]),
                expires_at=expires_at,
            )
        except aiosqlite.Error:
            log.warning("cache_read_error", key=cache_key, exc_info=True)
            return None

    async def put(self, cache_key: str, response: ProxyResponse, ttl_seconds: int) -> None:
        """Store a response. Non-fatal on failure."""
        try:
            now = datetime.now(UTC)
            expires_at = now + timedelta(seconds=ttl_seconds)
            await self._db.execute(
                "INSERT OR REPLACE INTO response_cache "
                "(cache_key, status_code, headers, body, stored_at, expires_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    cache_key,
                    response.status_code,
                    json.dumps(response.headers),
                    response.body,
                    now.isoformat(),
                    expires_at.isoformat(),
                ),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_write_error", key=cache_key, exc_info=True)

    async def cleanup_expired(self) -> int:
        """Delete expired entries. Returns the number removed, 0 on failure."""
        try:
            cursor = await self._db.execute(
                "DELETE FROM response_cache WHERE expires_at <= ?",
                (datetime.now(UTC).isoformat(),),
            )
            await self._db.commit()
            return cursor.rowcount
        except aiosqlite.Error:
            log.warning("cache_cleanup_error", exc_info=True)
            return 0
