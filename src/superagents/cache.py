"""SQLite artifact cache with per-class expiry.

Entries are addressed by the MD5 digest of their structured key and record
their own write time. The cache is class-agnostic: the TTL class is passed on
every read and write, and an entry older than its class TTL is treated as a
miss and deleted on the spot. There is no background sweeper.

The cache fails open. A database error or a corrupt row on read is logged and
reported as a miss, so the item is regenerated; a failed write is logged and
the freshly generated content is still handed back. No ``aiosqlite.Error``
escapes this module.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from superagents.models.cache import CacheStats, TtlClass

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from superagents.config import CacheSettings
    from superagents.models.cache import CacheKey

log = structlog.get_logger()

DEFAULT_TTLS: dict[TtlClass, timedelta] = {
    TtlClass.SCAN: timedelta(hours=24),
    TtlClass.GENERATION: timedelta(days=7),
}

_CREATE_ENTRY_TABLE = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key_hash   TEXT PRIMARY KEY,
    ttl_class  TEXT NOT NULL,
    label      TEXT NOT NULL DEFAULT '',
    content    TEXT NOT NULL,
    written_at TEXT NOT NULL
)
"""

_CREATE_CLASS_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_cache_ttl_class ON cache_entries(ttl_class)"
)


def ttls_from_settings(settings: CacheSettings) -> dict[TtlClass, timedelta]:
    return {
        TtlClass.SCAN: timedelta(hours=settings.scan_ttl_hours),
        TtlClass.GENERATION: timedelta(hours=settings.generation_ttl_hours),
    }


class Cache:
    """SQLite-backed artifact cache implementing CacheProtocol."""

    def __init__(
        self,
        db: aiosqlite.Connection,
        ttls: dict[TtlClass, timedelta] | None = None,
    ) -> None:
        self._db = db
        self._ttls = dict(DEFAULT_TTLS if ttls is None else ttls)

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once after connecting."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_ENTRY_TABLE)
        await self._db.execute(_CREATE_CLASS_INDEX)
        await self._db.commit()

    async def close(self) -> None:
        await self._db.close()

    def ttl_for(self, ttl_class: TtlClass) -> timedelta:
        return self._ttls[ttl_class]

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    async def get(self, key: CacheKey, ttl_class: TtlClass) -> str | None:
        """Read an entry. Returns ``None`` on miss, expiry, or read failure."""
        key_hash = key.digest()
        try:
            cursor = await self._db.execute(
                "SELECT content, written_at FROM cache_entries WHERE key_hash = ?",
                (key_hash,),
            )
            row = await cursor.fetchone()
            if row is None:
                log.debug("cache_miss", key=key.label())
                return None

            written_at = datetime.fromisoformat(row[1])
            age = datetime.now(UTC) - written_at
            if age > self.ttl_for(ttl_class):
                log.debug("cache_expired", key=key.label(), age_seconds=int(age.total_seconds()))
                await self._delete(key_hash)
                return None

            log.debug("cache_hit", key=key.label(), age_seconds=int(age.total_seconds()))
            return row[0]
        except (aiosqlite.Error, ValueError, TypeError):
            log.warning("cache_read_error", key=key.label(), exc_info=True)
            return None

    async def set(self, key: CacheKey, value: str, ttl_class: TtlClass) -> None:
        """Write an entry. Non-fatal on failure."""
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO cache_entries "
                "(key_hash, ttl_class, label, content, written_at) VALUES (?, ?, ?, ?, ?)",
                (
                    key.digest(),
                    str(ttl_class),
                    key.label(),
                    value,
                    datetime.now(UTC).isoformat(),
                ),
            )
            await self._db.commit()
            log.debug("cache_write", key=key.label(), ttl_class=str(ttl_class))
        except aiosqlite.Error:
            log.warning("cache_write_error", key=key.label(), exc_info=True)

    async def _delete(self, key_hash: str) -> None:
        try:
            await self._db.execute("DELETE FROM cache_entries WHERE key_hash = ?", (key_hash,))
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_delete_error", key_hash=key_hash, exc_info=True)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def clear(self) -> None:
        """Delete every entry. Non-fatal on failure."""
        try:
            cursor = await self._db.execute("DELETE FROM cache_entries")
            deleted = cursor.rowcount
            await self._db.commit()
            log.info("cache_cleared", deleted=deleted)
        except aiosqlite.Error:
            log.warning("cache_clear_error", exc_info=True)

    async def stats(self) -> CacheStats:
        """Count entries per TTL class and sum stored bytes.

        Returns an empty snapshot on database failure.
        """
        counts: dict[str, int] = {str(c): 0 for c in TtlClass}
        try:
            cursor = await self._db.execute(
                "SELECT ttl_class, COUNT(*), COALESCE(SUM(LENGTH(CAST(content AS BLOB))), 0) "
                "FROM cache_entries GROUP BY ttl_class"
            )
            total_bytes = 0
            for ttl_class, count, size in await cursor.fetchall():
                counts[ttl_class] = count
                total_bytes += size
            return CacheStats(entry_counts=counts, total_bytes=total_bytes)
        except aiosqlite.Error:
            log.warning("cache_stats_error", exc_info=True)
            return CacheStats(entry_counts=counts, total_bytes=0)


@asynccontextmanager
async def open_cache(
    db_path: Path, settings: CacheSettings | None = None
) -> AsyncGenerator[Cache, None]:
    """Connect, initialise, and always close the cache database."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = await aiosqlite.connect(str(db_path))
    cache = Cache(db, ttls_from_settings(settings) if settings is not None else None)
    try:
        await cache.init_db()
        log.debug("cache_opened", db_path=str(db_path))
        yield cache
    finally:
        await cache.close()
