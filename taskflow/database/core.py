import aiosqlite
import asyncio
import sqlite3
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, AsyncIterator, Union

from taskflow.database.helpers import DatabaseError

logger = logging.getLogger(__name__)


class LocalCache:
    """Device-local key-value store on async SQLite.

    Uses a single persistent connection with an async lock to serialize
    access. The connection is lazily opened on first use, the schema is
    created at the same time, and both are reused until ``close()``.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:") -> None:
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None
        self._conn_lock: Optional[asyncio.Lock] = None

    async def _ensure_connection(self) -> aiosqlite.Connection:
        """Ensure we have an open connection, creating one if needed."""
        if self._conn is None:
            try:
                self._conn = await aiosqlite.connect(self.db_path)
                self._conn.row_factory = aiosqlite.Row
                await self._conn.execute("PRAGMA journal_mode=WAL")
                await self._conn.execute("PRAGMA busy_timeout=5000")
                await self._conn.execute(
                    "CREATE TABLE IF NOT EXISTS cache "
                    "(key TEXT PRIMARY KEY, value TEXT NOT NULL)"
                )
                await self._conn.commit()
            except (sqlite3.Error, OSError) as e:
                if self._conn is not None:
                    await self._conn.close()
                self._conn = None
                raise DatabaseError(f"Cannot open cache at {self.db_path}: {e}") from e
        return self._conn

    @asynccontextmanager
    async def _get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Get the connection with serialized access."""
        if self._conn_lock is None:
            self._conn_lock = asyncio.Lock()
        async with self._conn_lock:
            conn = await self._ensure_connection()
            yield conn

    async def read(self, key: str) -> Optional[str]:
        """Return the stored text for ``key``, or None if absent."""
        try:
            async with self._get_connection() as conn:
                async with conn.execute(
                    "SELECT value FROM cache WHERE key=?", (key,)
                ) as cursor:
                    row = await cursor.fetchone()
                    return row["value"] if row else None
        except sqlite3.Error as e:
            logger.error(f"Error reading cache key {key}: {e}")
            raise DatabaseError(f"Failed to read cache: {e}") from e

    async def write(self, key: str, value: str) -> None:
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    "INSERT OR REPLACE INTO cache (key, value) VALUES (?, ?)",
                    (key, value),
                )
                await conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error writing cache key {key}: {e}")
            raise DatabaseError(f"Failed to write cache: {e}") from e

    async def remove(self, key: str) -> None:
        """Delete ``key``. Removing a missing key is not an error."""
        try:
            async with self._get_connection() as conn:
                await conn.execute("DELETE FROM cache WHERE key=?", (key,))
                await conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error removing cache key {key}: {e}")
            raise DatabaseError(f"Failed to remove cache entry: {e}") from e

    async def close(self) -> None:
        """Close the persistent connection."""
        if self._conn is not None:
            try:
                await self._conn.close()
            except (sqlite3.Error, OSError) as e:
                logger.warning(f"Error closing cache connection: {e}")
            finally:
                self._conn = None
