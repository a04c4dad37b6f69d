"""Async SQLite connection wrapper with WAL mode and schema initialization."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from bonsai.db.schema import SCHEMA_SQL

MEMORY_PATH = ":memory:"

logger = logging.getLogger(__name__)


class Database:
    """Thin async wrapper around aiosqlite with WAL mode and auto-schema.

    Every backend failure surfaces as StorageFaultError.
    """

    def __init__(self, connection: aiosqlite.Connection, path: str = MEMORY_PATH) -> None:
        self._conn = connection
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    @classmethod
    async def connect(cls, path: str = MEMORY_PATH) -> "Database":
        """Create a connection with WAL mode, foreign keys, and schema init.

        For file paths the parent directory is created if missing.
        """
        try:
            if path != MEMORY_PATH:
                Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(path)
        except (OSError, aiosqlite.Error) as e:
            raise StorageFaultError(f"failed to open database at {path}") from e

        conn.row_factory = aiosqlite.Row
        db = cls(conn, path)
        try:
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA foreign_keys=ON")
            await db.execute("PRAGMA busy_timeout=5000")
            await db._ensure_schema()
        except BaseException:
            await conn.close()
            raise
        return db

    @classmethod
    @asynccontextmanager
    async def open(cls, path: str = MEMORY_PATH) -> AsyncIterator["Database"]:
        """Scoped connection, closed on every exit path."""
        db = await cls.connect(path)
        try:
            yield db
        finally:
            await db.close()

    async def _ensure_schema(self) -> None:
        """Create tables if they don't exist. Idempotent."""
        try:
            await self._conn.executescript(SCHEMA_SQL)
            await self._conn.commit()
        except aiosqlite.Error as e:
            await self._rollback()
            raise StorageFaultError("failed to initialize schema") from e

    async def execute(self, sql: str, params: tuple | None = None) -> aiosqlite.Cursor:
        """Execute and commit a single SQL statement."""
        try:
            cursor = await self._conn.execute(sql, params or ())
            await self._conn.commit()
        except aiosqlite.Error as e:
            await self._rollback()
            raise StorageFaultError(f"statement failed: {e}") from e
        return cursor

    async def fetchone(self, sql: str, params: tuple | None = None) -> aiosqlite.Row | None:
        """Execute and return a single row."""
        try:
            cursor = await self._conn.execute(sql, params or ())
            return await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageFaultError(f"query failed: {e}") from e

    async def fetchall(self, sql: str, params: tuple | None = None) -> list[aiosqlite.Row]:
        """Execute and return all rows."""
        try:
            cursor = await self._conn.execute(sql, params or ())
            return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            raise StorageFaultError(f"query failed: {e}") from e

    async def _rollback(self) -> None:
        """Release the write lock a failed statement may still hold.

        A rollback failure is logged, not raised, so the original error wins.
        """
        try:
            await self._conn.rollback()
        except aiosqlite.Error as e:
            logger.warning("Rollback after failed statement also failed: %s", e)

    async def close(self) -> None:
        """Close the database connection."""
        await self._conn.close()


class StorageFaultError(Exception):
    """The SQLite backend failed to read or write."""
