from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Generic, Optional, Sequence, TypeVar

import aiosqlite

from ..errors import StoreUnavailable

T = TypeVar("T")
log = logging.getLogger("clanroster.base_service")

# Seconds a connection waits on SQLite's write lock before giving up.
BUSY_TIMEOUT_SECONDS = 10.0


@asynccontextmanager
async def connect(sqlite_path: str) -> AsyncIterator[aiosqlite.Connection]:
    """Autocommit connection with Row access; sqlite errors become StoreUnavailable."""
    try:
        async with aiosqlite.connect(sqlite_path, timeout=BUSY_TIMEOUT_SECONDS, isolation_level=None) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON")
            yield db
    except sqlite3.Error as e:
        log.error("Store operation failed on %s: %s", sqlite_path, e)
        raise StoreUnavailable(str(e)) from e


@asynccontextmanager
async def transaction(sqlite_path: str) -> AsyncIterator[aiosqlite.Connection]:
    """Single atomic unit of work.

    BEGIN IMMEDIATE takes the write lock before the first read, so concurrent
    read-check-write sequences against the same database are serialized.
    """
    async with connect(sqlite_path) as db:
        await db.execute("BEGIN IMMEDIATE")
        try:
            yield db
        except BaseException:
            await db.execute("ROLLBACK")
            raise
        await db.execute("COMMIT")


class BaseService(ABC, Generic[T]):
    """Base class for one SQLite-backed collection keyed by game id."""

    table: str = ""

    def __init__(self, sqlite_path: str) -> None:
        self._path = sqlite_path
        self._logger = logging.getLogger(f"clanroster.{self.__class__.__name__.lower()}")

    async def init(self) -> None:
        """Initialize the database schema."""
        async with transaction(self._path) as db:
            await self._create_tables(db)
        self._logger.debug("Schema ready for %s", self.table)

    @abstractmethod
    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        """Create the necessary database tables."""

    @abstractmethod
    async def _from_row(self, db: aiosqlite.Connection, row: aiosqlite.Row) -> T:
        """Convert a database row to the service's record type."""

    @property
    def _get_query(self) -> str:
        return f"SELECT * FROM {self.table} WHERE game_id = ?"

    async def get(self, game_id: str, db: Optional[aiosqlite.Connection] = None) -> Optional[T]:
        if db is not None:
            return await self._get_with(db, game_id)
        async with connect(self._path) as conn:
            return await self._get_with(conn, game_id)

    async def _get_with(self, db: aiosqlite.Connection, game_id: str) -> Optional[T]:
        async with db.execute(self._get_query, (game_id,)) as cur:
            row = await cur.fetchone()
        if row is None:
            return None
        return await self._from_row(db, row)

    async def delete(self, db: aiosqlite.Connection, game_id: str) -> bool:
        """Hard delete inside the caller's transaction; True if a row existed."""
        cur = await db.execute(f"DELETE FROM {self.table} WHERE game_id = ?", (game_id,))
        return cur.rowcount > 0

    async def find_many(
        self,
        where: str = "1 = 1",
        params: Sequence[Any] = (),
        order_by: str = "game_id",
        db: Optional[aiosqlite.Connection] = None,
    ) -> list[T]:
        query = f"SELECT * FROM {self.table} WHERE {where} ORDER BY {order_by}"
        if db is not None:
            return await self._find_with(db, query, params)
        async with connect(self._path) as conn:
            return await self._find_with(conn, query, params)

    async def _find_with(self, db: aiosqlite.Connection, query: str, params: Sequence[Any]) -> list[T]:
        async with db.execute(query, tuple(params)) as cur:
            rows = await cur.fetchall()
        return [await self._from_row(db, row) for row in rows]

    def transaction(self):
        return transaction(self._path)
