from __future__ import annotations

import json
from typing import Optional

import aiosqlite

from ..identity import from_iso, to_iso
from ..moderation.models import HistoryEntry
from .base import BaseService, connect


class AuditTrail(BaseService[HistoryEntry]):
    """Append-only per-member history.

    Rows are only ever inserted; they disappear solely with their member on a
    hard ``remove``.
    """

    table = "member_history"

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS member_history (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              game_id TEXT NOT NULL REFERENCES members(game_id) ON DELETE CASCADE,
              created_at_iso TEXT NOT NULL,
              action TEXT NOT NULL,
              actor_id INTEGER NOT NULL,
              details_json TEXT NOT NULL
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_member_history_gid ON member_history(game_id, id)")

    async def _from_row(self, db: aiosqlite.Connection, row: aiosqlite.Row) -> HistoryEntry:
        return HistoryEntry(
            timestamp=from_iso(row["created_at_iso"]),
            action=str(row["action"]),
            actor_id=int(row["actor_id"]),
            details=json.loads(row["details_json"]),
        )

    async def append(self, db: aiosqlite.Connection, game_id: str, entry: HistoryEntry) -> int:
        details_json = json.dumps(entry.details, separators=(",", ":"), ensure_ascii=False, default=str)
        cur = await db.execute(
            "INSERT INTO member_history (game_id, created_at_iso, action, actor_id, details_json) VALUES (?, ?, ?, ?, ?)",
            (game_id, to_iso(entry.timestamp), entry.action, int(entry.actor_id), details_json),
        )
        return int(cur.lastrowid)

    async def append_if_member(self, db: aiosqlite.Connection, game_id: str, entry: HistoryEntry) -> bool:
        """Append only when a member row exists; never creates one."""
        async with db.execute("SELECT 1 FROM members WHERE game_id = ?", (game_id,)) as cur:
            if await cur.fetchone() is None:
                return False
        await self.append(db, game_id, entry)
        return True

    async def for_member(self, game_id: str, db: Optional[aiosqlite.Connection] = None) -> list[HistoryEntry]:
        if db is not None:
            return await self.find_many("game_id = ?", (game_id,), order_by="id", db=db)
        async with connect(self._path) as conn:
            return await self.find_many("game_id = ?", (game_id,), order_by="id", db=conn)

    async def purge(self, db: aiosqlite.Connection, game_id: str) -> int:
        cur = await db.execute("DELETE FROM member_history WHERE game_id = ?", (game_id,))
        return int(cur.rowcount)
