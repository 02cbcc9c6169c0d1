from __future__ import annotations

from typing import Optional

import aiosqlite

from ..errors import NotFound
from ..identity import from_iso, to_iso
from ..moderation.models import WarningEntry, WarningLedger
from .base import BaseService


class WarningsStore(BaseService[WarningLedger]):
    """Per-game-id warning ledgers.

    A ledger row is created lazily by the first warn and is never deleted;
    only its entries are.
    """

    table = "warning_ledgers"

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS warning_ledgers (
              game_id TEXT PRIMARY KEY,
              created_at_iso TEXT NOT NULL
            )
            """
        )
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS warning_entries (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              game_id TEXT NOT NULL REFERENCES warning_ledgers(game_id),
              reason TEXT NOT NULL,
              created_at_iso TEXT NOT NULL,
              moderator_id INTEGER NOT NULL,
              evidence_ref TEXT NULL
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_warning_entries_gid ON warning_entries(game_id, id)")

    async def _from_row(self, db: aiosqlite.Connection, row: aiosqlite.Row) -> WarningLedger:
        game_id = str(row["game_id"])
        async with db.execute(
            "SELECT reason, created_at_iso, moderator_id, evidence_ref FROM warning_entries WHERE game_id = ? ORDER BY id",
            (game_id,),
        ) as cur:
            rows = await cur.fetchall()
        entries = tuple(
            WarningEntry(
                reason=str(r["reason"]),
                timestamp=from_iso(r["created_at_iso"]),
                moderator_id=int(r["moderator_id"]),
                evidence_ref=r["evidence_ref"],
            )
            for r in rows
        )
        return WarningLedger(game_id=game_id, entries=entries)

    async def append_and_count(self, db: aiosqlite.Connection, game_id: str, entry: WarningEntry) -> int:
        """Append to the ledger (creating it if absent) and return the new entry count.

        Runs inside the caller's transaction so the count observed is the true
        post-append length.
        """
        await db.execute(
            "INSERT INTO warning_ledgers (game_id, created_at_iso) VALUES (?, ?) ON CONFLICT(game_id) DO NOTHING",
            (game_id, to_iso(entry.timestamp)),
        )
        await db.execute(
            "INSERT INTO warning_entries (game_id, reason, created_at_iso, moderator_id, evidence_ref) VALUES (?, ?, ?, ?, ?)",
            (game_id, entry.reason, to_iso(entry.timestamp), int(entry.moderator_id), entry.evidence_ref),
        )
        return await self.count(db, game_id)

    async def count(self, db: aiosqlite.Connection, game_id: str) -> int:
        async with db.execute("SELECT COUNT(*) FROM warning_entries WHERE game_id = ?", (game_id,)) as cur:
            row = await cur.fetchone()
        return int(row[0]) if row else 0

    async def remove_at(self, db: aiosqlite.Connection, game_id: str, index: int) -> tuple[WarningEntry, int]:
        """Delete the ``index``-th entry (1-based, insertion order).

        Returns the removed entry and the remaining count. Raises NotFound when
        the ledger is absent or the index is outside ``[1, count]``.
        """
        ledger: Optional[WarningLedger] = await self.get(game_id, db)
        if ledger is None:
            raise NotFound(f"no warning ledger for {game_id}")
        if index < 1 or index > ledger.count:
            raise NotFound(f"{game_id} has no warning #{index} (has {ledger.count})")
        async with db.execute(
            "SELECT id FROM warning_entries WHERE game_id = ? ORDER BY id LIMIT 1 OFFSET ?",
            (game_id, index - 1),
        ) as cur:
            row = await cur.fetchone()
        await db.execute("DELETE FROM warning_entries WHERE id = ?", (int(row["id"]),))
        return ledger.entries[index - 1], ledger.count - 1
