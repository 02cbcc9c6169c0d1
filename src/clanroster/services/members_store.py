from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

import aiosqlite

from ..identity import from_iso, to_iso
from ..moderation.models import HistoryEntry, Member
from ..ranks import Rank, bucket_for
from .audit_trail import AuditTrail
from .base import BaseService, connect


class MembersStore(BaseService[Member]):
    table = "members"

    def __init__(self, sqlite_path: str, audit: AuditTrail) -> None:
        super().__init__(sqlite_path)
        self.audit = audit

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS members (
              game_id TEXT PRIMARY KEY,
              linked_identity INTEGER NULL,
              rank TEXT NOT NULL,
              joined_at_iso TEXT NOT NULL,
              notes TEXT NOT NULL DEFAULT ''
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_members_joined ON members(joined_at_iso)")

    async def _from_row(self, db: aiosqlite.Connection, row: aiosqlite.Row) -> Member:
        return Member(
            game_id=str(row["game_id"]),
            linked_identity=(int(row["linked_identity"]) if row["linked_identity"] is not None else None),
            rank=bucket_for(row["rank"]),
            joined_at=from_iso(row["joined_at_iso"]),
            notes=str(row["notes"] or ""),
        )

    async def get(self, game_id: str, db: Optional[aiosqlite.Connection] = None) -> Optional[Member]:
        """Member with its full history attached."""
        if db is None:
            async with connect(self._path) as conn:
                return await self.get(game_id, conn)
        member = await self._get_with(db, game_id)
        if member is None:
            return None
        history = await self.audit.for_member(game_id, db)
        return replace(member, history=tuple(history))

    async def insert_if_absent(
        self,
        db: aiosqlite.Connection,
        *,
        game_id: str,
        rank: Rank,
        joined_at: datetime,
        notes: str,
        linked_identity: Optional[int],
        entry: HistoryEntry,
    ) -> tuple[Member, bool]:
        """Set identity fields only on first creation; always append the audit entry.

        Must run inside the caller's transaction. Returns (member, created).
        """
        cur = await db.execute(
            """
            INSERT INTO members (game_id, linked_identity, rank, joined_at_iso, notes)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(game_id) DO NOTHING
            """,
            (game_id, linked_identity, rank.value, to_iso(joined_at), notes),
        )
        created = cur.rowcount > 0
        await self.audit.append(db, game_id, entry)
        member = await self.get(game_id, db)
        assert member is not None
        return member, created

    async def set_rank(
        self,
        db: aiosqlite.Connection,
        *,
        game_id: str,
        rank: Rank,
        joined_at: datetime,
        entry: HistoryEntry,
    ) -> tuple[Member, Optional[Rank], bool]:
        """Upsert the member with ``rank`` and append the audit entry.

        A missing member is created with defaults (``joined_at`` as join date,
        no linked identity, empty notes). Returns (member, previous_rank, created).
        """
        previous = await self._get_with(db, game_id)
        await db.execute(
            """
            INSERT INTO members (game_id, linked_identity, rank, joined_at_iso, notes)
            VALUES (?, NULL, ?, ?, '')
            ON CONFLICT(game_id) DO UPDATE SET rank = excluded.rank
            """,
            (game_id, rank.value, to_iso(joined_at)),
        )
        await self.audit.append(db, game_id, entry)
        member = await self.get(game_id, db)
        assert member is not None
        return member, (previous.rank if previous else None), previous is None

    async def delete(self, db: aiosqlite.Connection, game_id: str) -> bool:
        await self.audit.purge(db, game_id)
        return await super().delete(db, game_id)

    async def existing(self, db: aiosqlite.Connection, game_ids: list[str]) -> set[str]:
        if not game_ids:
            return set()
        marks = ",".join("?" for _ in game_ids)
        async with db.execute(f"SELECT game_id FROM members WHERE game_id IN ({marks})", tuple(game_ids)) as cur:
            rows = await cur.fetchall()
        return {str(r["game_id"]) for r in rows}

    async def all_by_join_date(self) -> list[Member]:
        return await self.find_many(order_by="joined_at_iso ASC, game_id ASC")
