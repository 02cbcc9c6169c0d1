from __future__ import annotations

from typing import Iterable

import aiosqlite

from ..identity import from_iso, to_iso
from ..moderation.models import BanRecord
from .base import BaseService


class BansStore(BaseService[BanRecord]):
    """Single-slot ban record per game id; deactivated, never deleted."""

    table = "bans"

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS bans (
              game_id TEXT PRIMARY KEY,
              active INTEGER NOT NULL DEFAULT 1,
              reason TEXT NOT NULL,
              moderator_id INTEGER NOT NULL,
              created_at_iso TEXT NOT NULL,
              linked_identity INTEGER NULL,
              evidence_ref TEXT NULL
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_bans_active_ts ON bans(active, created_at_iso)")

    async def _from_row(self, db: aiosqlite.Connection, row: aiosqlite.Row) -> BanRecord:
        return BanRecord(
            game_id=str(row["game_id"]),
            active=bool(row["active"]),
            reason=str(row["reason"] or ""),
            moderator_id=int(row["moderator_id"]),
            timestamp=from_iso(row["created_at_iso"]),
            linked_identity=(int(row["linked_identity"]) if row["linked_identity"] is not None else None),
            evidence_ref=row["evidence_ref"],
        )

    async def activate(self, db: aiosqlite.Connection, record: BanRecord) -> BanRecord:
        """Create or overwrite the ban; prior reason/moderator/evidence are not kept."""
        await db.execute(
            """
            INSERT INTO bans (game_id, active, reason, moderator_id, created_at_iso, linked_identity, evidence_ref)
            VALUES (?, 1, ?, ?, ?, ?, ?)
            ON CONFLICT(game_id) DO UPDATE SET
              active = 1,
              reason = excluded.reason,
              moderator_id = excluded.moderator_id,
              created_at_iso = excluded.created_at_iso,
              linked_identity = excluded.linked_identity,
              evidence_ref = excluded.evidence_ref
            """,
            (
                record.game_id,
                record.reason,
                int(record.moderator_id),
                to_iso(record.timestamp),
                record.linked_identity,
                record.evidence_ref,
            ),
        )
        return BanRecord(
            game_id=record.game_id,
            active=True,
            reason=record.reason,
            moderator_id=record.moderator_id,
            timestamp=record.timestamp,
            linked_identity=record.linked_identity,
            evidence_ref=record.evidence_ref,
        )

    async def deactivate(self, db: aiosqlite.Connection, game_id: str) -> bool:
        """Set active=0. Returns True if an active ban was lifted; creates nothing."""
        cur = await db.execute("UPDATE bans SET active = 0 WHERE game_id = ? AND active = 1", (game_id,))
        return cur.rowcount > 0

    async def is_active(self, db: aiosqlite.Connection, game_id: str) -> bool:
        async with db.execute("SELECT 1 FROM bans WHERE game_id = ? AND active = 1", (game_id,)) as cur:
            return await cur.fetchone() is not None

    async def active_among(self, game_ids: Iterable[str]) -> list[BanRecord]:
        ids = list(game_ids)
        if not ids:
            return []
        marks = ",".join("?" for _ in ids)
        return await self.find_many(f"active = 1 AND game_id IN ({marks})", ids)

    async def list_active(self) -> list[BanRecord]:
        return await self.find_many("active = 1", order_by="created_at_iso DESC, game_id ASC")
