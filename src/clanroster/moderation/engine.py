from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from ..config import RosterConfig
from ..errors import Conflict, Forbidden, ValidationError
from ..identity import normalize_game_id, utcnow
from ..ranks import LADDER, Rank, ensure_demotable, ensure_promotable, parse_rank
from ..services.record_store import RecordStore
from .events import EventBoundary, RoleAction, RoleSignal
from .models import (
    AddOutcome,
    AddResult,
    BanCheckOutcome,
    BanOutcome,
    BanRecord,
    HistoryEntry,
    Member,
    OperationKind,
    RankOutcome,
    RemoveOutcome,
    RosterListing,
    UnbanOutcome,
    UnwarnOutcome,
    WarningEntry,
    WarningLedger,
    WarnOutcome,
)

log = logging.getLogger("clanroster.engine")

Clock = Callable[[], datetime]


def _batch(ids: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for raw in ids:
        gid = normalize_game_id(raw)
        if gid not in seen:
            seen.add(gid)
            out.append(gid)
    if not out:
        raise ValidationError("at least one game id is required")
    return out


class ModerationEngine:
    """Membership and moderation state machine over the record store.

    Each mutation runs as one store transaction; outcomes and role signals are
    handed to the event boundary only after that transaction commits.
    Store failures propagate as StoreUnavailable and are never retried here.
    """

    def __init__(
        self,
        *,
        store: RecordStore,
        events: EventBoundary,
        config: RosterConfig,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.events = events
        self.config = config
        self._clock = clock

    # ---- membership -------------------------------------------------------

    async def add(
        self,
        ids: Iterable[str],
        *,
        actor_id: int,
        authorized: bool,
        linked_identity: Optional[int] = None,
        joined_at: Optional[datetime] = None,
        rank: Rank | str = Rank.MEMBER,
        note: str = "",
    ) -> AddOutcome:
        if not authorized:
            raise Forbidden()
        game_ids = _batch(ids)
        rank = parse_rank(rank)
        now = self._clock()
        joined_at = joined_at or now
        note = note or ""

        # The ban check and the inserts are separate steps: a ban activated in
        # between does not block this batch.
        banned = await self.store.bans.active_among(game_ids)
        if banned:
            rejected = [b.game_id for b in banned]
            log.warning("Add rejected; active bans on %s", ", ".join(rejected))
            raise Conflict(rejected)

        results: list[AddResult] = []
        async with self.store.transaction() as db:
            for gid in game_ids:
                entry = HistoryEntry(
                    timestamp=now,
                    action=OperationKind.ADD.value,
                    actor_id=actor_id,
                    details={"rank": rank.value, "note": note},
                )
                member, created = await self.store.members.insert_if_absent(
                    db,
                    game_id=gid,
                    rank=rank,
                    joined_at=joined_at,
                    notes=note,
                    linked_identity=linked_identity,
                    entry=entry,
                )
                results.append(AddResult(game_id=gid, created=created, member=member))

        outcome = AddOutcome(
            kind=OperationKind.ADD,
            actor_id=actor_id,
            affected_ids=tuple(game_ids),
            timestamp=now,
            rank=rank,
            joined_at=joined_at,
            note=note,
            linked_identity=linked_identity,
            results=tuple(results),
        )
        log.info("Added %d id(s) as %s (%d new)", len(results), rank.value, sum(r.created for r in results))
        self.events.publish(outcome)
        return outcome

    async def remove(
        self,
        ids: Iterable[str],
        *,
        actor_id: int,
        authorized: bool,
        note: str = "",
        when: Optional[datetime] = None,
    ) -> RemoveOutcome:
        """Hard delete members. Warning ledgers and ban records are untouched."""
        if not authorized:
            raise Forbidden()
        game_ids = _batch(ids)
        now = self._clock()

        async with self.store.transaction() as db:
            found = await self.store.members.existing(db, game_ids)
            for gid in game_ids:
                await self.store.members.delete(db, gid)

        outcome = RemoveOutcome(
            kind=OperationKind.REMOVE,
            actor_id=actor_id,
            affected_ids=tuple(game_ids),
            timestamp=now,
            note=note or "",
            when=when or now,
            existed={gid: gid in found for gid in game_ids},
        )
        log.info("Removed %d id(s); %d existed", len(game_ids), len(found))
        self.events.publish(outcome)
        return outcome

    async def list_members(self) -> RosterListing:
        buckets: dict[Rank, list[Member]] = {rank: [] for rank in LADDER}
        for member in await self.store.members.all_by_join_date():
            buckets[member.rank].append(member)
        return RosterListing(buckets={rank: tuple(members) for rank, members in buckets.items()})

    async def history(self, game_id: str) -> list[HistoryEntry]:
        return await self.store.audit.for_member(normalize_game_id(game_id))

    # ---- rank ladder ------------------------------------------------------

    async def promote(
        self, rank: Rank | str, game_id: str, *, actor_id: int, linked_identity: Optional[int] = None
    ) -> RankOutcome:
        return await self._set_rank(OperationKind.PROMOTE, ensure_promotable(rank), game_id, actor_id, linked_identity)

    async def demote(
        self, rank: Rank | str, game_id: str, *, actor_id: int, linked_identity: Optional[int] = None
    ) -> RankOutcome:
        return await self._set_rank(OperationKind.DEMOTE, ensure_demotable(rank), game_id, actor_id, linked_identity)

    async def _set_rank(
        self,
        kind: OperationKind,
        rank: Rank,
        game_id: str,
        actor_id: int,
        linked_identity: Optional[int],
    ) -> RankOutcome:
        # No adjacency rule: any allowed target is set regardless of current rank.
        gid = normalize_game_id(game_id)
        now = self._clock()
        entry = HistoryEntry(timestamp=now, action=kind.value, actor_id=actor_id, details={"rank": rank.value})
        async with self.store.transaction() as db:
            _, previous, created = await self.store.members.set_rank(
                db, game_id=gid, rank=rank, joined_at=now, entry=entry
            )

        outcome = RankOutcome(
            kind=kind,
            actor_id=actor_id,
            affected_ids=(gid,),
            timestamp=now,
            rank=rank,
            previous_rank=previous,
            created=created,
            linked_identity=linked_identity,
        )
        log.info("%s %s: %s -> %s", kind.value.capitalize(), gid, previous.value if previous else "-", rank.value)
        self.events.publish(outcome)
        return outcome

    # ---- warnings ---------------------------------------------------------

    async def warn(
        self,
        game_id: str,
        reason: str,
        *,
        actor_id: int,
        linked_identity: Optional[int] = None,
        evidence_ref: Optional[str] = None,
    ) -> WarnOutcome:
        gid = normalize_game_id(game_id)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("a warning needs a reason")
        now = self._clock()
        threshold = self.config.warn_threshold
        entry = WarningEntry(reason=reason, timestamp=now, moderator_id=actor_id, evidence_ref=evidence_ref)

        # Append, count and the escalation decision share one write transaction.
        escalated = False
        async with self.store.transaction() as db:
            count = await self.store.warnings.append_and_count(db, gid, entry)
            if count >= threshold and not await self.store.bans.is_active(db, gid):
                await self.store.bans.activate(
                    db,
                    BanRecord(
                        game_id=gid,
                        active=True,
                        reason=self.config.escalation_reason,
                        moderator_id=actor_id,
                        timestamp=now,
                        linked_identity=linked_identity,
                        evidence_ref=evidence_ref,
                    ),
                )
                escalated = True
            await self.store.audit.append_if_member(
                db,
                gid,
                HistoryEntry(
                    timestamp=now,
                    action=OperationKind.WARN.value,
                    actor_id=actor_id,
                    details={"reason": reason, "count": count, "escalated": escalated},
                ),
            )

        outcome = WarnOutcome(
            kind=OperationKind.WARN,
            actor_id=actor_id,
            affected_ids=(gid,),
            timestamp=now,
            reason=reason,
            count=count,
            escalated=escalated,
            linked_identity=linked_identity,
            evidence_ref=evidence_ref,
        )
        log.info("Warned %s (%d/%d)%s", gid, count, threshold, " -> escalated to ban" if escalated else "")
        self.events.publish(outcome)
        if escalated and linked_identity is not None:
            self.events.signal(
                RoleSignal(RoleAction.REVOKE, linked_identity, gid, reason=self.config.escalation_reason)
            )
        return outcome

    async def warnlog(self, game_id: str) -> Optional[WarningLedger]:
        return await self.store.warnings.get(normalize_game_id(game_id))

    async def unwarn(self, game_id: str, index: int, *, actor_id: int) -> UnwarnOutcome:
        """Remove the index-th warning (1-based). Prior escalations are not reversed."""
        gid = normalize_game_id(game_id)
        now = self._clock()
        async with self.store.transaction() as db:
            removed, remaining = await self.store.warnings.remove_at(db, gid, int(index))
            await self.store.audit.append_if_member(
                db,
                gid,
                HistoryEntry(
                    timestamp=now,
                    action=OperationKind.UNWARN.value,
                    actor_id=actor_id,
                    details={"index": int(index), "reason": removed.reason},
                ),
            )

        outcome = UnwarnOutcome(
            kind=OperationKind.UNWARN,
            actor_id=actor_id,
            affected_ids=(gid,),
            timestamp=now,
            index=int(index),
            removed=removed,
            remaining=remaining,
        )
        log.info("Removed warning #%d from %s (%d left)", int(index), gid, remaining)
        self.events.publish(outcome)
        return outcome

    # ---- bans -------------------------------------------------------------

    async def ban(
        self,
        game_id: str,
        reason: str,
        *,
        actor_id: int,
        linked_identity: Optional[int] = None,
        evidence_ref: Optional[str] = None,
    ) -> BanOutcome:
        """Activate or overwrite the ban; no prior warnings are required."""
        gid = normalize_game_id(game_id)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("a ban needs a reason")
        now = self._clock()
        record = BanRecord(
            game_id=gid,
            active=True,
            reason=reason,
            moderator_id=actor_id,
            timestamp=now,
            linked_identity=linked_identity,
            evidence_ref=evidence_ref,
        )
        async with self.store.transaction() as db:
            record = await self.store.bans.activate(db, record)
            await self.store.audit.append_if_member(
                db,
                gid,
                HistoryEntry(timestamp=now, action=OperationKind.BAN.value, actor_id=actor_id, details={"reason": record.reason}),
            )

        outcome = BanOutcome(kind=OperationKind.BAN, actor_id=actor_id, affected_ids=(gid,), timestamp=now, record=record)
        log.info("Banned %s: %s", gid, record.reason)
        self.events.publish(outcome)
        if linked_identity is not None:
            self.events.signal(RoleSignal(RoleAction.REVOKE, linked_identity, gid, reason=record.reason))
        return outcome

    async def unban(
        self,
        game_id: str,
        *,
        actor_id: int,
        reason: str = "",
        linked_identity: Optional[int] = None,
    ) -> UnbanOutcome:
        """Deactivate the ban. Unbanning an id that was never banned succeeds."""
        gid = normalize_game_id(game_id)
        now = self._clock()
        async with self.store.transaction() as db:
            was_active = await self.store.bans.deactivate(db, gid)
            await self.store.audit.append_if_member(
                db,
                gid,
                HistoryEntry(timestamp=now, action=OperationKind.UNBAN.value, actor_id=actor_id, details={"reason": reason or ""}),
            )

        outcome = UnbanOutcome(
            kind=OperationKind.UNBAN,
            actor_id=actor_id,
            affected_ids=(gid,),
            timestamp=now,
            reason=reason or "",
            linked_identity=linked_identity,
            was_active=was_active,
        )
        log.info("Unbanned %s%s", gid, "" if was_active else " (no active ban)")
        self.events.publish(outcome)
        if linked_identity is not None:
            self.events.signal(RoleSignal(RoleAction.RESTORE, linked_identity, gid, reason=reason or ""))
        return outcome

    async def ban_check(self, game_id: str) -> BanCheckOutcome:
        gid = normalize_game_id(game_id)
        record = await self.store.bans.get(gid)
        if record is None or not record.active:
            return BanCheckOutcome(game_id=gid, banned=False)
        return BanCheckOutcome(game_id=gid, banned=True, record=record)

    async def list_bans(self) -> list[BanRecord]:
        return await self.store.bans.list_active()
