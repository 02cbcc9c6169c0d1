from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..ranks import Rank


class OperationKind(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    WARN = "warn"
    UNWARN = "unwarn"
    BAN = "ban"
    UNBAN = "unban"
    PROMOTE = "promote"
    DEMOTE = "demote"


@dataclass(frozen=True)
class HistoryEntry:
    """One append-only audit line on a member."""

    timestamp: datetime
    action: str
    actor_id: int
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Member:
    game_id: str
    rank: Rank
    joined_at: datetime
    linked_identity: Optional[int] = None
    notes: str = ""
    history: tuple[HistoryEntry, ...] = ()


@dataclass(frozen=True)
class WarningEntry:
    reason: str
    timestamp: datetime
    moderator_id: int
    evidence_ref: Optional[str] = None


@dataclass(frozen=True)
class WarningLedger:
    game_id: str
    entries: tuple[WarningEntry, ...] = ()

    @property
    def count(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class BanRecord:
    game_id: str
    active: bool
    reason: str
    moderator_id: int
    timestamp: datetime
    linked_identity: Optional[int] = None
    evidence_ref: Optional[str] = None


# Outcomes handed back to the caller and published to the notifier.


@dataclass(frozen=True)
class Outcome:
    kind: OperationKind
    actor_id: int
    affected_ids: tuple[str, ...]
    timestamp: datetime


@dataclass(frozen=True)
class AddResult:
    game_id: str
    created: bool
    member: Member


@dataclass(frozen=True)
class AddOutcome(Outcome):
    rank: Rank = Rank.MEMBER
    joined_at: Optional[datetime] = None
    note: str = ""
    linked_identity: Optional[int] = None
    results: tuple[AddResult, ...] = ()


@dataclass(frozen=True)
class RemoveOutcome(Outcome):
    note: str = ""
    when: Optional[datetime] = None
    # game_id -> whether a Member record existed before deletion
    existed: dict[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class WarnOutcome(Outcome):
    reason: str = ""
    count: int = 0
    escalated: bool = False
    linked_identity: Optional[int] = None
    evidence_ref: Optional[str] = None


@dataclass(frozen=True)
class UnwarnOutcome(Outcome):
    index: int = 0
    removed: Optional[WarningEntry] = None
    remaining: int = 0


@dataclass(frozen=True)
class BanOutcome(Outcome):
    record: Optional[BanRecord] = None


@dataclass(frozen=True)
class UnbanOutcome(Outcome):
    reason: str = ""
    linked_identity: Optional[int] = None
    # False when there was no record, or it was already inactive
    was_active: bool = False


@dataclass(frozen=True)
class RankOutcome(Outcome):
    rank: Rank = Rank.MEMBER
    previous_rank: Optional[Rank] = None
    created: bool = False
    linked_identity: Optional[int] = None


@dataclass(frozen=True)
class BanCheckOutcome:
    game_id: str
    banned: bool
    record: Optional[BanRecord] = None


@dataclass(frozen=True)
class RosterListing:
    buckets: dict[Rank, tuple[Member, ...]]

    def __getitem__(self, rank: Rank) -> tuple[Member, ...]:
        return self.buckets.get(rank, ())

    def game_ids(self) -> list[str]:
        return [m.game_id for members in self.buckets.values() for m in members]
