from __future__ import annotations

from enum import Enum
from typing import Final

from .errors import ValidationError


class Rank(str, Enum):
    """Fixed four-level clan ladder, highest first."""

    LEADER = "Leader"
    DEPUTY = "Deputy"
    SERGEANT = "Sergeant"
    MEMBER = "Member"


# Highest rank first; also the display order of roster buckets.
LADDER: Final[tuple[Rank, ...]] = (Rank.LEADER, Rank.DEPUTY, Rank.SERGEANT, Rank.MEMBER)

PROMOTABLE: Final[frozenset[Rank]] = frozenset({Rank.DEPUTY, Rank.SERGEANT})
DEMOTABLE: Final[frozenset[Rank]] = frozenset({Rank.SERGEANT, Rank.MEMBER})


def parse_rank(value: Rank | str) -> Rank:
    if isinstance(value, Rank):
        return value
    text = str(value or "").strip()
    for rank in LADDER:
        if text == rank.value or text.upper() == rank.name:
            return rank
    raise ValidationError(f"unknown rank: {value!r}")


def ensure_promotable(value: Rank | str) -> Rank:
    rank = parse_rank(value)
    if rank not in PROMOTABLE:
        raise ValidationError(f"cannot promote to {rank.value}")
    return rank


def ensure_demotable(value: Rank | str) -> Rank:
    rank = parse_rank(value)
    if rank not in DEMOTABLE:
        raise ValidationError(f"cannot demote to {rank.value}")
    return rank


def bucket_for(stored: str) -> Rank:
    """Rank bucket for a persisted value; anything unrecognised lists as Member."""
    try:
        return parse_rank(stored)
    except ValidationError:
        return Rank.MEMBER
