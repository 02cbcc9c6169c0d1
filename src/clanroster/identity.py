"""Game-id normalization and the date inputs that travel with roster commands."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from .constants import DAY_FORMAT
from .errors import ValidationError


def normalize_game_id(raw: str) -> str:
    """Trim surrounding whitespace; case is preserved. Empty ids are rejected."""
    gid = (raw or "").strip()
    if not gid:
        raise ValidationError("game id must not be empty")
    if any(ch.isspace() for ch in gid):
        raise ValidationError(f"game id must not contain whitespace: {gid!r}")
    return gid


def split_game_ids(raw: str) -> list[str]:
    """Split a whitespace separated batch, dropping blanks and repeats (first occurrence wins)."""
    seen: set[str] = set()
    ids: list[str] = []
    for part in (raw or "").split():
        gid = normalize_game_id(part)
        if gid in seen:
            continue
        seen.add(gid)
        ids.append(gid)
    return ids


def parse_day(raw: Optional[str]) -> Optional[datetime]:
    """Parse ``DD/MM/YYYY`` (``-`` also accepted as separator) to UTC midnight.

    Returns None when the value is absent or unparseable so callers can fall
    back to "now".
    """
    if not raw:
        return None
    text = raw.replace("-", "/").strip()
    try:
        day = datetime.strptime(text, DAY_FORMAT)
    except ValueError:
        return None
    return day.replace(tzinfo=timezone.utc)


def format_day(value: datetime) -> str:
    return value.strftime(DAY_FORMAT)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Fixed-width UTC ISO timestamp; stored values sort lexically in time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
