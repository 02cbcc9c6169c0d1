"""Embeds and reply texts for roster outcomes."""

from __future__ import annotations

from typing import Optional, Sequence

import discord

from .constants import COLORS, WARN_THRESHOLD
from .identity import format_day
from .moderation.models import (
    AddOutcome,
    BanCheckOutcome,
    BanOutcome,
    BanRecord,
    OperationKind,
    Outcome,
    RankOutcome,
    RemoveOutcome,
    RosterListing,
    UnbanOutcome,
    UnwarnOutcome,
    WarningLedger,
    WarnOutcome,
)
from .ranks import LADDER
from .utils import mention, safe_embed


def _with_note(body: str, note: str) -> str:
    return f"{body}\n\nNote: {note}" if note else body


def render_outcome(outcome: Outcome, threshold: int = WARN_THRESHOLD) -> Optional[discord.Embed]:
    """Log-channel embed for a committed outcome; None for kinds that are not logged."""
    by = f"By {mention(outcome.actor_id)}"

    if isinstance(outcome, AddOutcome):
        lines = "\n".join(
            f"• {r.game_id}{f' ({mention(r.member.linked_identity)})' if r.member.linked_identity else ''}"
            f"{'' if r.created else ' (already listed)'}"
            for r in outcome.results
        )
        joined = format_day(outcome.joined_at) if outcome.joined_at else "-"
        body = f"{by}\nJoined: **{joined}**\nRank: **{outcome.rank.value}**\n\n{lines}"
        embed = safe_embed("Members added", _with_note(body, outcome.note), COLORS["success"])

    elif isinstance(outcome, RemoveOutcome):
        lines = "\n".join(
            f"• {gid}{'' if outcome.existed.get(gid) else ' (not found)'}" for gid in outcome.affected_ids
        )
        when = format_day(outcome.when) if outcome.when else "-"
        body = f"{by}\nDate: **{when}**\n\n{lines}"
        embed = safe_embed("Members removed", _with_note(body, outcome.note), COLORS["muted"])

    elif isinstance(outcome, WarnOutcome):
        body = (
            f"{by}\nGame ID: **{outcome.affected_ids[0]}**\n"
            f"Warnings: **{outcome.count}/{threshold}**\nReason: {outcome.reason}"
        )
        if outcome.escalated:
            body += "\n\nWarning limit reached: **banned**"
        embed = safe_embed("Member warned", body, COLORS["warning"])
        if outcome.evidence_ref:
            embed.set_image(url=outcome.evidence_ref)

    elif isinstance(outcome, BanOutcome):
        record = outcome.record
        body = f"{by}\nGame ID: **{outcome.affected_ids[0]}**\nReason: {(record.reason if record else '') or '-'}"
        if record and record.linked_identity:
            body += f"\nDiscord: {mention(record.linked_identity)}"
        embed = safe_embed("Member banned", body, COLORS["error"])
        if record and record.evidence_ref:
            embed.set_image(url=record.evidence_ref)

    elif isinstance(outcome, UnbanOutcome):
        body = f"{by}\nGame ID: **{outcome.affected_ids[0]}**"
        if outcome.reason:
            body += f"\nReason: {outcome.reason}"
        if outcome.linked_identity:
            body += f"\nDiscord: {mention(outcome.linked_identity)}"
        embed = safe_embed("Ban lifted", body, COLORS["info"])

    elif isinstance(outcome, RankOutcome):
        title = "Member promoted" if outcome.kind is OperationKind.PROMOTE else "Member demoted"
        body = f"{by}\nGame ID: **{outcome.affected_ids[0]}** → **{outcome.rank.value}**"
        if outcome.linked_identity:
            body += f"\nDiscord: {mention(outcome.linked_identity)}"
        embed = safe_embed(title, body, COLORS["default"])

    else:
        return None

    embed.timestamp = outcome.timestamp
    return embed


def reply_text(outcome: Outcome, threshold: int = WARN_THRESHOLD) -> str:
    """Short ephemeral confirmation for the moderator who ran the command."""
    gid = outcome.affected_ids[0] if outcome.affected_ids else "-"
    if isinstance(outcome, AddOutcome):
        return f"Added {len(outcome.results)} member(s) (see log)."
    if isinstance(outcome, RemoveOutcome):
        return f"Removed {len(outcome.affected_ids)} id(s) (see log)."
    if isinstance(outcome, WarnOutcome):
        suffix = " Warning limit reached, id banned." if outcome.escalated else ""
        return f"Warned {gid} ({outcome.count}/{threshold}).{suffix}"
    if isinstance(outcome, UnwarnOutcome):
        return f"Removed warning #{outcome.index} from {gid} ({outcome.remaining} left)."
    if isinstance(outcome, BanOutcome):
        return f"Banned {gid}."
    if isinstance(outcome, UnbanOutcome):
        return f"Unbanned {gid}." if outcome.was_active else f"{gid} had no active ban; nothing to lift."
    if isinstance(outcome, RankOutcome):
        verb = "Promoted" if outcome.kind is OperationKind.PROMOTE else "Demoted"
        return f"{verb} {gid} → {outcome.rank.value}."
    return "Done."


def warn_dm_text(outcome: WarnOutcome, threshold: int = WARN_THRESHOLD) -> str:
    return f"You have been warned in the clan.\nReason: {outcome.reason}\nStatus: {outcome.count}/{threshold}"


def render_roster(listing: RosterListing) -> discord.Embed:
    sections = []
    for rank in LADDER:
        lines = [
            f"• {m.game_id}{f' ({mention(m.linked_identity)})' if m.linked_identity else ''}"
            f" — joined {format_day(m.joined_at)}"
            for m in listing[rank]
        ]
        sections.append(f"**{rank.value}**\n" + ("\n".join(lines) or "-"))
    embed = safe_embed("Clan roster", "\n\n".join(sections))
    embed.timestamp = discord.utils.utcnow()
    return embed


def render_bans(records: Sequence[BanRecord]) -> Optional[discord.Embed]:
    if not records:
        return None
    lines = [
        f"• {b.game_id} — {b.reason or '-'} ({format_day(b.timestamp)}) by {mention(b.moderator_id)}"
        for b in records
    ]
    embed = safe_embed("Banned ids", "\n".join(lines), COLORS["error"])
    embed.timestamp = discord.utils.utcnow()
    return embed


def render_ban_check(outcome: BanCheckOutcome) -> Optional[discord.Embed]:
    """None when the id is not banned (callers reply with plain text)."""
    record = outcome.record
    if not outcome.banned or record is None:
        return None
    body = (
        f"Game ID: **{outcome.game_id}**\nStatus: **banned**\nReason: {record.reason or '-'}\n"
        f"Since: {format_day(record.timestamp)}\nBy: {mention(record.moderator_id)}"
    )
    embed = safe_embed("Ban status", body, COLORS["error"])
    if record.evidence_ref:
        embed.set_image(url=record.evidence_ref)
    embed.timestamp = discord.utils.utcnow()
    return embed


def render_warnlog(game_id: str, ledger: Optional[WarningLedger], threshold: int = WARN_THRESHOLD) -> Optional[discord.Embed]:
    """None for an absent or empty ledger, i.e. a clean record."""
    if ledger is None or not ledger.entries:
        return None
    lines = [
        f"{i}) {e.reason} — {format_day(e.timestamp)} by {mention(e.moderator_id)}"
        f"{' [evidence]' if e.evidence_ref else ''}"
        for i, e in enumerate(ledger.entries, start=1)
    ]
    body = f"Game ID: **{game_id}**\nWarnings: **{ledger.count}/{threshold}**\n\n" + "\n".join(lines)
    embed = safe_embed("Warning log", body, COLORS["warning"])
    embed.timestamp = discord.utils.utcnow()
    return embed
