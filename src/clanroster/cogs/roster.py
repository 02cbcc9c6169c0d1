from __future__ import annotations

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..config import RosterConfig
from ..identity import parse_day, split_game_ids
from ..moderation.engine import ModerationEngine
from ..permissions import has_action_role
from ..ranks import DEMOTABLE, LADDER, PROMOTABLE, Rank
from ..render import (
    render_ban_check,
    render_bans,
    render_roster,
    render_warnlog,
    reply_text,
)
from ..utils import safe_response

log = logging.getLogger("clanroster.cogs.roster")

RANK_CHOICES = [app_commands.Choice(name=r.value, value=r.value) for r in LADDER]
PROMOTE_CHOICES = [app_commands.Choice(name=r.value, value=r.value) for r in LADDER if r in PROMOTABLE]
DEMOTE_CHOICES = [app_commands.Choice(name=r.value, value=r.value) for r in LADDER if r in DEMOTABLE]


def _user_id(user: Optional[discord.abc.User]) -> Optional[int]:
    return user.id if user is not None else None


def _url(attachment: Optional[discord.Attachment]) -> Optional[str]:
    return attachment.url if attachment is not None else None


class RosterCog(commands.Cog):
    """Slash commands for the clan roster; every command delegates to the engine."""

    def __init__(self, bot: commands.Bot, engine: ModerationEngine, config: RosterConfig) -> None:
        self.bot = bot
        self.engine = engine
        self.config = config

    # ---- membership -------------------------------------------------------

    @app_commands.command(name="add", description="Add one or more game ids (separated by spaces).")
    @app_commands.describe(
        ids="Game ids: A B C",
        discord_user="Linked Discord account (optional)",
        day="Join date DD/MM/YYYY (blank = today)",
        rank="Clan rank",
        note="Extra note (optional)",
    )
    @app_commands.rename(discord_user="discord")
    @app_commands.choices(rank=RANK_CHOICES)
    @app_commands.guild_only()
    async def add(
        self,
        interaction: discord.Interaction,
        ids: str,
        discord_user: Optional[discord.User] = None,
        day: Optional[str] = None,
        rank: Optional[app_commands.Choice[str]] = None,
        note: Optional[str] = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True)
        outcome = await self.engine.add(
            split_game_ids(ids),
            actor_id=interaction.user.id,
            authorized=has_action_role(interaction.user, self.config),
            linked_identity=_user_id(discord_user),
            joined_at=parse_day(day),
            rank=rank.value if rank else Rank.MEMBER,
            note=note or "",
        )
        await safe_response(interaction, reply_text(outcome))

    @app_commands.command(name="remove", description="Remove one or more game ids (separated by spaces).")
    @app_commands.describe(ids="Game ids: A B C", day="Removal date DD/MM/YYYY (blank = today)", note="Reason / note")
    @app_commands.guild_only()
    async def remove(
        self,
        interaction: discord.Interaction,
        ids: str,
        day: Optional[str] = None,
        note: Optional[str] = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True)
        outcome = await self.engine.remove(
            split_game_ids(ids),
            actor_id=interaction.user.id,
            authorized=has_action_role(interaction.user, self.config),
            note=note or "",
            when=parse_day(day),
        )
        await safe_response(interaction, reply_text(outcome))

    @app_commands.command(name="list", description="List members by rank with join dates.")
    @app_commands.guild_only()
    async def list_members(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        listing = await self.engine.list_members()
        await safe_response(interaction, embed=render_roster(listing))

    # ---- bans -------------------------------------------------------------

    @app_commands.command(name="list-ban", description="List banned game ids.")
    @app_commands.guild_only()
    async def list_ban(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        embed = render_bans(await self.engine.list_bans())
        if embed is None:
            await safe_response(interaction, "No one is banned.")
            return
        await safe_response(interaction, embed=embed)

    @app_commands.command(name="ban-check", description="Check whether a game id is banned and why.")
    @app_commands.describe(game_id="Game id")
    @app_commands.guild_only()
    async def ban_check(self, interaction: discord.Interaction, game_id: str) -> None:
        await interaction.response.defer(ephemeral=True)
        outcome = await self.engine.ban_check(game_id)
        embed = render_ban_check(outcome)
        if embed is None:
            await safe_response(interaction, f"Game id **{outcome.game_id}** is not banned.")
            return
        await safe_response(interaction, embed=embed)

    @app_commands.command(name="ban", description="Ban a game id from the clan (does not kick from the server).")
    @app_commands.describe(
        game_id="Game id",
        reason="Reason for the ban",
        discord_user="Linked Discord account (optional)",
        evidence="Evidence image (optional)",
    )
    @app_commands.rename(discord_user="discord")
    @app_commands.guild_only()
    async def ban(
        self,
        interaction: discord.Interaction,
        game_id: str,
        reason: str,
        discord_user: Optional[discord.User] = None,
        evidence: Optional[discord.Attachment] = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True)
        outcome = await self.engine.ban(
            game_id,
            reason,
            actor_id=interaction.user.id,
            linked_identity=_user_id(discord_user),
            evidence_ref=_url(evidence),
        )
        await safe_response(interaction, reply_text(outcome))

    @app_commands.command(name="unban", description="Lift a ban.")
    @app_commands.describe(game_id="Game id", reason="Reason (optional)", discord_user="Linked Discord account (optional)")
    @app_commands.rename(discord_user="discord")
    @app_commands.guild_only()
    async def unban(
        self,
        interaction: discord.Interaction,
        game_id: str,
        reason: Optional[str] = None,
        discord_user: Optional[discord.User] = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True)
        outcome = await self.engine.unban(
            game_id,
            actor_id=interaction.user.id,
            reason=reason or "",
            linked_identity=_user_id(discord_user),
        )
        await safe_response(interaction, reply_text(outcome))

    # ---- warnings ---------------------------------------------------------

    @app_commands.command(name="warn", description="Warn a member (kept in their warning log).")
    @app_commands.describe(
        game_id="Game id",
        reason="What the warning is for",
        discord_user="Discord account to notify by DM (optional)",
        evidence="Evidence image (optional)",
    )
    @app_commands.rename(discord_user="discord")
    @app_commands.guild_only()
    async def warn(
        self,
        interaction: discord.Interaction,
        game_id: str,
        reason: str,
        discord_user: Optional[discord.User] = None,
        evidence: Optional[discord.Attachment] = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True)
        outcome = await self.engine.warn(
            game_id,
            reason,
            actor_id=interaction.user.id,
            linked_identity=_user_id(discord_user),
            evidence_ref=_url(evidence),
        )
        await safe_response(interaction, reply_text(outcome, self.config.warn_threshold))

    @app_commands.command(name="warnlog", description="Show the warning log of a game id.")
    @app_commands.describe(game_id="Game id")
    @app_commands.guild_only()
    async def warnlog(self, interaction: discord.Interaction, game_id: str) -> None:
        await interaction.response.defer(ephemeral=True)
        ledger = await self.engine.warnlog(game_id)
        embed = render_warnlog(game_id.strip(), ledger, self.config.warn_threshold)
        if embed is None:
            await safe_response(interaction, f"Game id **{game_id.strip()}** has a clean record.")
            return
        await safe_response(interaction, embed=embed)

    @app_commands.command(name="unwarn", description="Remove a warning by its position (1 = first).")
    @app_commands.describe(game_id="Game id", index="Position in the warning log, 1 = first")
    @app_commands.guild_only()
    async def unwarn(self, interaction: discord.Interaction, game_id: str, index: int) -> None:
        await interaction.response.defer(ephemeral=True)
        outcome = await self.engine.unwarn(game_id, index, actor_id=interaction.user.id)
        await safe_response(interaction, reply_text(outcome))

    # ---- rank ladder ------------------------------------------------------

    @app_commands.command(name="promote", description="Promote to Deputy or Sergeant.")
    @app_commands.describe(rank="Target rank", game_id="Game id", discord_user="Linked Discord account (optional)")
    @app_commands.rename(discord_user="discord")
    @app_commands.choices(rank=PROMOTE_CHOICES)
    @app_commands.guild_only()
    async def promote(
        self,
        interaction: discord.Interaction,
        rank: app_commands.Choice[str],
        game_id: str,
        discord_user: Optional[discord.User] = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True)
        outcome = await self.engine.promote(
            rank.value, game_id, actor_id=interaction.user.id, linked_identity=_user_id(discord_user)
        )
        await safe_response(interaction, reply_text(outcome))

    @app_commands.command(name="demote", description="Demote to Sergeant or Member.")
    @app_commands.describe(rank="Target rank", game_id="Game id", discord_user="Linked Discord account (optional)")
    @app_commands.rename(discord_user="discord")
    @app_commands.choices(rank=DEMOTE_CHOICES)
    @app_commands.guild_only()
    async def demote(
        self,
        interaction: discord.Interaction,
        rank: app_commands.Choice[str],
        game_id: str,
        discord_user: Optional[discord.User] = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True)
        outcome = await self.engine.demote(
            rank.value, game_id, actor_id=interaction.user.id, linked_identity=_user_id(discord_user)
        )
        await safe_response(interaction, reply_text(outcome))
