from __future__ import annotations

import logging

import discord

from ..config import RosterConfig
from ..moderation.events import RoleAction, RoleSignal

log = logging.getLogger("clanroster.role_sync")


class DiscordRoleSync:
    """Applies revoke/restore signals to the configured member role."""

    def __init__(self, bot: discord.Client, config: RosterConfig) -> None:
        self.bot = bot
        self.config = config

    async def apply(self, signal: RoleSignal) -> None:
        if not self.config.member_role_id:
            log.debug("MEMBER_ROLE_ID not configured; skipping role %s", signal.action.value)
            return

        for guild in list(self.bot.guilds):
            role = guild.get_role(self.config.member_role_id)
            if role is None:
                continue
            member = guild.get_member(signal.linked_identity)
            if member is None:
                try:
                    member = await guild.fetch_member(signal.linked_identity)
                except discord.NotFound:
                    continue

            reason = f"clan {signal.action.value}: {signal.game_id}"
            if signal.action is RoleAction.REVOKE:
                await member.remove_roles(role, reason=reason)
            else:
                await member.add_roles(role, reason=reason)
            log.info("Role %s applied to %s in %s", signal.action.value, member.id, guild.id)
