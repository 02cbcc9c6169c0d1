from __future__ import annotations

import logging

import discord
from discord.ext import commands

from ..config import RosterConfig

log = logging.getLogger("clanroster.welcome")


def welcome_text(member_id: int, talk_channel_id: int) -> str:
    text = f"Welcome <@{member_id}>!"
    if talk_channel_id:
        text += f"\nFeel free to introduce yourself and chat in <#{talk_channel_id}>. Tag an admin if you need anything."
    return text


class WelcomeCog(commands.Cog):
    """Greets members when they receive the clan member role."""

    def __init__(self, bot: commands.Bot, config: RosterConfig) -> None:
        self.bot = bot
        self.config = config

    @commands.Cog.listener()
    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        role_id = self.config.member_role_id
        if not role_id or not self.config.welcome_channel_id:
            return
        had_role = any(r.id == role_id for r in before.roles)
        has_role = any(r.id == role_id for r in after.roles)
        if had_role or not has_role:
            return

        channel = after.guild.get_channel(self.config.welcome_channel_id)
        if not isinstance(channel, discord.TextChannel):
            log.warning("Welcome channel %s missing in guild %s", self.config.welcome_channel_id, after.guild.id)
            return
        try:
            await channel.send(welcome_text(after.id, self.config.talk_channel_id))
        except discord.HTTPException as e:
            log.error(f"Failed to send welcome message: {e}")
