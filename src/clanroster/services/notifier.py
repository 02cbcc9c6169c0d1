from __future__ import annotations

import logging
from typing import Optional

import discord

from ..config import RosterConfig
from ..moderation.models import Outcome, WarnOutcome
from ..render import render_outcome, warn_dm_text

log = logging.getLogger("clanroster.notifier")


class DiscordNotifier:
    """Delivers committed outcomes to the log channel configured for their kind."""

    def __init__(self, bot: discord.Client, config: RosterConfig) -> None:
        self.bot = bot
        self.config = config

    async def deliver(self, outcome: Outcome) -> None:
        embed = render_outcome(outcome, self.config.warn_threshold)
        channel_id = self.config.channel_for(outcome.kind)
        if embed is not None and channel_id:
            channel = await self._text_channel(channel_id)
            if channel is None:
                log.warning("Log channel %s for %s is missing or not a text channel", channel_id, outcome.kind.value)
            else:
                await channel.send(embed=embed)
        else:
            log.debug("No log destination for %s", outcome.kind.value)

        if isinstance(outcome, WarnOutcome) and outcome.linked_identity:
            await self._dm_warned(outcome)

    async def _text_channel(self, channel_id: int) -> Optional[discord.TextChannel]:
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(channel_id)
            except discord.NotFound:
                return None
        return channel if isinstance(channel, discord.TextChannel) else None

    async def _dm_warned(self, outcome: WarnOutcome) -> None:
        user_id = int(outcome.linked_identity or 0)
        try:
            user = self.bot.get_user(user_id) or await self.bot.fetch_user(user_id)
            await user.send(warn_dm_text(outcome, self.config.warn_threshold))
        except discord.HTTPException as e:
            # Closed DMs are common; not worth more than a note.
            log.info("Could not DM warned user %s: %s", user_id, e)
