from __future__ import annotations

import logging

import discord

from .config import RosterConfig

log = logging.getLogger("clanroster.permissions")


def has_action_role(user: discord.abc.User, config: RosterConfig) -> bool:
    """The single administrative capability: holding the configured action role."""
    if not config.action_role_id:
        log.warning("ACTION_ROLE_ID is not configured; administrative commands are disabled")
        return False
    if not isinstance(user, discord.Member):
        return False
    return any(role.id == config.action_role_id for role in user.roles)
