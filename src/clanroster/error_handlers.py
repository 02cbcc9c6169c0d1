from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from .constants import ERROR_MESSAGES
from .errors import Conflict, Forbidden, ModerationError, NotFound, StoreUnavailable, ValidationError
from .utils import error_embed, safe_response

log = logging.getLogger("clanroster.error_handlers")


def describe_error(error: ModerationError) -> str:
    """User-facing text for an engine error."""
    if isinstance(error, Forbidden):
        return ERROR_MESSAGES["forbidden"]
    if isinstance(error, Conflict):
        listed = "\n".join(f"• {gid} (banned)" for gid in error.game_ids)
        return f"Some ids are under an active ban and cannot be added:\n{listed}"
    if isinstance(error, NotFound):
        return ERROR_MESSAGES["unwarn_missing"]
    if isinstance(error, ValidationError):
        return str(error) or ERROR_MESSAGES["empty_batch"]
    if isinstance(error, StoreUnavailable):
        return ERROR_MESSAGES["store_unavailable"]
    return ERROR_MESSAGES["unexpected"]


async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
    """Handle application command errors."""
    original = getattr(error, "original", error)

    if isinstance(original, ModerationError):
        if isinstance(original, StoreUnavailable):
            log.error("Store unavailable during /%s: %s", getattr(interaction.command, "name", "?"), original)
        else:
            log.info("Rejected /%s: %s", getattr(interaction.command, "name", "?"), original)
        await safe_response(interaction, embed=error_embed(describe_error(original)))
        return

    if isinstance(error, app_commands.CheckFailure):
        await safe_response(interaction, embed=error_embed(ERROR_MESSAGES["forbidden"]))
        return

    # Log unexpected errors
    log.exception(f"Unexpected error in app command {interaction.command}: {original}", exc_info=original)
    await safe_response(interaction, embed=error_embed(ERROR_MESSAGES["unexpected"]))


async def setup_error_handlers(bot: commands.Bot) -> None:
    """Setup error handlers for the bot."""
    bot.tree.error(on_app_command_error)
