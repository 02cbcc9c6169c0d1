from __future__ import annotations

import logging
from typing import Any, Optional

import discord

from .constants import COLORS, MAX_EMBED_DESCRIPTION, MAX_EMBED_TITLE, MAX_MESSAGE_LENGTH

log = logging.getLogger("clanroster.utils")


def safe_embed(title: str, description: str, color: int = COLORS["default"], **kwargs: Any) -> discord.Embed:
    """Create an embed with safe length limits."""
    if len(title) > MAX_EMBED_TITLE:
        title = title[:MAX_EMBED_TITLE - 1] + "…"
    if len(description) > MAX_EMBED_DESCRIPTION:
        description = description[:MAX_EMBED_DESCRIPTION - 1] + "…"

    return discord.Embed(title=title, description=description, color=color, **kwargs)


def error_embed(message: str) -> discord.Embed:
    """Create a standardized error embed."""
    return safe_embed("Error", message, COLORS["error"])


def truncate_text(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 1] + "…"


def mention(user_id: Optional[int]) -> str:
    return f"<@{user_id}>" if user_id else "-"


async def safe_response(
    interaction: discord.Interaction,
    content: str | None = None,
    embed: discord.Embed | None = None,
    ephemeral: bool = True,
) -> bool:
    """Reply to an interaction whether or not it was already deferred."""
    kwargs: dict[str, Any] = {"ephemeral": ephemeral}
    if content is not None:
        kwargs["content"] = truncate_text(content)
    if embed is not None:
        kwargs["embed"] = embed
    try:
        if interaction.response.is_done():
            await interaction.followup.send(**kwargs)
        else:
            await interaction.response.send_message(**kwargs)
        return True
    except discord.HTTPException as e:
        log.error(f"Failed to send response: {e}")
        return False
