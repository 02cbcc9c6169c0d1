from __future__ import annotations

from typing import Final

# Discord limits
MAX_EMBED_DESCRIPTION: Final[int] = 4096
MAX_EMBED_TITLE: Final[int] = 256
MAX_MESSAGE_LENGTH: Final[int] = 2000

# Warning ledger
WARN_THRESHOLD: Final[int] = 3
ESCALATION_REASON: Final[str] = "threshold reached"

# Input formats
DAY_FORMAT: Final[str] = "%d/%m/%Y"

# Colors (hex values)
COLORS = {
    "default": 0x5865F2,
    "success": 0x57F287,
    "warning": 0xF1C40F,
    "error": 0xED4245,
    "info": 0x3498DB,
    "muted": 0x4F545C,
}

ERROR_MESSAGES = {
    "forbidden": "You do not have permission to use this command.",
    "empty_batch": "Please provide at least one game ID.",
    "unwarn_missing": "No warning found at that position.",
    "store_unavailable": "The roster database is unavailable right now. Please try again.",
    "unexpected": "Something went wrong. Please try again.",
}
