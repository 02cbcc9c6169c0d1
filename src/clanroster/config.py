from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .constants import ESCALATION_REASON, WARN_THRESHOLD
from .moderation.models import OperationKind


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}


def _get_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip() or default


@dataclass(frozen=True)
class RosterConfig:
    """Fixed platform identifiers bound at process start.

    Injected into the engine, notifier, role synchronizer and welcome cog;
    0 means "not configured".
    """

    action_role_id: int = 0
    member_role_id: int = 0
    welcome_channel_id: int = 0
    talk_channel_id: int = 0
    # One log destination per operation category.
    log_channels: Mapping[OperationKind, int] = field(default_factory=dict)
    warn_threshold: int = WARN_THRESHOLD
    escalation_reason: str = ESCALATION_REASON

    def channel_for(self, kind: OperationKind) -> Optional[int]:
        channel_id = self.log_channels.get(kind, 0)
        return channel_id or None


@dataclass(frozen=True)
class Settings:
    token: str
    sqlite_path: str
    log_level: str
    register_commands: bool
    guild_id: int
    dispatch_max_size: int
    roster: RosterConfig


def load_roster_config() -> RosterConfig:
    return RosterConfig(
        action_role_id=_get_int("ACTION_ROLE_ID", 0),
        member_role_id=_get_int("MEMBER_ROLE_ID", 0),
        welcome_channel_id=_get_int("WELCOME_CHANNEL_ID", 0),
        talk_channel_id=_get_int("TALK_CHANNEL_ID", 0),
        log_channels={
            OperationKind.ADD: _get_int("ADD_LOG_CHANNEL_ID", 0),
            OperationKind.REMOVE: _get_int("REMOVE_LOG_CHANNEL_ID", 0),
            OperationKind.WARN: _get_int("WARN_LOG_CHANNEL_ID", 0),
            OperationKind.BAN: _get_int("BAN_LOG_CHANNEL_ID", 0),
            OperationKind.UNBAN: _get_int("UNBAN_LOG_CHANNEL_ID", 0),
            OperationKind.PROMOTE: _get_int("PROMOTE_LOG_CHANNEL_ID", 0),
            OperationKind.DEMOTE: _get_int("DEMOTE_LOG_CHANNEL_ID", 0),
        },
    )


def load_settings() -> Settings:
    token = os.getenv("DISCORD_TOKEN", "").strip()
    if not token:
        raise RuntimeError("DISCORD_TOKEN is required")
    return Settings(
        token=token,
        sqlite_path=_get_str("SQLITE_PATH", "clanroster.sqlite3"),
        log_level=_get_str("LOG_LEVEL", "INFO"),
        register_commands=_get_bool("REGISTER_COMMANDS", False),
        guild_id=_get_int("GUILD_ID", 0),
        dispatch_max_size=_get_int("DISPATCH_MAX_SIZE", 1_000),
        roster=load_roster_config(),
    )
