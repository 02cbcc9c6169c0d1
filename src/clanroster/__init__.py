"""Clan roster bot: membership, warnings and bans for a closed community roster."""

__version__ = "1.0.0"
