from __future__ import annotations

import asyncio
import logging

import discord
from discord.ext import commands

from .config import Settings
from .database import initialize_database
from .error_handlers import setup_error_handlers
from .moderation.engine import ModerationEngine
from .moderation.events import EventBoundary
from .services.dispatch_queue import DispatchQueue
from .services.notifier import DiscordNotifier
from .services.record_store import RecordStore
from .services.role_sync import DiscordRoleSync

log = logging.getLogger("clanroster.bot")

# Seconds to let queued notifications drain on shutdown.
SHUTDOWN_DRAIN_SECONDS = 5.0


class _CommandSyncManager:
    def __init__(self, bot: "RosterBot") -> None:
        self.bot = bot
        self._lock = asyncio.Lock()

    async def sync_startup(self) -> None:
        if not self.bot.settings.register_commands:
            log.info("REGISTER_COMMANDS is off; skipping command sync")
            return
        if self.bot.settings.guild_id:
            await self.sync_guild(self.bot.settings.guild_id)
        else:
            await self.sync_global()

    async def sync_global(self) -> None:
        async with self._lock:
            synced = await self.bot.tree.sync()
            log.info("Commands synced globally (%d)", len(synced))

    async def sync_guild(self, guild_id: int) -> None:
        async with self._lock:
            guild = discord.Object(id=guild_id)
            self.bot.tree.copy_global_to(guild=guild)
            synced = await self.bot.tree.sync(guild=guild)
            log.info("Commands synced to guild %d (%d)", guild_id, len(synced))


class RosterBot(commands.Bot):
    def __init__(self, settings: Settings) -> None:
        intents = discord.Intents.default()
        # Member updates drive the welcome message and role sync lookups.
        intents.members = True

        log.info("INTENTS: guilds=%s members=%s message_content=%s", intents.guilds, intents.members, intents.message_content)

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            allowed_mentions=discord.AllowedMentions(everyone=False, roles=False, users=True),
            help_command=None,
        )

        self.settings = settings
        self.dispatch_queue = DispatchQueue(settings.dispatch_max_size)
        self.record_store = RecordStore(settings.sqlite_path)
        self.events = EventBoundary(self.dispatch_queue)
        self.events.add_sink(DiscordNotifier(self, settings.roster))
        self.events.add_role_sync(DiscordRoleSync(self, settings.roster))
        self.engine = ModerationEngine(store=self.record_store, events=self.events, config=settings.roster)
        self._sync_mgr = _CommandSyncManager(self)

    async def setup_hook(self) -> None:
        await initialize_database(self.settings.sqlite_path, self.record_store.stores)

        self.dispatch_queue.start()
        await setup_error_handlers(self)

        # Imported here so the cogs see a fully constructed engine.
        from .cogs.roster import RosterCog
        from .cogs.welcome import WelcomeCog

        await self.add_cog(RosterCog(self, self.engine, self.settings.roster))
        await self.add_cog(WelcomeCog(self, self.settings.roster))
        log.info("Loaded cogs: %s", ", ".join(self.cogs))

        await self._sync_mgr.sync_startup()

    async def close(self) -> None:
        try:
            try:
                await asyncio.wait_for(self.dispatch_queue.join(), timeout=SHUTDOWN_DRAIN_SECONDS)
            except asyncio.TimeoutError:
                log.warning("Shutdown with %d undelivered notification(s)", self.dispatch_queue.size())
            await self.dispatch_queue.stop()
        finally:
            await super().close()

    async def on_ready(self) -> None:
        log.info("Logged in as %s", self.user)
