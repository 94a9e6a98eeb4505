from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import discord
from discord.ext import commands

from .config import Settings
from .moderation.config_schema import ConfigProvider, validate_config
from .moderation.engine import ModerationEngine
from .services.command_executor import DirectMessageWarningSink, DiscordCommandExecutor
from .services.moderation_config_store import ModerationConfigStore

log = logging.getLogger("warden.bot")


class WardenBot(commands.Bot):
    def __init__(self, settings: Settings) -> None:
        intents = discord.Intents.default()
        intents.members = True
        intents.message_content = bool(settings.message_content_intent)
        log.info("INTENTS: guilds=%s members=%s message_content=%s", intents.guilds, intents.members, intents.message_content)

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            allowed_mentions=discord.AllowedMentions(everyone=False, roles=False, users=True),
            help_command=None,
        )

        self.settings = settings
        self.config_store = ModerationConfigStore(settings.sqlite_path)
        self.engine: Optional[ModerationEngine] = None
        self._sync_lock = asyncio.Lock()

    async def setup_hook(self) -> None:
        await self.config_store.init()
        await self.config_store.ensure_default(created_at_iso=datetime.now(timezone.utc).isoformat(timespec="seconds"))
        rev, doc = await self.config_store.get_published()
        issues = validate_config(doc)
        if issues:
            # Rules fail loudly on missing values; surface the cause at startup too.
            for issue in issues:
                log.error("published config r%d: %s: %s", rev, issue.path, issue.message)

        provider = ConfigProvider(doc, prefix=self.settings.prefix)
        self.engine = ModerationEngine(
            provider,
            executor=DiscordCommandExecutor(self),
            warnings=DirectMessageWarningSink(self),
            stop_on_first=self.settings.stop_on_first_violation,
        )
        self.engine.start()
        log.info("loaded moderation config r%d", rev)

        await self.load_extension("warden.cogs.moderation")
        await self.sync_commands()

    async def sync_commands(self) -> None:
        async with self._sync_lock:
            if self.settings.sync_guild_id:
                guild = discord.Object(id=self.settings.sync_guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                log.info("Commands synced to guild %d", self.settings.sync_guild_id)
            else:
                await self.tree.sync()
                log.info("Commands synced globally")

    async def on_ready(self) -> None:
        log.info("Logged in as %s (%s)", self.user, getattr(self.user, "id", "?"))

    async def close(self) -> None:
        if self.engine is not None and self.engine.started:
            self.engine.shutdown()
        await super().close()
