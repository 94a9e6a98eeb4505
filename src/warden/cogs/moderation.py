from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..moderation.address import AddressRule
from ..moderation.engine import ModerationEngine
from ..moderation.errors import ModerationPipelineError
from ..moderation.invite import InviteRule
from ..moderation.models import Subject
from ..moderation.config_schema import default_config, validate_config
from ..security.capabilities import has_cap, resolve_capabilities
from ..services.moderation_config_store import ConfigValidationError, ModerationConfigStore

log = logging.getLogger("warden.cogs.moderation")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def subject_for(member: discord.Member, doc, message: Optional[discord.Message] = None) -> Subject:
    resolution = resolve_capabilities(member, doc)
    return Subject(
        id=member.id,
        name=member.display_name,
        guild_id=member.guild.id,
        channel_id=message.channel.id if message is not None else None,
        message_id=message.id if message is not None else None,
        has_permission=lambda cap: has_cap(resolution, cap),
    )


class ModerationCog(commands.Cog):
    """Feeds guild messages through the moderation pipeline.

    Also exposes /warden commands to inspect rules and counters and to
    validate and publish rule configuration.
    """

    def __init__(self, bot: commands.Bot, engine: ModerationEngine, config_store: ModerationConfigStore) -> None:
        self.bot = bot
        self.engine = engine
        self.config_store = config_store

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.guild is None or message.author.bot:
            return
        if not isinstance(message.author, discord.Member):
            return

        subject = subject_for(message.author, self.engine.config.document, message)
        try:
            result = await self.engine.pipeline.process(subject, message.content)
        except ModerationPipelineError as e:
            for failure in e.failures:
                log.error("rule %s failed on message %s: %r", failure.rule_name, message.id, failure.error)
            return

        for outcome in result.violations:
            log.info(
                "guild=%s user=%s rule=%s count=%d punished=%s",
                message.guild.id, message.author.id, outcome.rule_name, outcome.count, outcome.punished,
            )

    @commands.Cog.listener()
    async def on_member_remove(self, member: discord.Member) -> None:
        if self.engine.tracker.forget((member.guild.id, member.id)):
            log.debug("dropped violation counters for %s in guild %s", member.id, member.guild.id)

    # -------------------- Commands --------------------

    warden = app_commands.Group(
        name="warden",
        description="Chat moderation rules",
        default_permissions=discord.Permissions(manage_guild=True),
        guild_only=True,
    )

    @warden.command(name="rules", description="List active rules in evaluation order")
    async def rules(self, interaction: discord.Interaction) -> None:
        lines = []
        for rule in self.engine.registry.active_rules():
            try:
                state = "on" if rule.is_enabled() else "off"
                every = rule.punishment_threshold()
            except Exception as e:
                state, every = f"error: {e}", "?"
            lines.append(f"- {rule.name} [{rule.priority.name}] {state}, punish every {every}, bypass `{rule.bypass_permission}`")
        await interaction.response.send_message("\n".join(lines) or "No rules registered.", ephemeral=True)

    @warden.command(name="violations", description="Show a member's violation counters")
    async def violations(self, interaction: discord.Interaction, member: discord.Member) -> None:
        counts = self.engine.tracker.counts_for((member.guild.id, member.id))
        if not counts:
            await interaction.response.send_message(f"{member.display_name} has no violations.", ephemeral=True)
            return
        lines = [f"- {name}: {n}" for name, n in sorted(counts.items())]
        await interaction.response.send_message(f"{member.display_name}:\n" + "\n".join(lines), ephemeral=True)

    @warden.command(name="test_message", description="Show which rules a message would violate (no counters touched)")
    async def test_message(self, interaction: discord.Interaction, content: str) -> None:
        out = []
        for rule in self.engine.registry.active_rules():
            try:
                if isinstance(rule, (AddressRule, InviteRule)):
                    hit = rule.find_violation(content)
                    if hit is not None:
                        out.append(f"- {rule.name}: `{hit}`")
                elif rule.evaluate(Subject(id=interaction.user.id, name=interaction.user.display_name), content):
                    out.append(f"- {rule.name}")
            except Exception as e:
                out.append(f"- {rule.name}: error {e}")
        await interaction.response.send_message("\n".join(out) or "No rules matched.", ephemeral=True)

    @warden.command(name="config_show", description="Show moderation config (draft or published)")
    @app_commands.describe(which="draft or published")
    async def config_show(self, interaction: discord.Interaction, which: str = "published") -> None:
        await interaction.response.defer(ephemeral=True)
        if which.lower() == "draft":
            rev, doc = await self.config_store.get_draft()
        else:
            rev, doc = await self.config_store.get_published()
        txt = json.dumps(doc, indent=2, ensure_ascii=False)
        if len(txt) > 1900:
            txt = txt[:1900] + "\n... (truncated)"
        await interaction.edit_original_response(content=f"{which.lower()} r{rev}\n```json\n{txt}\n```")

    @warden.command(name="config_validate", description="Validate the current draft config")
    async def config_validate(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        rev, doc = await self.config_store.get_draft()
        issues = validate_config(doc)
        if not issues:
            await interaction.edit_original_response(content=f"Draft r{rev} is valid.")
            return
        lines = [f"{i.path}: {i.message}" for i in issues[:20]]
        await interaction.edit_original_response(content=f"Draft r{rev} invalid:\n" + "\n".join(lines))

    @warden.command(name="config_reset", description="Reset the draft config to defaults")
    async def config_reset(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        rev = await self.config_store.save_draft(default_config(), created_at_iso=_now_iso(), created_by_user_id=interaction.user.id)
        await interaction.edit_original_response(content=f"Draft reset to defaults (r{rev}).")

    @warden.command(name="config_import", description="Save an uploaded JSON document as the new draft")
    async def config_import(self, interaction: discord.Interaction, document: discord.Attachment) -> None:
        await interaction.response.defer(ephemeral=True)
        try:
            doc = json.loads(await document.read())
            rev = await self.config_store.save_draft(doc, created_at_iso=_now_iso(), created_by_user_id=interaction.user.id)
        except (ValueError, ConfigValidationError) as e:
            await interaction.edit_original_response(content=f"Draft rejected: {str(e)[:1800]}")
            return
        await interaction.edit_original_response(content=f"Saved draft r{rev}. Publish it with /warden config_publish.")

    @warden.command(name="config_publish", description="Publish the current draft config")
    async def config_publish(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        _, draft = await self.config_store.get_draft()
        issues = validate_config(draft)
        if issues:
            await interaction.edit_original_response(content=f"Draft is invalid ({len(issues)} issue(s)); run /warden config_validate.")
            return
        rev, doc = await self.config_store.publish()
        # Rules read config per evaluation, so the swap applies to the next message.
        self.engine.config.replace(doc)
        log.info("published moderation config r%d by %s", rev, interaction.user.id)
        await interaction.edit_original_response(content=f"Published moderation config r{rev}.")


async def setup(bot: commands.Bot) -> None:
    engine = getattr(bot, "engine", None)
    if engine is None:
        raise RuntimeError("moderation engine must be created before loading the moderation cog")
    await bot.add_cog(ModerationCog(bot, engine, getattr(bot, "config_store")))
