from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable, Optional, TypeVar

import discord

from ..moderation.models import Subject

log = logging.getLogger("warden.services.command_executor")

T = TypeVar("T")


async def _retry(coro_fn: Callable[[], Awaitable[T]], *, tries: int = 3) -> T:
    """Bounded backoff, only for HTTPException and timeouts. Forbidden and NotFound are final."""
    last: Optional[BaseException] = None
    for t in range(tries):
        try:
            return await coro_fn()
        except (discord.Forbidden, discord.NotFound):
            raise
        except (discord.HTTPException, asyncio.TimeoutError) as e:
            last = e
            if t < tries - 1:
                await asyncio.sleep(0.5 * (2**t))
    assert last is not None
    raise last


class DiscordCommandExecutor:
    """Runs rendered punishment commands against the subject's guild.

    Grammar (whitespace separated, reason is the free-form remainder):
      timeout <user_id> <minutes> [reason]
      kick <user_id> [reason]
      ban <user_id> [reason]
      delete
    `delete` removes the message carried on the subject.
    Unknown verbs are logged and ignored.
    """

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def execute(self, command: str, *, subject: Subject) -> None:
        parts = command.split()
        if not parts:
            log.warning("empty punishment command for subject %s", subject.id)
            return
        verb = parts[0].lower()
        if subject.guild_id is None:
            log.warning("cannot run %r: subject %s has no guild", command, subject.id)
            return
        guild = self.client.get_guild(subject.guild_id)
        if guild is None:
            raise LookupError(f"guild {subject.guild_id} not found")

        if verb == "delete":
            await self._delete_message(guild, subject)
            return

        try:
            user_id = int(parts[1])
        except (IndexError, ValueError):
            log.warning("punishment command %r has no numeric user id", command)
            return

        if verb == "timeout":
            try:
                minutes = int(parts[2])
            except (IndexError, ValueError):
                log.warning("timeout command %r has no minutes", command)
                return
            reason = " ".join(parts[3:]) or "Warden"
            member = guild.get_member(user_id)
            if member is None:
                return
            until = discord.utils.utcnow() + timedelta(minutes=minutes)
            await _retry(lambda: member.timeout(until, reason=reason))

        elif verb == "kick":
            reason = " ".join(parts[2:]) or "Warden"
            member = guild.get_member(user_id)
            if member is None:
                return
            await _retry(lambda: member.kick(reason=reason))

        elif verb == "ban":
            reason = " ".join(parts[2:]) or "Warden"
            target = guild.get_member(user_id) or discord.Object(id=user_id)
            await _retry(lambda: guild.ban(target, reason=reason, delete_message_seconds=0))

        else:
            log.warning("ignoring unknown punishment verb %r", verb)
            return

        log.info("executed %s on %s in guild %s", verb, user_id, guild.id)

    async def _delete_message(self, guild: discord.Guild, subject: Subject) -> None:
        if subject.channel_id is None or subject.message_id is None:
            log.warning("cannot delete: subject %s carries no message", subject.id)
            return
        channel = guild.get_channel_or_thread(subject.channel_id)
        if channel is None:
            log.warning("cannot delete: channel %s not found in guild %s", subject.channel_id, guild.id)
            return
        message = channel.get_partial_message(subject.message_id)
        try:
            await _retry(lambda: message.delete())
        except discord.NotFound:
            log.debug("message %s already gone", subject.message_id)
            return
        log.info("deleted message %s from %s in guild %s", subject.message_id, subject.id, guild.id)


class DirectMessageWarningSink:
    """Sends warnings to the subject by DM."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def send(self, subject: Subject, text: str) -> None:
        user = self.client.get_user(subject.id)
        if user is None:
            user = await self.client.fetch_user(subject.id)
        try:
            await _retry(lambda: user.send(text), tries=2)
        except discord.Forbidden:
            log.debug("DMs closed for %s; warning not delivered", subject.id)
