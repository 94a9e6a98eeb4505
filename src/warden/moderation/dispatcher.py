from __future__ import annotations

import logging
from typing import Protocol

from .models import Subject
from .rules import Rule

log = logging.getLogger("warden.dispatcher")


class CommandExecutor(Protocol):
    """Runs a rendered punishment command with elevated privilege."""

    async def execute(self, command: str, *, subject: Subject) -> None: ...


class WarningSink(Protocol):
    """Delivers a rendered warning to the subject."""

    async def send(self, subject: Subject, text: str) -> None: ...


class PunishmentDispatcher:
    """Renders rule templates for a subject and hands them to the host.

    Command syntax is the executor's concern; nothing is validated here and
    failed deliveries are not retried.
    """

    def __init__(self, *, executor: CommandExecutor, warnings: WarningSink) -> None:
        self.executor = executor
        self.warnings = warnings

    def render_command(self, rule: Rule, subject: Subject) -> str:
        return rule.substitute_placeholders(rule.punishment_command(), subject)

    def render_warnings(self, rule: Rule, subject: Subject) -> list[str]:
        return [rule.substitute_placeholders(t, subject) for t in rule.warning_messages()]

    async def warn(self, rule: Rule, subject: Subject) -> int:
        sent = 0
        for text in self.render_warnings(rule, subject):
            await self.warnings.send(subject, text)
            sent += 1
        return sent

    async def punish(self, rule: Rule, subject: Subject) -> str:
        command = self.render_command(rule, subject)
        log.info("dispatching punishment for %s (rule=%s): %s", subject.name, rule.name, command)
        await self.executor.execute(command, subject=subject)
        return command
