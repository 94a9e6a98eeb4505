from __future__ import annotations

from typing import Optional

from .config_schema import INVITE_RE, ConfigProvider
from .models import Priority, RuleSpec, Subject
from .rules import Rule

INVITE_SPEC = RuleSpec(name="Invite", priority=Priority.MEDIUM, bypass_permission="warden.bypass.invite")


class InviteRule(Rule):
    """Flags chat invite links whose code is not explicitly allowed."""

    config_key = "invite"

    def __init__(self, config: ConfigProvider, spec: RuleSpec = INVITE_SPEC) -> None:
        super().__init__(spec, config)

    def find_violation(self, message: str) -> Optional[str]:
        if not message or not self.is_enabled():
            return None
        matches = list(INVITE_RE.finditer(message))
        if not matches:
            return None
        allowed = set(self.config.get_strings("invite", "allowed_codes"))
        for m in matches:
            if m.group(1) not in allowed:
                return m.group(0)
        return None

    def evaluate(self, subject: Subject, message: str) -> bool:
        return self.find_violation(message) is not None
