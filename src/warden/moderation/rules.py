from __future__ import annotations

import re
from abc import ABC, abstractmethod

from .config_schema import ConfigProvider
from .models import Priority, RuleSpec, Subject

_PLACEHOLDER_RE = re.compile(r"\{([a-z_]+)\}")


class Rule(ABC):
    """A single moderation check.

    Switches, thresholds and templates are read from the config provider on
    every call under the section ``checks.<config_key>``; nothing is cached,
    so a published config change applies to the next message.

    Registry membership is by identity: two instances with an equal RuleSpec are
    different rules.
    """

    config_key: str

    def __init__(self, spec: RuleSpec, config: ConfigProvider) -> None:
        self.spec = spec
        self.config = config

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def priority(self) -> Priority:
        return self.spec.priority

    @property
    def bypass_permission(self) -> str:
        return self.spec.bypass_permission

    @property
    def _checks(self) -> str:
        return f"checks.{self.config_key}"

    @abstractmethod
    def evaluate(self, subject: Subject, message: str) -> bool:
        """Return True when the message violates this rule. Must not mutate state."""

    def is_enabled(self) -> bool:
        return self.config.get_bool(self._checks, "enabled")

    def is_warning_enabled(self) -> bool:
        return self.config.get_bool(self._checks, "warning_enabled")

    def warning_messages(self) -> list[str]:
        return self.config.get_strings("messages", f"{self.config_key}_warning")

    def punishment_threshold(self) -> int:
        """Every Nth violation triggers the punishment; N <= 0 disables it."""
        return self.config.get_int(self._checks, "punish_after")

    def punishment_command(self) -> str:
        return self.config.get_str(self._checks, "punish_command")

    def substitute_placeholders(self, template: str, subject: Subject) -> str:
        values = {
            "player": subject.name,
            "player_id": str(subject.id),
            "prefix": self.config.prefix,
            "rule": self.name,
        }
        # Single pass, so substituted values are never re-expanded; unknown tokens survive.
        return _PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} priority={self.priority.name}>"
