from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Optional


class Priority(IntEnum):
    """Evaluation tier. Lower tiers are evaluated first."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2


@dataclass(frozen=True)
class RuleSpec:
    name: str
    priority: Priority
    bypass_permission: str


def _deny_all(permission: str) -> bool:
    return False


@dataclass(frozen=True)
class Subject:
    """Message author as seen by the moderation core."""

    id: int
    name: str
    guild_id: Optional[int] = None
    # Message that triggered this pass, for the `delete` punishment.
    channel_id: Optional[int] = field(default=None, compare=False)
    message_id: Optional[int] = field(default=None, compare=False)
    # Bypass capability lookup supplied by the host (permission -> bool).
    has_permission: Callable[[str], bool] = field(default=_deny_all, compare=False, repr=False)

    @property
    def key(self) -> tuple[Optional[int], int]:
        return (self.guild_id, self.id)


@dataclass(frozen=True)
class RuleOutcome:
    rule_name: str
    violated: bool
    bypassed: bool = False
    count: int = 0
    warnings_sent: int = 0
    punished: bool = False
    command: Optional[str] = None


@dataclass(frozen=True)
class RuleFailure:
    rule_name: str
    error: BaseException


@dataclass(frozen=True)
class ProcessResult:
    subject: Subject
    outcomes: list[RuleOutcome]
    failures: list[RuleFailure]

    @property
    def violations(self) -> list[RuleOutcome]:
        return [o for o in self.outcomes if o.violated]

    @property
    def punished(self) -> bool:
        return any(o.punished for o in self.outcomes)
