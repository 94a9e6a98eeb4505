from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ProcessResult, RuleFailure


class WardenError(Exception):
    """Base class for moderation core errors."""


class RegistryNotInitializedError(WardenError):
    """Raised when the rule registry is requested before startup or after shutdown."""


class ConfigValueMissingError(WardenError):
    def __init__(self, section: str, key: str) -> None:
        super().__init__(f"missing configuration value {section}.{key}")
        self.section = section
        self.key = key


class ModerationPipelineError(WardenError):
    """One or more rules failed during a pipeline pass.

    The remaining rules were still evaluated; `result` holds everything that
    did complete, including counter increments that were not rolled back.
    """

    def __init__(self, result: "ProcessResult") -> None:
        names = ", ".join(f.rule_name for f in result.failures)
        super().__init__(f"{len(result.failures)} rule(s) failed: {names}")
        self.result = result

    @property
    def failures(self) -> "list[RuleFailure]":
        return self.result.failures


class ConfigValueTypeError(WardenError):
    def __init__(self, section: str, key: str, expected: str) -> None:
        super().__init__(f"configuration value {section}.{key} must be {expected}")
        self.section = section
        self.key = key
