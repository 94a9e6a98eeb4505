"""Chat moderation core.

- rules: independently registered checks (address, invite)
- registry: priority-bucketed, snapshot-read rule collection
- tracker: cumulative per-subject violation counters
- dispatcher: warning / punishment command rendering
- pipeline: per-message orchestration

The host (see cogs.moderation) supplies messages, bypass lookups and the
command executor.
"""
from .address import AddressRule
from .config_schema import ConfigProvider, default_config, validate_config
from .dispatcher import PunishmentDispatcher
from .engine import ModerationEngine
from .errors import (
    ConfigValueMissingError,
    ConfigValueTypeError,
    ModerationPipelineError,
    RegistryNotInitializedError,
    WardenError,
)
from .invite import InviteRule
from .models import Priority, ProcessResult, RuleOutcome, RuleSpec, Subject
from .pipeline import ModerationPipeline
from .registry import LoggingRuleListener, RuleRegistry
from .rules import Rule
from .tracker import ViolationTracker, should_punish

__all__ = [
    "AddressRule",
    "ConfigProvider",
    "ConfigValueMissingError",
    "ConfigValueTypeError",
    "InviteRule",
    "LoggingRuleListener",
    "ModerationEngine",
    "ModerationPipeline",
    "ModerationPipelineError",
    "Priority",
    "ProcessResult",
    "PunishmentDispatcher",
    "RegistryNotInitializedError",
    "Rule",
    "RuleOutcome",
    "RuleRegistry",
    "RuleSpec",
    "Subject",
    "ViolationTracker",
    "WardenError",
    "default_config",
    "should_punish",
    "validate_config",
]
