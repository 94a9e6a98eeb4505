from __future__ import annotations

import logging
from typing import Optional

from .address import AddressRule
from .config_schema import ConfigProvider
from .dispatcher import CommandExecutor, PunishmentDispatcher, WarningSink
from .errors import RegistryNotInitializedError
from .invite import InviteRule
from .pipeline import ModerationPipeline
from .registry import RuleListener, RuleRegistry
from .rules import Rule
from .tracker import ViolationTracker

log = logging.getLogger("warden.engine")


def builtin_rules(config: ConfigProvider) -> list[Rule]:
    return [AddressRule(config), InviteRule(config)]


class ModerationEngine:
    """Owns the moderation core for one running bot.

    Built once at startup and passed to whoever needs it. The registry and
    pipeline exist only between `start()` and `shutdown()`; asking for them
    outside that window is a programming error and raises.
    """

    def __init__(
        self,
        config: ConfigProvider,
        *,
        executor: CommandExecutor,
        warnings: WarningSink,
        stop_on_first: bool = False,
    ) -> None:
        self.config = config
        self.tracker = ViolationTracker()
        self.dispatcher = PunishmentDispatcher(executor=executor, warnings=warnings)
        self._stop_on_first = stop_on_first
        self._registry: Optional[RuleRegistry] = None
        self._pipeline: Optional[ModerationPipeline] = None

    @property
    def started(self) -> bool:
        return self._registry is not None

    @property
    def registry(self) -> RuleRegistry:
        if self._registry is None:
            raise RegistryNotInitializedError("moderation engine is not started; the rule registry is unavailable")
        return self._registry

    @property
    def pipeline(self) -> ModerationPipeline:
        if self._pipeline is None:
            raise RegistryNotInitializedError("moderation engine is not started; the pipeline is unavailable")
        return self._pipeline

    def start(self, rules: Optional[list[Rule]] = None, listeners: Optional[list[RuleListener]] = None) -> RuleRegistry:
        if self._registry is not None:
            raise RuntimeError("moderation engine already started")
        registry = RuleRegistry(listeners)
        for rule in builtin_rules(self.config) if rules is None else rules:
            if not registry.register(rule):
                log.warning("rule %r was not registered", rule)
        self._registry = registry
        self._pipeline = ModerationPipeline(
            registry=registry,
            tracker=self.tracker,
            dispatcher=self.dispatcher,
            stop_on_first=self._stop_on_first,
        )
        log.info("moderation engine started with %d rule(s)", len(registry))
        return registry

    def shutdown(self) -> None:
        self._registry = None
        self._pipeline = None
        self.tracker.clear()
        log.info("moderation engine stopped")
