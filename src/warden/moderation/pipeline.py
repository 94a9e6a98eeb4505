from __future__ import annotations

import logging
from typing import Optional

from .dispatcher import PunishmentDispatcher
from .errors import ModerationPipelineError
from .models import ProcessResult, RuleFailure, RuleOutcome, Subject
from .registry import RuleRegistry
from .rules import Rule
from .tracker import ViolationTracker, should_punish

log = logging.getLogger("warden.pipeline")


class ModerationPipeline:
    """Runs one message through every active rule, in priority order.

    Each violating rule warns, counts and punishes independently. A rule that
    raises is logged and skipped; the others still run and the failures are
    raised together as ModerationPipelineError once the pass is complete.
    """

    def __init__(
        self,
        *,
        registry: RuleRegistry,
        tracker: ViolationTracker,
        dispatcher: PunishmentDispatcher,
        stop_on_first: bool = False,
    ) -> None:
        self.registry = registry
        self.tracker = tracker
        self.dispatcher = dispatcher
        self.stop_on_first = stop_on_first

    async def process(self, subject: Subject, message: str, *, stop_on_first: Optional[bool] = None) -> ProcessResult:
        first_wins = self.stop_on_first if stop_on_first is None else stop_on_first
        outcomes: list[RuleOutcome] = []
        failures: list[RuleFailure] = []

        for rule in self.registry.active_rules():
            try:
                outcome = await self._apply(rule, subject, message, failures)
            except Exception as e:
                log.exception("rule %s failed for subject %s", rule.name, subject.id)
                failures.append(RuleFailure(rule_name=rule.name, error=e))
                continue
            outcomes.append(outcome)
            if outcome.violated and first_wins:
                break

        result = ProcessResult(subject=subject, outcomes=outcomes, failures=failures)
        if failures:
            raise ModerationPipelineError(result)
        return result

    async def _apply(self, rule: Rule, subject: Subject, message: str, failures: list[RuleFailure]) -> RuleOutcome:
        if subject.has_permission(rule.bypass_permission):
            return RuleOutcome(rule_name=rule.name, violated=False, bypassed=True)

        if not rule.evaluate(subject, message):
            return RuleOutcome(rule_name=rule.name, violated=False)

        log.info("subject %s (%s) violated rule %s", subject.name, subject.id, rule.name)

        warnings_sent = 0
        if rule.is_warning_enabled():
            try:
                warnings_sent = await self.dispatcher.warn(rule, subject)
            except Exception as e:
                # Warning delivery does not gate the counter.
                log.exception("warning delivery failed for rule %s", rule.name)
                failures.append(RuleFailure(rule_name=rule.name, error=e))

        count = self.tracker.record_violation(subject, rule)
        threshold = rule.punishment_threshold()
        command = None
        if should_punish(count, threshold):
            try:
                command = await self.dispatcher.punish(rule, subject)
            except Exception as e:
                # The increment stands even though the command never ran.
                log.exception("punishment dispatch failed for rule %s", rule.name)
                failures.append(RuleFailure(rule_name=rule.name, error=e))

        return RuleOutcome(
            rule_name=rule.name,
            violated=True,
            count=count,
            warnings_sent=warnings_sent,
            punished=command is not None,
            command=command,
        )
