from __future__ import annotations

import logging
import threading
from typing import Optional, Protocol

from .models import Priority
from .rules import Rule

log = logging.getLogger("warden.registry")


class RuleListener(Protocol):
    def rule_registered(self, rule: Rule) -> None: ...

    def rule_unregistered(self, rule: Rule) -> None: ...


class LoggingRuleListener:
    def rule_registered(self, rule: Rule) -> None:
        log.info("registered new rule %s (priority=%s)", rule.name, rule.priority.name)

    def rule_unregistered(self, rule: Rule) -> None:
        log.info("unregistered rule %s", rule.name)


class RuleRegistry:
    """Rules bucketed by priority, in registration order within a bucket.

    Rule names are unique across all buckets; violation counters are keyed
    by name.

    Mutations happen under a lock; `active_rules()` returns a tuple snapshot,
    so a rule unregistered mid-pass never changes what an in-flight pass sees.
    Listeners are notified after the lock is released.
    """

    def __init__(self, listeners: Optional[list[RuleListener]] = None) -> None:
        self._lock = threading.Lock()
        self._buckets: dict[Priority, list[Rule]] = {p: [] for p in Priority}
        self._listeners: list[RuleListener] = list(listeners) if listeners is not None else [LoggingRuleListener()]

    def add_listener(self, listener: RuleListener) -> None:
        self._listeners.append(listener)

    def register(self, rule: Rule) -> bool:
        if not isinstance(rule, Rule):
            return False
        with self._lock:
            if any(r.name == rule.name for b in self._buckets.values() for r in b):
                return False
            self._buckets[rule.priority].append(rule)
        for listener in self._listeners:
            listener.rule_registered(rule)
        return True

    def unregister(self, rule: Rule) -> bool:
        if not isinstance(rule, Rule):
            return False
        with self._lock:
            bucket = self._buckets[rule.priority]
            for i, r in enumerate(bucket):
                if r is rule:
                    del bucket[i]
                    break
            else:
                return False
        for listener in self._listeners:
            listener.rule_unregistered(rule)
        return True

    def active_rules(self) -> tuple[Rule, ...]:
        with self._lock:
            return tuple(r for p in sorted(Priority) for r in self._buckets[p])

    def get(self, name: str) -> Optional[Rule]:
        for rule in self.active_rules():
            if rule.name == name:
                return rule
        return None

    def __len__(self) -> int:
        with self._lock:
            return sum(len(b) for b in self._buckets.values())

    def __contains__(self, rule: object) -> bool:
        return any(r is rule for r in self.active_rules())
