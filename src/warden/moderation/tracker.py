from __future__ import annotations

import threading
from collections import defaultdict
from typing import Hashable

from .models import Subject
from .rules import Rule


def should_punish(count: int, threshold: int) -> bool:
    """True on every `threshold`-th violation; a threshold <= 0 never punishes."""
    return threshold > 0 and count > 0 and count % threshold == 0


class ViolationTracker:
    """Per-subject, per-rule violation counters.

    Counters only grow. They are dropped with `forget()` when the subject
    leaves; there is no decay. Each increment hands out a distinct count,
    so comparing the returned value against a threshold cannot double-fire
    or skip a punishment under concurrent violations.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[Hashable, dict[str, int]] = defaultdict(dict)

    def record_violation(self, subject: Subject, rule: Rule) -> int:
        with self._lock:
            per_subject = self._counts[subject.key]
            count = per_subject.get(rule.name, 0) + 1
            per_subject[rule.name] = count
            return count

    def count(self, subject: Subject, rule: Rule) -> int:
        with self._lock:
            per_subject = self._counts.get(subject.key)
            return per_subject.get(rule.name, 0) if per_subject else 0

    def counts_for(self, subject_key: Hashable) -> dict[str, int]:
        with self._lock:
            return dict(self._counts.get(subject_key, {}))

    def forget(self, subject_key: Hashable) -> bool:
        with self._lock:
            return self._counts.pop(subject_key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()

    should_punish = staticmethod(should_punish)
