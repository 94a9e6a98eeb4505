from __future__ import annotations

import threading

from warden.moderation.models import Priority
from warden.moderation.registry import RuleRegistry

from .fakes import FakeRule, RecordingListener


def test_lower_priority_always_listed_first():
    registry = RuleRegistry(listeners=[])
    high = FakeRule("High", Priority.HIGH)
    low_a = FakeRule("LowA", Priority.LOW)
    medium = FakeRule("Medium", Priority.MEDIUM)
    low_b = FakeRule("LowB", Priority.LOW)
    for rule in (high, low_a, medium, low_b):
        assert registry.register(rule)

    assert [r.name for r in registry.active_rules()] == ["LowA", "LowB", "Medium", "High"]


def test_duplicate_registration_is_rejected():
    listener = RecordingListener()
    registry = RuleRegistry(listeners=[listener])
    rule = FakeRule("Address")

    assert registry.register(rule) is True
    assert registry.register(rule) is False
    assert list(registry.active_rules()) == [rule]
    assert listener.events == [("registered", "Address")]


def test_second_rule_with_same_name_is_rejected_across_tiers():
    listener = RecordingListener()
    registry = RuleRegistry(listeners=[listener])
    first = FakeRule("Address", Priority.LOW)
    clash = FakeRule("Address", Priority.HIGH)

    assert registry.register(first) is True
    assert registry.register(clash) is False
    assert list(registry.active_rules()) == [first]
    assert registry.get("Address") is first
    assert listener.events == [("registered", "Address")]


def test_unregister_needs_the_registered_object():
    registry = RuleRegistry(listeners=[])
    first = FakeRule("Address")
    registry.register(first)

    assert registry.unregister(FakeRule("Address")) is False
    assert first in registry
    assert registry.unregister(first) is True
    assert registry.register(FakeRule("Address")) is True


def test_register_rejects_non_rules():
    registry = RuleRegistry(listeners=[])
    assert registry.register(None) is False
    assert registry.register("Address") is False
    assert len(registry) == 0


def test_unregister_unknown_rule_leaves_registry_unchanged():
    listener = RecordingListener()
    registry = RuleRegistry(listeners=[listener])
    kept = FakeRule("Kept")
    registry.register(kept)
    listener.events.clear()

    assert registry.unregister(FakeRule("Stranger")) is False
    assert registry.unregister(None) is False
    assert list(registry.active_rules()) == [kept]
    assert listener.events == []


def test_unregister_removes_and_notifies():
    listener = RecordingListener()
    registry = RuleRegistry(listeners=[listener])
    a, b, c = FakeRule("A"), FakeRule("B"), FakeRule("C")
    for r in (a, b, c):
        registry.register(r)

    assert registry.unregister(b) is True
    assert [r.name for r in registry.active_rules()] == ["A", "C"]
    assert listener.events[-1] == ("unregistered", "B")
    assert b not in registry
    assert registry.get("C") is c
    assert registry.get("B") is None


def test_snapshot_is_not_affected_by_later_mutation():
    registry = RuleRegistry(listeners=[])
    a, b = FakeRule("A"), FakeRule("B", Priority.HIGH)
    registry.register(a)
    registry.register(b)

    snapshot = registry.active_rules()
    registry.unregister(a)
    registry.register(FakeRule("C"))

    assert snapshot == (a, b)


def test_default_listener_logs_registration(caplog):
    caplog.set_level("INFO", logger="warden.registry")
    registry = RuleRegistry()
    registry.register(FakeRule("Address"))
    assert "registered new rule Address" in caplog.text


def test_concurrent_register_and_read_stay_coherent():
    registry = RuleRegistry(listeners=[])
    rules = [FakeRule(f"R{i}", Priority(i % 3)) for i in range(300)]
    errors: list[str] = []

    def writer(chunk):
        for r in chunk:
            registry.register(r)
            registry.unregister(r)
            registry.register(r)

    def reader():
        for _ in range(300):
            snap = registry.active_rules()
            prios = [r.priority for r in snap]
            if prios != sorted(prios):
                errors.append("out of order")
            if len(set(map(id, snap))) != len(snap):
                errors.append("duplicate")

    threads = [threading.Thread(target=writer, args=(rules[i::3],)) for i in range(3)]
    threads += [threading.Thread(target=reader) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(registry) == 300
