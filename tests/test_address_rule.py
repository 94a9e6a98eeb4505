from __future__ import annotations

import pytest

from warden.moderation.address import (
    MINIMUM_ADDRESS_CHARS,
    MINIMUM_DOMAIN_CHARS,
    AddressRule,
    address_allowed,
    address_candidates,
    domain_allowed,
    domain_candidates,
    tokenize,
)
from warden.moderation.errors import ConfigValueMissingError
from warden.moderation.models import Priority


@pytest.fixture
def rule(config) -> AddressRule:
    return AddressRule(config)


def test_builtin_identity_and_thresholds(rule):
    assert rule.name == "Address"
    assert rule.priority is Priority.LOW
    assert rule.bypass_permission == "warden.bypass.address"
    assert (MINIMUM_DOMAIN_CHARS, MINIMUM_ADDRESS_CHARS) == (6, 7)


def test_allowlisted_domain_is_suppressed(rule, alice):
    assert rule.evaluate(alice, "visit example.com now") is False


def test_unlisted_domain_is_a_violation(rule, alice):
    assert rule.evaluate(alice, "visit evilexample.org now") is True
    assert rule.find_violation("visit evilexample.org now") == "evilexample.org"


def test_domain_allowlist_uses_containment(rule, alice):
    assert rule.evaluate(alice, "see www.example.com/page") is False
    assert rule.evaluate(alice, "see notexample.com") is False


def test_domain_match_is_lower_cased(rule, alice):
    assert rule.evaluate(alice, "visit EXAMPLE.COM now") is False
    assert rule.find_violation("visit Evil.NET") == "evil.net"


def test_allowlisted_address_is_suppressed(rule, alice):
    assert rule.evaluate(alice, "ping 192.168.1.5") is False


def test_other_address_is_a_violation(rule, alice):
    assert rule.evaluate(alice, "ping 192.168.1.6") is True


def test_address_allowlist_is_exact(rule, alice):
    assert rule.find_violation("ping 192.168.1.55") == "192.168.1.55"
    assert address_allowed("192.168.1.5", ["192.168.1.50"]) is False
    assert domain_allowed("shop.example.com", ["example.com"]) is True


def test_token_of_exactly_minimum_length_is_checked(rule, alice):
    assert rule.evaluate(alice, "ab.com") is True


def test_short_token_is_skipped_even_in_long_message(rule, alice):
    assert rule.evaluate(alice, "hello a.com") is False


def test_short_message_is_skipped(rule, alice):
    assert rule.evaluate(alice, "a.com") is False


def test_address_of_exactly_minimum_length_is_checked(rule, alice):
    assert len("1.1.1.1") == MINIMUM_ADDRESS_CHARS
    assert rule.evaluate(alice, "1.1.1.1") is True
    assert rule.find_violation("1.1.1.1") == "1.1.1.1"


def test_message_below_address_minimum_is_skipped(rule, alice):
    assert len("1.1.11") == MINIMUM_ADDRESS_CHARS - 1
    assert rule.evaluate(alice, "1.1.11") is False


def test_every_occurrence_in_a_token_is_checked(rule):
    assert rule.find_violation("example.com,evil.net") == "evil.net"
    assert rule.find_violation("10.0.0.1,192.168.1.5") == "10.0.0.1"


def test_first_unallowed_occurrence_wins(rule):
    assert rule.find_violation("first.io then second.io") == "first.io"


def test_domain_pass_runs_before_address_pass(rule):
    assert rule.find_violation("8.8.8.8 evil.net") == "evil.net"


def test_plain_text_is_not_a_violation(rule, alice):
    assert rule.evaluate(alice, "just chatting about the weather today") is False
    assert rule.evaluate(alice, "version 1.2.3 is out") is False


def test_disabled_rule_never_flags(rule, alice, doc):
    doc["checks"]["address"]["enabled"] = False
    assert rule.evaluate(alice, "visit evil.net") is False


def test_empty_message_never_flags(rule, alice):
    assert rule.evaluate(alice, "") is False


def test_evaluation_is_repeatable(rule, alice):
    msg = "visit evilexample.org now"
    assert rule.evaluate(alice, msg) == rule.evaluate(alice, msg)


def test_missing_allowlist_fails_loudly(rule, alice, doc):
    del doc["address"]["allowed_domains"]
    with pytest.raises(ConfigValueMissingError):
        rule.evaluate(alice, "visit evil.net")


def test_config_changes_apply_to_next_evaluation(rule, alice, doc):
    assert rule.evaluate(alice, "visit evil.net") is True
    doc["address"]["allowed_domains"].append("evil.net")
    assert rule.evaluate(alice, "visit evil.net") is False


def test_candidate_extraction_stages():
    tokens = tokenize("  go to  Shop.Example.com and 10.1.2.3:8080 ")
    assert tokens == ["go", "to", "Shop.Example.com", "and", "10.1.2.3:8080"]
    assert list(domain_candidates(tokens)) == ["shop.example.com"]
    assert list(address_candidates(tokens)) == ["10.1.2.3"]


def test_invalid_octets_are_not_addresses():
    assert list(address_candidates(["999.1.1.1"])) == []
