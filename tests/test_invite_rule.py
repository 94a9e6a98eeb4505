from __future__ import annotations

import pytest

from warden.moderation.invite import InviteRule
from warden.moderation.models import Priority


@pytest.fixture
def rule(config) -> InviteRule:
    return InviteRule(config)


def test_builtin_identity(rule):
    assert (rule.name, rule.priority, rule.bypass_permission) == ("Invite", Priority.MEDIUM, "warden.bypass.invite")


@pytest.mark.parametrize(
    "message",
    ["join discord.gg/abc123", "https://discord.com/invite/xyz", "see www.discord.gg/Raid-Party"],
)
def test_invites_are_flagged(rule, alice, message):
    assert rule.evaluate(alice, message) is True


def test_plain_text_is_clean(rule, alice):
    assert rule.evaluate(alice, "no links here") is False


def test_allowed_codes_are_suppressed(rule, alice, doc):
    doc["invite"]["allowed_codes"] = ["ourserver"]
    assert rule.evaluate(alice, "discord.gg/ourserver") is False
    assert rule.find_violation("discord.gg/ourserver discord.gg/other") == "discord.gg/other"


def test_disabled_rule_never_flags(rule, alice, doc):
    doc["checks"]["invite"]["enabled"] = False
    assert rule.evaluate(alice, "discord.gg/abc") is False
