from __future__ import annotations

from warden.moderation.address import AddressRule
from warden.moderation.config_schema import ConfigProvider, default_config
from warden.moderation.models import Subject


def make_rule(prefix="[Warden]") -> AddressRule:
    return AddressRule(ConfigProvider(default_config(), prefix=prefix))


def test_known_placeholders_are_substituted():
    rule = make_rule("[Mod]")
    bob = Subject(id=7, name="bob", guild_id=3)
    out = rule.substitute_placeholders("{prefix} {player} ({player_id}) broke {rule}", bob)
    assert out == "[Mod] bob (7) broke Address"


def test_unknown_placeholders_pass_through():
    rule = make_rule()
    bob = Subject(id=7, name="bob")
    assert rule.substitute_placeholders("{player} {unknown} {Player}", bob) == "bob {unknown} {Player}"


def test_substituted_values_are_not_expanded_again():
    rule = make_rule("[Mod]")
    sneaky = Subject(id=1, name="{prefix}")
    assert rule.substitute_placeholders("hi {player}", sneaky) == "hi {prefix}"


def test_policy_accessors_read_config():
    rule = make_rule()
    assert rule.is_enabled() is True
    assert rule.is_warning_enabled() is True
    assert rule.punishment_threshold() == 3
    assert rule.punishment_command() == "timeout {player_id} 10 Advertising addresses"
    assert rule.warning_messages() == ["{prefix} {player}, please do not send addresses in chat."]


def test_repr_names_rule():
    assert repr(make_rule()) == "<AddressRule name='Address' priority=LOW>"
