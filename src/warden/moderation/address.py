from __future__ import annotations

import re
from typing import Iterable, Iterator, Optional

from .config_schema import ConfigProvider
from .models import Priority, RuleSpec, Subject
from .rules import Rule

MINIMUM_DOMAIN_CHARS = 6
MINIMUM_ADDRESS_CHARS = 7

SPLIT_SPACE = re.compile(r"\s+")
DOMAIN_RE = re.compile(r"(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}", re.I)
_OCTET = r"(?:25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)"
IPV4_RE = re.compile(rf"(?<![\d.]){_OCTET}(?:\.{_OCTET}){{3}}(?![\d])")

ADDRESS_SPEC = RuleSpec(name="Address", priority=Priority.LOW, bypass_permission="warden.bypass.address")


def tokenize(message: str) -> list[str]:
    return [t for t in SPLIT_SPACE.split(message) if t]


def domain_candidates(tokens: Iterable[str]) -> Iterator[str]:
    """Lower-cased domain-like substrings of tokens at least MINIMUM_DOMAIN_CHARS long."""
    for token in tokens:
        if len(token) < MINIMUM_DOMAIN_CHARS:
            continue
        for m in DOMAIN_RE.finditer(token):
            yield m.group().lower()


def address_candidates(tokens: Iterable[str]) -> Iterator[str]:
    """IPv4-shaped substrings of tokens at least MINIMUM_ADDRESS_CHARS long."""
    for token in tokens:
        if len(token) < MINIMUM_ADDRESS_CHARS:
            continue
        for m in IPV4_RE.finditer(token):
            yield m.group()


def domain_allowed(candidate: str, allowed_domains: Iterable[str]) -> bool:
    # Containment, not equality: "example.com" also covers "www.example.com".
    return any(entry in candidate for entry in allowed_domains)


def address_allowed(candidate: str, allowed_addresses: Iterable[str]) -> bool:
    # Exact match only; addresses get no partial allowance.
    return candidate in set(allowed_addresses)


def first_disallowed_domain(message: str, allowed_domains: list[str]) -> Optional[str]:
    if len(message) < MINIMUM_DOMAIN_CHARS:
        return None
    for candidate in domain_candidates(tokenize(message)):
        if not domain_allowed(candidate, allowed_domains):
            return candidate
    return None


def first_disallowed_address(message: str, allowed_addresses: list[str]) -> Optional[str]:
    if len(message) < MINIMUM_ADDRESS_CHARS:
        return None
    for candidate in address_candidates(tokenize(message)):
        if not address_allowed(candidate, allowed_addresses):
            return candidate
    return None


class AddressRule(Rule):
    """Flags messages that carry a domain or IPv4 address not on the allowlist.

    The domain pass runs first; the first unallowed candidate in either pass
    ends evaluation. Allowlists are re-read on every call.
    """

    config_key = "address"

    def __init__(self, config: ConfigProvider, spec: RuleSpec = ADDRESS_SPEC) -> None:
        super().__init__(spec, config)

    def allowed_domains(self) -> list[str]:
        return self.config.get_strings("address", "allowed_domains")

    def allowed_addresses(self) -> list[str]:
        return self.config.get_strings("address", "allowed_addresses")

    def find_violation(self, message: str) -> Optional[str]:
        """Return the first offending domain or address, or None."""
        if not message or not self.is_enabled():
            return None
        if len(message) >= MINIMUM_DOMAIN_CHARS:
            hit = first_disallowed_domain(message, self.allowed_domains())
            if hit is not None:
                return hit
        if len(message) >= MINIMUM_ADDRESS_CHARS:
            return first_disallowed_address(message, self.allowed_addresses())
        return None

    def evaluate(self, subject: Subject, message: str) -> bool:
        return self.find_violation(message) is not None
