from __future__ import annotations

import json
import re
import threading
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import ConfigValueMissingError, ConfigValueTypeError


DEFAULT_CONFIG_VERSION = 1

# Rule sections every rule-config must carry under "checks".
CHECK_KEYS = ("enabled", "warning_enabled", "punish_after", "punish_command")


def default_config() -> dict[str, Any]:
    """Default moderation config.

    Document model:
    - checks: per-rule switches, punishment interval and command template
    - address / invite: per-rule allowlists
    - messages: warning templates, keyed "<rule>_warning"
    - authz: bypass capability grants (see security.capabilities)
    """

    return {
        "version": DEFAULT_CONFIG_VERSION,
        "checks": {
            "address": {
                "enabled": True,
                "warning_enabled": True,
                "punish_after": 3,
                "punish_command": "timeout {player_id} 10 Advertising addresses",
            },
            "invite": {
                "enabled": True,
                "warning_enabled": True,
                "punish_after": 2,
                "punish_command": "kick {player_id} Posting invite links",
            },
        },
        "address": {
            "allowed_domains": ["discord.com", "youtube.com", "github.com"],
            "allowed_addresses": ["127.0.0.1"],
        },
        "invite": {
            "allowed_codes": [],
        },
        "messages": {
            "address_warning": ["{prefix} {player}, please do not send addresses in chat."],
            "invite_warning": ["{prefix} {player}, invite links are not allowed here."],
        },
        "authz": {
            "role_capabilities": {},
            "discord_permission_capabilities": {
                "administrator": ["warden.bypass.*"],
                "manage_messages": ["warden.bypass.address", "warden.bypass.invite"],
            },
            "baseline_capabilities": [],
        },
    }


INVITE_RE = re.compile(r"(?:https?://)?(?:www\.)?(?:discord\.gg|discord(?:app)?\.com/invite)/([A-Za-z0-9-]+)", re.I)


@dataclass(frozen=True)
class ValidationIssue:
    path: str
    message: str


def _is_jsonable(obj: Any) -> bool:
    try:
        json.dumps(obj)
        return True
    except (TypeError, ValueError):
        return False


def _is_str_list(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def validate_config(doc: dict[str, Any]) -> list[ValidationIssue]:
    """Validate config. Returns list of issues; empty means valid."""

    issues: list[ValidationIssue] = []
    if not isinstance(doc, dict):
        return [ValidationIssue(path="$", message="Config must be an object")]

    if doc.get("version") != DEFAULT_CONFIG_VERSION:
        issues.append(ValidationIssue(path="$.version", message=f"Unsupported version (expected {DEFAULT_CONFIG_VERSION})"))

    checks = doc.get("checks")
    if not isinstance(checks, dict):
        issues.append(ValidationIssue(path="$.checks", message="checks must be an object"))
        checks = {}

    for name, section in checks.items():
        pfx = f"$.checks.{name}"
        if not isinstance(section, dict):
            issues.append(ValidationIssue(path=pfx, message="check section must be an object"))
            continue
        for key in CHECK_KEYS:
            if key not in section:
                issues.append(ValidationIssue(path=f"{pfx}.{key}", message="required"))
        for key in ("enabled", "warning_enabled"):
            if key in section and not isinstance(section[key], bool):
                issues.append(ValidationIssue(path=f"{pfx}.{key}", message="must be boolean"))
        pa = section.get("punish_after")
        # bool is an int subclass; reject it explicitly.
        if "punish_after" in section and (not isinstance(pa, int) or isinstance(pa, bool)):
            issues.append(ValidationIssue(path=f"{pfx}.punish_after", message="must be integer (<= 0 disables punishment)"))
        if "punish_command" in section and not isinstance(section.get("punish_command"), str):
            issues.append(ValidationIssue(path=f"{pfx}.punish_command", message="must be string"))

        warn = (doc.get("messages") or {}).get(f"{name}_warning") if isinstance(doc.get("messages"), dict) else None
        if warn is None:
            issues.append(ValidationIssue(path=f"$.messages.{name}_warning", message="required"))
        elif not _is_str_list(warn):
            issues.append(ValidationIssue(path=f"$.messages.{name}_warning", message="must be list[str]"))

    address = doc.get("address")
    if "address" in checks:
        if not isinstance(address, dict):
            issues.append(ValidationIssue(path="$.address", message="address must be an object"))
        else:
            for key in ("allowed_domains", "allowed_addresses"):
                if not _is_str_list(address.get(key)):
                    issues.append(ValidationIssue(path=f"$.address.{key}", message="must be list[str]"))
            for i, d in enumerate(address.get("allowed_domains") or []):
                if isinstance(d, str) and d != d.lower():
                    # Matches are lower-cased before the containment test.
                    issues.append(ValidationIssue(path=f"$.address.allowed_domains[{i}]", message="must be lower-case to ever match"))

    invite = doc.get("invite")
    if "invite" in checks:
        if not isinstance(invite, dict) or not _is_str_list(invite.get("allowed_codes")):
            issues.append(ValidationIssue(path="$.invite.allowed_codes", message="must be list[str]"))

    authz = doc.get("authz")
    if authz is not None and not isinstance(authz, dict):
        issues.append(ValidationIssue(path="$.authz", message="authz must be an object"))

    if not _is_jsonable(doc):
        issues.append(ValidationIssue(path="$", message="config must be JSON serializable"))
    return issues


class ConfigProvider:
    """Read-only, section-keyed view over a moderation config document.

    Sections are dotted paths into the document ("checks.address").
    Missing values raise instead of falling back to defaults. The document
    can be swapped with `replace()` when a new revision is published.
    """

    def __init__(self, doc: Mapping[str, Any], *, prefix: str = "[Warden]") -> None:
        self._lock = threading.Lock()
        self._doc = doc
        self.prefix = prefix

    @property
    def document(self) -> Mapping[str, Any]:
        with self._lock:
            return self._doc

    def replace(self, doc: Mapping[str, Any]) -> None:
        with self._lock:
            self._doc = doc

    def _section(self, section: str, key: str) -> Mapping[str, Any]:
        node: Any = self.document
        for part in section.split("."):
            if not isinstance(node, Mapping) or part not in node:
                raise ConfigValueMissingError(section, key)
            node = node[part]
        if not isinstance(node, Mapping):
            raise ConfigValueMissingError(section, key)
        return node

    def get(self, section: str, key: str) -> Any:
        node = self._section(section, key)
        if key not in node or node[key] is None:
            raise ConfigValueMissingError(section, key)
        return node[key]

    def get_bool(self, section: str, key: str) -> bool:
        v = self.get(section, key)
        if not isinstance(v, bool):
            raise ConfigValueTypeError(section, key, "boolean")
        return v

    def get_int(self, section: str, key: str) -> int:
        v = self.get(section, key)
        if not isinstance(v, int) or isinstance(v, bool):
            raise ConfigValueTypeError(section, key, "integer")
        return v

    def get_str(self, section: str, key: str) -> str:
        v = self.get(section, key)
        if not isinstance(v, str):
            raise ConfigValueTypeError(section, key, "string")
        return v

    def get_strings(self, section: str, key: str) -> list[str]:
        v = self.get(section, key)
        if not _is_str_list(v):
            raise ConfigValueTypeError(section, key, "list[str]")
        return list(v)
