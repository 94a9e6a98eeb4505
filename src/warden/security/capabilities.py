from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import discord

log = logging.getLogger("warden.security.capabilities")

# Only map a small, stable subset of Discord permissions.
_PERMISSION_NAMES = (
    "administrator",
    "manage_guild",
    "manage_roles",
    "manage_channels",
    "manage_messages",
    "kick_members",
    "ban_members",
    "moderate_members",
)


@dataclass(frozen=True)
class CapabilityResolution:
    guild_id: int
    user_id: int
    capabilities: frozenset[str]
    # Minimal explainability that stays stable and machine-readable.
    sources: tuple[str, ...]


def _normalize_caps(items: Any) -> list[str]:
    if items is None:
        return []
    if isinstance(items, str):
        return [items]
    if isinstance(items, list):
        return [x for x in items if isinstance(x, str) and x]
    return []


def _match_any(patterns: frozenset[str], cap: str) -> bool:
    if cap in patterns:
        return True
    # Wildcard patterns like "warden.bypass.*".
    for p in patterns:
        if "*" in p or "?" in p or "[" in p:
            if fnmatch.fnmatchcase(cap, p):
                return True
    return False


def has_cap(resolution: CapabilityResolution, cap: str) -> bool:
    return _match_any(resolution.capabilities, cap)


def resolve_capabilities(member: discord.Member, doc: Optional[Mapping[str, Any]]) -> CapabilityResolution:
    """Resolve the bypass capabilities a member holds.

    - The guild owner gets "*".
    - The `authz` section of the published config may define:
      - role_capabilities: {"<role_id>": ["cap", ...]}
      - discord_permission_capabilities: {"administrator": ["cap", ...], ...}
      - baseline_capabilities: ["cap", ...] granted to everyone
    """

    guild = member.guild
    guild_id = int(guild.id)
    user_id = int(member.id)

    if getattr(guild, "owner_id", None) is not None and int(guild.owner_id) == user_id:
        return CapabilityResolution(guild_id=guild_id, user_id=user_id, capabilities=frozenset({"*"}), sources=("guild_owner",))

    authz = doc.get("authz") if isinstance(doc, Mapping) else None
    if not isinstance(authz, Mapping):
        return CapabilityResolution(guild_id=guild_id, user_id=user_id, capabilities=frozenset(), sources=("config_no_authz",))

    cap_set: set[str] = set()
    sources: list[str] = []

    role_caps = authz.get("role_capabilities")
    if isinstance(role_caps, Mapping):
        for role in member.roles:
            # JSON keys are strings; accept int keys from hand-built docs too.
            items = role_caps.get(str(int(role.id)))
            if items is None:
                items = role_caps.get(int(role.id))
            caps = _normalize_caps(items)
            if caps:
                cap_set.update(caps)
                sources.append(f"role:{role.id}")

    perm_caps = authz.get("discord_permission_capabilities")
    if isinstance(perm_caps, Mapping):
        gp = member.guild_permissions
        for pname in _PERMISSION_NAMES:
            if not getattr(gp, pname, False):
                continue
            caps = _normalize_caps(perm_caps.get(pname))
            if caps:
                cap_set.update(caps)
                sources.append(f"perm:{pname}")

    baseline = _normalize_caps(authz.get("baseline_capabilities"))
    if baseline:
        cap_set.update(baseline)
        sources.append("baseline")

    return CapabilityResolution(
        guild_id=guild_id,
        user_id=user_id,
        capabilities=frozenset(cap_set),
        sources=tuple(sorted(set(sources))),
    )
