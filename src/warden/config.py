from __future__ import annotations

import os
from dataclasses import dataclass


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}


def _get_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip() or default


@dataclass(frozen=True)
class Settings:
    token: str
    sqlite_path: str
    log_level: str
    # Substituted for {prefix} in warnings and punishment commands.
    prefix: str = "[Warden]"
    sync_guild_id: int = 0
    # Needed to read message text at all; enable it in the Developer Portal too.
    message_content_intent: bool = True
    # Stop evaluating further rules once one rule is violated.
    stop_on_first_violation: bool = False


def load_settings() -> Settings:
    token = os.getenv("DISCORD_TOKEN", "").strip()
    if not token:
        raise RuntimeError("DISCORD_TOKEN is required")
    return Settings(
        token=token,
        sqlite_path=_get_str("SQLITE_PATH", "warden.sqlite3"),
        log_level=_get_str("LOG_LEVEL", "INFO"),
        prefix=_get_str("WARDEN_PREFIX", "[Warden]"),
        sync_guild_id=_get_int("SYNC_GUILD_ID", 0),
        message_content_intent=_get_bool("MESSAGE_CONTENT_INTENT", True),
        stop_on_first_violation=_get_bool("STOP_ON_FIRST_VIOLATION", False),
    )
