from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import aiosqlite

from ..moderation.config_schema import default_config, validate_config

log = logging.getLogger("warden.services.moderation_config_store")


@dataclass(frozen=True)
class ConfigPointers:
    published_revision: int
    draft_revision: int


class ConfigValidationError(ValueError):
    pass


class ModerationConfigStore:
    """Versioned rule configuration.

    - `moderation_config_revisions`: append-only revisions
    - `moderation_config_state`: single row of draft/published pointers

    Only configuration lives here; violation counters stay in memory.
    """

    def __init__(self, sqlite_path: str) -> None:
        self._path = sqlite_path

    async def init(self) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS moderation_config_revisions (
                  revision INTEGER PRIMARY KEY,
                  created_at_iso TEXT NOT NULL,
                  created_by_user_id INTEGER,
                  doc_json TEXT NOT NULL
                )
                """
            )
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS moderation_config_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  published_revision INTEGER NOT NULL,
                  draft_revision INTEGER NOT NULL
                )
                """
            )
            await db.commit()

    async def ensure_default(self, *, created_at_iso: str) -> None:
        """Seed revision 1 with the default document on first run."""
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute("SELECT id FROM moderation_config_state WHERE id = 1")
            if await cur.fetchone():
                return
            doc_json = json.dumps(default_config(), separators=(",", ":"), ensure_ascii=False)
            await db.execute(
                "INSERT INTO moderation_config_revisions (revision, created_at_iso, created_by_user_id, doc_json) VALUES (1, ?, NULL, ?)",
                (created_at_iso, doc_json),
            )
            await db.execute(
                "INSERT INTO moderation_config_state (id, published_revision, draft_revision) VALUES (1, 1, 1)"
            )
            await db.commit()
            log.info("seeded default moderation config (r1)")

    async def get_pointers(self) -> ConfigPointers:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            cur = await db.execute("SELECT published_revision, draft_revision FROM moderation_config_state WHERE id = 1")
            row = await cur.fetchone()
            if not row:
                raise RuntimeError("Moderation config not initialized")
            return ConfigPointers(
                published_revision=int(row["published_revision"]),
                draft_revision=int(row["draft_revision"]),
            )

    async def get_doc(self, revision: int) -> dict[str, Any]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            cur = await db.execute("SELECT doc_json FROM moderation_config_revisions WHERE revision = ?", (revision,))
            row = await cur.fetchone()
            if not row:
                raise RuntimeError(f"Revision {revision} not found")
            return json.loads(row["doc_json"])

    async def get_published(self) -> tuple[int, dict[str, Any]]:
        ptr = await self.get_pointers()
        return ptr.published_revision, await self.get_doc(ptr.published_revision)

    async def get_draft(self) -> tuple[int, dict[str, Any]]:
        ptr = await self.get_pointers()
        return ptr.draft_revision, await self.get_doc(ptr.draft_revision)

    async def save_draft(self, doc: dict[str, Any], *, created_at_iso: str, created_by_user_id: Optional[int]) -> int:
        issues = validate_config(doc)
        if issues:
            raise ConfigValidationError("Config validation failed: " + "; ".join(f"{i.path}: {i.message}" for i in issues[:10]))

        ptr = await self.get_pointers()
        new_rev = max(ptr.draft_revision, ptr.published_revision) + 1
        doc_json = json.dumps(doc, separators=(",", ":"), ensure_ascii=False)
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO moderation_config_revisions (revision, created_at_iso, created_by_user_id, doc_json) VALUES (?, ?, ?, ?)",
                (new_rev, created_at_iso, created_by_user_id, doc_json),
            )
            await db.execute("UPDATE moderation_config_state SET draft_revision = ? WHERE id = 1", (new_rev,))
            await db.commit()
        return new_rev

    async def publish(self) -> tuple[int, dict[str, Any]]:
        """Point `published` at the current draft and return it."""
        ptr = await self.get_pointers()
        doc = await self.get_doc(ptr.draft_revision)
        async with aiosqlite.connect(self._path) as db:
            await db.execute("UPDATE moderation_config_state SET published_revision = ? WHERE id = 1", (ptr.draft_revision,))
            await db.commit()
        return ptr.draft_revision, doc
