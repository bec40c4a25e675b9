"""SQLite-backed per-user AI settings."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import aiosqlite

from finance_agent.models.domain import AISettings
from finance_agent.storage.migrations import initialize_settings_db

_COLUMNS = (
    "user_id",
    "ai_enabled",
    "provider",
    "api_key_encrypted",
    "model_endpoint",
    "model_name",
    "temperature",
    "max_tokens",
    "enable_crag",
    "enable_fallback",
    "relevance_threshold",
    "max_retrieval_docs",
    "enable_web_search_fallback",
    "data_access",
    "anonymize_vendors",
    "exclude_sensitive_categories",
    "updated_at",
)


class SQLiteAISettingsStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_settings_db(self._db_path)

    async def get(self, user_id: str) -> AISettings | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute("SELECT * FROM ai_settings WHERE user_id = ?", (user_id,)) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return AISettings(
                    user_id=row["user_id"],
                    ai_enabled=bool(row["ai_enabled"]),
                    provider=row["provider"],
                    api_key_encrypted=row["api_key_encrypted"],
                    model_endpoint=row["model_endpoint"],
                    model_name=row["model_name"],
                    temperature=row["temperature"],
                    max_tokens=row["max_tokens"],
                    enable_crag=bool(row["enable_crag"]),
                    enable_fallback=bool(row["enable_fallback"]),
                    relevance_threshold=row["relevance_threshold"],
                    max_retrieval_docs=row["max_retrieval_docs"],
                    enable_web_search_fallback=bool(row["enable_web_search_fallback"]),
                    data_access=json.loads(row["data_access"]),
                    anonymize_vendors=bool(row["anonymize_vendors"]),
                    exclude_sensitive_categories=bool(row["exclude_sensitive_categories"]),
                )

    async def save(self, settings: AISettings) -> None:
        values = (
            settings.user_id,
            int(settings.ai_enabled),
            settings.provider,
            settings.api_key_encrypted,
            settings.model_endpoint,
            settings.model_name,
            settings.temperature,
            settings.max_tokens,
            int(settings.enable_crag),
            int(settings.enable_fallback),
            settings.relevance_threshold,
            settings.max_retrieval_docs,
            int(settings.enable_web_search_fallback),
            json.dumps(settings.data_access),
            int(settings.anonymize_vendors),
            int(settings.exclude_sensitive_categories),
            datetime.now(timezone.utc).isoformat(),
        )
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                f"INSERT OR REPLACE INTO ai_settings ({', '.join(_COLUMNS)}) "
                f"VALUES ({', '.join('?' for _ in _COLUMNS)})",
                values,
            )
            await db.commit()
