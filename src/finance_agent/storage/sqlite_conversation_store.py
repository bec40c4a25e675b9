"""SQLite-backed conversation and message persistence."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from uuid import uuid4

import aiosqlite

from finance_agent.models.domain import Conversation, StoredMessage
from finance_agent.storage.migrations import initialize_conversation_db


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class SQLiteConversationStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_conversation_db(self._db_path)

    async def create(self, user_id: str, title: str) -> Conversation:
        now = _now()
        conversation = Conversation(
            id=str(uuid4()), user_id=user_id, title=title, created_at=now, updated_at=now
        )
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT INTO ai_conversations (id, user_id, title, total_messages, total_tokens_used, "
                "is_archived, created_at, updated_at) VALUES (?, ?, ?, 0, 0, 0, ?, ?)",
                (conversation.id, user_id, title, now.isoformat(), now.isoformat()),
            )
            await db.commit()
        return conversation

    async def get(self, conversation_id: str, user_id: str) -> Conversation | None:
        """Return the conversation only when it belongs to ``user_id``."""
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM ai_conversations WHERE id = ? AND user_id = ?",
                (conversation_id, user_id),
            ) as cursor:
                row = await cursor.fetchone()
                return self._row_to_conversation(row) if row else None

    async def list_conversations(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        include_archived: bool = False,
    ) -> tuple[list[tuple[Conversation, StoredMessage | None]], int]:
        where = "WHERE user_id = ?" + ("" if include_archived else " AND is_archived = 0")
        offset = max(0, page - 1) * limit
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(f"SELECT COUNT(*) FROM ai_conversations {where}", (user_id,)) as cursor:
                total = (await cursor.fetchone())[0]
            async with db.execute(
                f"SELECT * FROM ai_conversations {where} ORDER BY updated_at DESC LIMIT ? OFFSET ?",
                (user_id, limit, offset),
            ) as cursor:
                rows = await cursor.fetchall()

            items: list[tuple[Conversation, StoredMessage | None]] = []
            for row in rows:
                async with db.execute(
                    "SELECT * FROM ai_messages WHERE conversation_id = ? ORDER BY seq DESC LIMIT 1",
                    (row["id"],),
                ) as cursor:
                    last = await cursor.fetchone()
                items.append(
                    (self._row_to_conversation(row), self._row_to_message(last) if last else None)
                )
        return items, total

    async def update(
        self,
        conversation_id: str,
        user_id: str,
        title: str | None = None,
        is_archived: bool | None = None,
    ) -> Conversation | None:
        assignments = ["updated_at = ?"]
        params: list = [_now().isoformat()]
        if title is not None:
            assignments.append("title = ?")
            params.append(title)
        if is_archived is not None:
            assignments.append("is_archived = ?")
            params.append(int(is_archived))
        params.extend([conversation_id, user_id])
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                f"UPDATE ai_conversations SET {', '.join(assignments)} WHERE id = ? AND user_id = ?",
                params,
            )
            await db.commit()
            if cursor.rowcount == 0:
                return None
        return await self.get(conversation_id, user_id)

    async def delete(self, conversation_id: str, user_id: str) -> bool:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                "DELETE FROM ai_conversations WHERE id = ? AND user_id = ?",
                (conversation_id, user_id),
            )
            if cursor.rowcount == 0:
                return False
            await db.execute("DELETE FROM ai_messages WHERE conversation_id = ?", (conversation_id,))
            await db.commit()
        return True

    async def add_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        retrieved_data: dict | None = None,
        data_sources: list[str] | None = None,
        confidence_score: float | None = None,
        tokens_used: int | None = None,
        processing_time_ms: float | None = None,
    ) -> StoredMessage:
        message = StoredMessage(
            id=str(uuid4()),
            conversation_id=conversation_id,
            role=role,
            content=content,
            retrieved_data=retrieved_data,
            data_sources=list(data_sources or []),
            confidence_score=confidence_score,
            tokens_used=tokens_used,
            processing_time_ms=processing_time_ms,
        )
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT INTO ai_messages (id, conversation_id, role, content, retrieved_data, data_sources, "
                "confidence_score, tokens_used, processing_time_ms, created_at, seq) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, "
                "(SELECT COALESCE(MAX(seq), 0) + 1 FROM ai_messages WHERE conversation_id = ?))",
                (
                    message.id,
                    conversation_id,
                    role,
                    content,
                    json.dumps(retrieved_data) if retrieved_data is not None else None,
                    json.dumps(message.data_sources),
                    confidence_score,
                    tokens_used,
                    processing_time_ms,
                    message.created_at.isoformat(),
                    conversation_id,
                ),
            )
            await db.commit()
        return message

    async def recent_messages(self, conversation_id: str, limit: int = 10) -> list[StoredMessage]:
        """Last ``limit`` messages, newest first."""
        return await self.list_messages(conversation_id, limit=limit, order="desc")

    async def list_messages(
        self, conversation_id: str, limit: int = 50, order: str = "asc"
    ) -> list[StoredMessage]:
        direction = "DESC" if order == "desc" else "ASC"
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                f"SELECT * FROM ai_messages WHERE conversation_id = ? ORDER BY seq {direction} LIMIT ?",
                (conversation_id, limit),
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_message(row) for row in rows]

    async def increment_counters(self, conversation_id: str, messages: int, tokens: int) -> None:
        # Single statement so concurrent turns cannot lose updates
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "UPDATE ai_conversations SET total_messages = total_messages + ?, "
                "total_tokens_used = total_tokens_used + ?, updated_at = ? WHERE id = ?",
                (messages, tokens, _now().isoformat(), conversation_id),
            )
            await db.commit()

    async def count_conversations(self) -> int:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute("SELECT COUNT(*) FROM ai_conversations") as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    @staticmethod
    def _row_to_conversation(row: aiosqlite.Row) -> Conversation:
        return Conversation(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            total_messages=row["total_messages"],
            total_tokens_used=row["total_tokens_used"],
            is_archived=bool(row["is_archived"]),
            created_at=_parse_ts(row["created_at"]),
            updated_at=_parse_ts(row["updated_at"]),
        )

    @staticmethod
    def _row_to_message(row: aiosqlite.Row) -> StoredMessage:
        return StoredMessage(
            id=row["id"],
            conversation_id=row["conversation_id"],
            role=row["role"],
            content=row["content"],
            retrieved_data=json.loads(row["retrieved_data"]) if row["retrieved_data"] else None,
            data_sources=json.loads(row["data_sources"]),
            confidence_score=row["confidence_score"],
            tokens_used=row["tokens_used"],
            processing_time_ms=row["processing_time_ms"],
            created_at=_parse_ts(row["created_at"]),
        )
