"""Conversation history endpoints."""

from __future__ import annotations

import math
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status

from finance_agent.api.auth import verify_token
from finance_agent.api.dependencies import get_conversation_store
from finance_agent.models.domain import Conversation, StoredMessage
from finance_agent.models.schemas import (
    ConversationDetailResponse,
    ConversationListResponse,
    ConversationOut,
    ConversationUpdate,
    LastMessagePreview,
    MessageOut,
    Pagination,
)
from finance_agent.storage.sqlite_conversation_store import SQLiteConversationStore

router = APIRouter(prefix="/ai/conversations")

PREVIEW_LENGTH = 100


def _conversation_out(conversation: Conversation, last: StoredMessage | None = None) -> ConversationOut:
    preview = None
    if last is not None:
        text = last.content
        preview = LastMessagePreview(
            preview=text[:PREVIEW_LENGTH] + ("..." if len(text) > PREVIEW_LENGTH else ""),
            role=last.role,
            created_at=last.created_at,
        )
    return ConversationOut(
        id=conversation.id,
        title=conversation.title,
        total_messages=conversation.total_messages,
        total_tokens_used=conversation.total_tokens_used,
        is_archived=conversation.is_archived,
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
        last_message=preview,
    )


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    include_archived: bool = False,
    token: dict = Depends(verify_token),
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> ConversationListResponse:
    items, total = await store.list_conversations(
        token["sub"], page=page, limit=limit, include_archived=include_archived
    )
    return ConversationListResponse(
        conversations=[_conversation_out(c, last) for c, last in items],
        pagination=Pagination(
            page=page, limit=limit, total=total, total_pages=math.ceil(total / limit)
        ),
    )


@router.get("/{conversation_id}", response_model=ConversationDetailResponse)
async def get_conversation(
    conversation_id: str,
    limit: int = Query(50, ge=1, le=200),
    order: Literal["asc", "desc"] = "asc",
    token: dict = Depends(verify_token),
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> ConversationDetailResponse:
    conversation = await store.get(conversation_id, token["sub"])
    if conversation is None:
        raise _not_found()
    messages = await store.list_messages(conversation_id, limit=limit, order=order)
    return ConversationDetailResponse(
        conversation=_conversation_out(conversation),
        messages=[
            MessageOut(
                id=m.id,
                role=m.role,
                content=m.content,
                data_sources=m.data_sources,
                confidence_score=m.confidence_score,
                tokens_used=m.tokens_used,
                processing_time_ms=m.processing_time_ms,
                created_at=m.created_at,
            )
            for m in messages
        ],
    )


@router.patch("/{conversation_id}", response_model=ConversationOut)
async def update_conversation(
    conversation_id: str,
    body: ConversationUpdate,
    token: dict = Depends(verify_token),
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> ConversationOut:
    conversation = await store.update(
        conversation_id, token["sub"], title=body.title, is_archived=body.is_archived
    )
    if conversation is None:
        raise _not_found()
    return _conversation_out(conversation)


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    token: dict = Depends(verify_token),
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> dict:
    if not await store.delete(conversation_id, token["sub"]):
        raise _not_found()
    return {"success": True}
