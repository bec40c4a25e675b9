"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from finance_agent.api.dependencies import get_conversation_store, get_finance_store
from finance_agent.models.schemas import HealthResponse
from finance_agent.storage.sqlite_conversation_store import SQLiteConversationStore
from finance_agent.storage.sqlite_finance_store import SQLiteFinanceStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    finance_store: SQLiteFinanceStore = Depends(get_finance_store),
    conversation_store: SQLiteConversationStore = Depends(get_conversation_store),
) -> HealthResponse:
    return HealthResponse(
        status="ok",
        conversation_count=await conversation_store.count_conversations(),
        transaction_count=await finance_store.count_transactions(),
    )
