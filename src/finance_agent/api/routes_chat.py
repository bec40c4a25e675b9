"""Chat turn endpoint."""

from __future__ import annotations

import asyncio
import time

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from finance_agent.api.dependencies import (
    ProviderFactory,
    build_orchestrator,
    get_conversation_store,
    get_provider_factory,
    get_settings,
    get_settings_store,
    get_streaming_responder,
)
from finance_agent.api.rate_limiter import rate_limit
from finance_agent.config.settings import Settings
from finance_agent.exceptions import ConfigurationError, EncryptionError
from finance_agent.models.domain import AgentResult, AISettings, ChatMessage
from finance_agent.models.schemas import (
    ChatData,
    ChatMessageOut,
    ChatRequest,
    ChatResponse,
    TurnMetadata,
)
from finance_agent.observability.logger import get_logger
from finance_agent.observability.metrics import log_latency
from finance_agent.pipeline.streaming import StreamingResponder
from finance_agent.protocols.llm import ProviderGateway, supports_streaming
from finance_agent.security import decrypt_api_key
from finance_agent.storage.sqlite_conversation_store import SQLiteConversationStore
from finance_agent.storage.sqlite_settings_store import SQLiteAISettingsStore

logger = get_logger("routes_chat")

router = APIRouter(prefix="/ai")

GENERIC_FAILURE = "Failed to process your request"


async def resolve_gateway(
    ai_settings: AISettings, settings: Settings, provider_factory: ProviderFactory
) -> ProviderGateway:
    """Decrypt the stored key and build the user's provider gateway, or raise 400."""
    if not ai_settings.api_key_encrypted:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="API key not configured. Please add your API key in AI settings.",
        )
    try:
        api_key = await asyncio.to_thread(
            decrypt_api_key, ai_settings.api_key_encrypted, settings.ai_encryption_secret
        )
    except EncryptionError:
        logger.warning("api_key_decrypt_failed", user_id=ai_settings.user_id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Stored API key could not be read. Please re-enter it in AI settings.",
        )
    try:
        return provider_factory(
            ai_settings.provider,
            api_key,
            model_name=ai_settings.model_name,
            endpoint=ai_settings.model_endpoint,
            timeout=settings.provider_timeout_seconds,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _retrieved_summary(result: AgentResult) -> dict:
    context = result.context
    return {
        "tables": result.metadata.data_sources,
        "record_count": result.metadata.records_analyzed,
        "summary": context.summaries.financial if context else None,
        "fallback_used": result.fallback_used,
    }


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    request: Request,
    token: dict = Depends(rate_limit),
    settings: Settings = Depends(get_settings),
    conversations: SQLiteConversationStore = Depends(get_conversation_store),
    settings_store: SQLiteAISettingsStore = Depends(get_settings_store),
    responder: StreamingResponder = Depends(get_streaming_responder),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    start = time.monotonic()
    user_id = token["sub"]
    message = body.message
    if not message.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")
    if len(message) > settings.max_message_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Message too long. Maximum {settings.max_message_length} characters.",
        )

    ai_settings = await settings_store.get(user_id)
    if ai_settings is None or not ai_settings.ai_enabled:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="AI features are disabled. Enable them in AI settings.",
        )
    gateway = await resolve_gateway(ai_settings, settings, provider_factory)

    if body.conversation_id:
        conversation = await conversations.get(body.conversation_id, user_id)
        if conversation is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
        recent = await conversations.recent_messages(conversation.id, settings.history_fetch_limit)
        history = [ChatMessage(m.role, m.content) for m in reversed(recent)]
    else:
        conversation = await conversations.create(
            user_id, message.strip()[: settings.conversation_title_length]
        )
        history = []

    await conversations.add_message(conversation.id, "user", message)

    orchestrator = build_orchestrator(request, gateway, ai_settings)
    try:
        result = await orchestrator.run(
            user_id,
            message,
            history=history,
            data_access=ai_settings.data_access,
            anonymize_vendors=ai_settings.anonymize_vendors,
            exclude_sensitive_categories=ai_settings.exclude_sensitive_categories,
        )
    except Exception as e:
        logger.error(
            "turn_failed",
            conversation_id=conversation.id,
            error_type=type(e).__name__,
            error=str(e),
        )
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=GENERIC_FAILURE)

    meta = result.metadata
    await conversations.add_message(
        conversation.id,
        "assistant",
        result.content,
        retrieved_data=_retrieved_summary(result),
        data_sources=meta.data_sources,
        confidence_score=meta.confidence,
        tokens_used=meta.tokens_used,
        processing_time_ms=meta.processing_time_ms,
    )
    await conversations.increment_counters(conversation.id, messages=2, tokens=meta.tokens_used)
    log_latency(meta.trace_id, "chat_turn", (time.monotonic() - start) * 1000)

    if body.stream and supports_streaming(gateway):
        return StreamingResponse(
            responder.sse(conversation.id, result),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    return ChatResponse(
        data=ChatData(
            conversation_id=conversation.id,
            message=ChatMessageOut(role="assistant", content=result.content),
            metadata=TurnMetadata(
                intent=meta.intent.value,
                data_sources=meta.data_sources,
                confidence=meta.confidence,
                records_analyzed=meta.records_analyzed,
                processing_time_ms=meta.processing_time_ms,
                tokens_used=meta.tokens_used,
                fallback_used=result.fallback_used,
            ),
        )
    )
