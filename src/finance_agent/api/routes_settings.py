"""Per-user AI settings and provider connection test."""

from __future__ import annotations

import asyncio
import time

from fastapi import APIRouter, Depends, HTTPException, status

from finance_agent.api.auth import verify_token
from finance_agent.api.dependencies import (
    ProviderFactory,
    get_provider_factory,
    get_settings,
    get_settings_store,
)
from finance_agent.config.settings import Settings
from finance_agent.exceptions import ConfigurationError, EncryptionError, ProviderError
from finance_agent.generation.providers import PROVIDER_DISPLAY_NAMES, RECOMMENDED_MODELS
from finance_agent.models.domain import AISettings
from finance_agent.models.schemas import (
    AISettingsOut,
    AISettingsUpdate,
    ConnectionTestRequest,
    ConnectionTestResponse,
    DataAccess,
)
from finance_agent.observability.logger import get_logger
from finance_agent.security import decrypt_api_key, encrypt_api_key, mask_api_key
from finance_agent.storage.sqlite_settings_store import SQLiteAISettingsStore

logger = get_logger("routes_settings")

router = APIRouter(prefix="/ai")

CONNECTION_FAILURE_MESSAGES = {
    "AUTH_ERROR": "Authentication failed. Please check your API key.",
    "MODEL_NOT_FOUND": "Model or deployment not found. Please check the model name and endpoint.",
    "RATE_LIMIT": "The provider is rate limiting requests. Please try again shortly.",
    "NETWORK_ERROR": "Could not reach the provider. Please check the endpoint.",
}


async def _masked_key(ai: AISettings, settings: Settings) -> str | None:
    if not ai.api_key_encrypted:
        return None
    try:
        plain = await asyncio.to_thread(
            decrypt_api_key, ai.api_key_encrypted, settings.ai_encryption_secret
        )
    except EncryptionError:
        return None
    return mask_api_key(plain)

async def _settings_out(ai: AISettings, settings: Settings) -> AISettingsOut:
    return AISettingsOut(
        ai_enabled=ai.ai_enabled,
        provider=ai.provider,
        model_endpoint=ai.model_endpoint,
        model_name=ai.model_name,
        temperature=ai.temperature,
        max_tokens=ai.max_tokens,
        enable_crag=ai.enable_crag,
        enable_fallback=ai.enable_fallback,
        relevance_threshold=ai.relevance_threshold,
        max_retrieval_docs=ai.max_retrieval_docs,
        enable_web_search_fallback=ai.enable_web_search_fallback,
        data_access=DataAccess(**ai.data_access),
        anonymize_vendors=ai.anonymize_vendors,
        exclude_sensitive_categories=ai.exclude_sensitive_categories,
        has_api_key=bool(ai.api_key_encrypted),
        masked_api_key=await _masked_key(ai, settings),
    )


@router.get("/settings", response_model=AISettingsOut)
async def get_ai_settings(
    token: dict = Depends(verify_token),
    settings: Settings = Depends(get_settings),
    store: SQLiteAISettingsStore = Depends(get_settings_store),
) -> AISettingsOut:
    ai = await store.get(token["sub"]) or AISettings(user_id=token["sub"])
    return await _settings_out(ai, settings)


@router.put("/settings", response_model=AISettingsOut)
async def update_ai_settings(
    body: AISettingsUpdate,
    token: dict = Depends(verify_token),
    settings: Settings = Depends(get_settings),
    store: SQLiteAISettingsStore = Depends(get_settings_store),
) -> AISettingsOut:
    ai = await store.get(token["sub"]) or AISettings(user_id=token["sub"])

    changes = body.model_dump(exclude_unset=True, exclude={"api_key", "data_access"})
    for field_name, value in changes.items():
        if value is not None:
            setattr(ai, field_name, value)
    if body.data_access is not None:
        ai.data_access = body.data_access.model_dump()
    if body.api_key:
        try:
            ai.api_key_encrypted = await asyncio.to_thread(
                encrypt_api_key, body.api_key, settings.ai_encryption_secret
            )
        except EncryptionError:
            logger.error("api_key_encrypt_failed", user_id=ai.user_id)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to save API key",
            )

    if ai.provider == "azure_foundry" and ai.ai_enabled and not ai.model_endpoint:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Model endpoint is required for Azure AI Foundry",
        )

    await store.save(ai)
    logger.info("ai_settings_updated", user_id=ai.user_id, provider=ai.provider, ai_enabled=ai.ai_enabled)
    return await _settings_out(ai, settings)


@router.post("/test-connection", response_model=ConnectionTestResponse)
async def test_connection(
    body: ConnectionTestRequest,
    token: dict = Depends(verify_token),
    settings: Settings = Depends(get_settings),
    store: SQLiteAISettingsStore = Depends(get_settings_store),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
) -> ConnectionTestResponse:
    api_key = body.api_key
    if not api_key:
        stored = await store.get(token["sub"])
        if stored is None or not stored.api_key_encrypted:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="API key is required")
        try:
            api_key = await asyncio.to_thread(
                decrypt_api_key, stored.api_key_encrypted, settings.ai_encryption_secret
            )
        except EncryptionError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Stored API key could not be read. Please re-enter it.",
            )

    display_name = PROVIDER_DISPLAY_NAMES[body.provider]
    recommended = RECOMMENDED_MODELS[body.provider]
    try:
        gateway = provider_factory(
            body.provider,
            api_key,
            model_name=body.model_name,
            endpoint=body.model_endpoint,
            timeout=settings.provider_timeout_seconds,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    start = time.monotonic()
    try:
        await gateway.test_connection()
    except ProviderError as e:
        logger.warning("connection_test_failed", provider=body.provider, code=e.code, error=str(e))
        return ConnectionTestResponse(
            success=False,
            message=CONNECTION_FAILURE_MESSAGES.get(e.code, "Connection test failed."),
            provider_name=display_name,
            recommended_models=recommended,
        )

    return ConnectionTestResponse(
        success=True,
        message=f"Successfully connected to {display_name}",
        provider_name=display_name,
        latency_ms=round((time.monotonic() - start) * 1000, 2),
        recommended_models=recommended,
    )
