"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

ProviderName = Literal["openai", "azure_foundry", "anthropic"]


class ChatRequest(BaseModel):
    message: str
    conversation_id: str | None = None
    stream: bool = False


class ChatMessageOut(BaseModel):
    role: str
    content: str


class TurnMetadata(BaseModel):
    intent: str
    data_sources: list[str]
    confidence: float
    records_analyzed: int
    processing_time_ms: float
    tokens_used: int
    fallback_used: bool


class ChatData(BaseModel):
    conversation_id: str
    message: ChatMessageOut
    metadata: TurnMetadata


class ChatResponse(BaseModel):
    success: bool = True
    data: ChatData


class LastMessagePreview(BaseModel):
    preview: str
    role: str
    created_at: datetime


class ConversationOut(BaseModel):
    id: str
    title: str
    total_messages: int
    total_tokens_used: int
    is_archived: bool
    created_at: datetime
    updated_at: datetime
    last_message: LastMessagePreview | None = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ConversationListResponse(BaseModel):
    conversations: list[ConversationOut]
    pagination: Pagination


class MessageOut(BaseModel):
    id: str
    role: str
    content: str
    data_sources: list[str] = Field(default_factory=list)
    confidence_score: float | None = None
    tokens_used: int | None = None
    processing_time_ms: float | None = None
    created_at: datetime


class ConversationDetailResponse(BaseModel):
    conversation: ConversationOut
    messages: list[MessageOut]


class ConversationUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    is_archived: bool | None = None


class DataAccess(BaseModel):
    transactions: bool = True
    budgets: bool = True
    goals: bool = True
    subscriptions: bool = True
    credit_cards: bool = True
    tax_data: bool = True
    income: bool = True
    forecasts: bool = True


class AISettingsOut(BaseModel):
    ai_enabled: bool
    provider: ProviderName
    model_endpoint: str | None
    model_name: str | None
    temperature: float
    max_tokens: int
    enable_crag: bool
    enable_fallback: bool
    relevance_threshold: float
    max_retrieval_docs: int
    enable_web_search_fallback: bool
    data_access: DataAccess
    anonymize_vendors: bool
    exclude_sensitive_categories: bool
    has_api_key: bool
    masked_api_key: str | None = None


class AISettingsUpdate(BaseModel):
    ai_enabled: bool | None = None
    provider: ProviderName | None = None
    api_key: str | None = None
    model_endpoint: str | None = None
    model_name: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1, le=32000)
    enable_crag: bool | None = None
    enable_fallback: bool | None = None
    relevance_threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    max_retrieval_docs: int | None = Field(default=None, ge=1, le=500)
    enable_web_search_fallback: bool | None = None
    data_access: DataAccess | None = None
    anonymize_vendors: bool | None = None
    exclude_sensitive_categories: bool | None = None


class ConnectionTestRequest(BaseModel):
    provider: ProviderName
    api_key: str | None = None
    model_name: str | None = None
    model_endpoint: str | None = None


class ConnectionTestResponse(BaseModel):
    success: bool
    message: str
    provider_name: str
    latency_ms: float | None = None
    recommended_models: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    conversation_count: int
    transaction_count: int
