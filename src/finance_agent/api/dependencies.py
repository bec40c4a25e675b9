"""FastAPI dependency injection helpers."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from finance_agent.config.settings import Settings
from finance_agent.generation.composer import PromptComposer
from finance_agent.generation.fallback import FallbackGenerator
from finance_agent.models.domain import AISettings, ChatOptions
from finance_agent.pipeline.agent_orchestrator import AgentOrchestrator
from finance_agent.pipeline.streaming import StreamingResponder
from finance_agent.protocols.llm import ProviderGateway
from finance_agent.query.analyzer import QueryAnalyzer
from finance_agent.retrieval.assembler import ContextAssembler
from finance_agent.scoring.confidence import ConfidenceScorer
from finance_agent.storage.sqlite_conversation_store import SQLiteConversationStore
from finance_agent.storage.sqlite_finance_store import SQLiteFinanceStore
from finance_agent.storage.sqlite_settings_store import SQLiteAISettingsStore

ProviderFactory = Callable[..., ProviderGateway]


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_finance_store(request: Request) -> SQLiteFinanceStore:
    return request.app.state.finance_store


def get_conversation_store(request: Request) -> SQLiteConversationStore:
    return request.app.state.conversation_store


def get_settings_store(request: Request) -> SQLiteAISettingsStore:
    return request.app.state.settings_store


def get_streaming_responder(request: Request) -> StreamingResponder:
    return request.app.state.streaming_responder


def get_provider_factory(request: Request) -> ProviderFactory:
    return request.app.state.provider_factory


def build_orchestrator(
    request: Request, gateway: ProviderGateway, ai_settings: AISettings
) -> AgentOrchestrator:
    """Per-turn orchestrator over the shared components and the user's gateway."""
    state = request.app.state
    analyzer: QueryAnalyzer = state.analyzer
    assembler: ContextAssembler = state.assembler
    composer: PromptComposer = state.composer
    fallback: FallbackGenerator = state.fallback_generator
    scorer: ConfidenceScorer = state.confidence_scorer
    return AgentOrchestrator(
        analyzer=analyzer,
        assembler=assembler,
        composer=composer,
        gateway=gateway,
        fallback_generator=fallback,
        confidence_scorer=scorer,
        data_source=state.finance_store,
        chat_options=ChatOptions(
            temperature=ai_settings.temperature, max_tokens=ai_settings.max_tokens
        ),
        enable_fallback=ai_settings.enable_fallback,
    )
