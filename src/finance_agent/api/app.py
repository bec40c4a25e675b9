"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from finance_agent.api.middleware import RequestContextMiddleware
from finance_agent.api.rate_limiter import InMemoryRateLimiter
from finance_agent.api.routes_chat import GENERIC_FAILURE
from finance_agent.api.routes_chat import router as chat_router
from finance_agent.api.routes_conversations import router as conversations_router
from finance_agent.api.routes_health import router as health_router
from finance_agent.api.routes_settings import router as settings_router
from finance_agent.config.settings import Settings
from finance_agent.exceptions import FinanceAgentError
from finance_agent.generation.composer import PromptComposer
from finance_agent.generation.fallback import FallbackGenerator
from finance_agent.generation.providers import create_provider
from finance_agent.observability.logger import get_logger, setup_logging
from finance_agent.pipeline.streaming import StreamingResponder
from finance_agent.query.analyzer import QueryAnalyzer
from finance_agent.retrieval.assembler import ContextAssembler
from finance_agent.retrieval.registry import create_default_retrievers
from finance_agent.retrieval.selector import RetrieverSelector
from finance_agent.scoring.confidence import ConfidenceScorer
from finance_agent.storage.sqlite_conversation_store import SQLiteConversationStore
from finance_agent.storage.sqlite_finance_store import SQLiteFinanceStore
from finance_agent.storage.sqlite_settings_store import SQLiteAISettingsStore

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.json_logs)

    Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)

    # Storage
    finance_store = SQLiteFinanceStore(settings.sqlite_db_path)
    await finance_store.initialize()
    conversation_store = SQLiteConversationStore(settings.sqlite_db_path)
    await conversation_store.initialize()
    settings_store = SQLiteAISettingsStore(settings.sqlite_db_path)
    await settings_store.initialize()

    # Retrieval
    retrievers = create_default_retrievers(finance_store)
    assembler = ContextAssembler(
        retrievers=retrievers,
        selector=RetrieverSelector(max_retrievers=settings.max_retrievers),
        settings=settings,
    )

    # Shared turn components; the provider gateway is built per user per turn
    app.state.analyzer = QueryAnalyzer()
    app.state.assembler = assembler
    app.state.composer = PromptComposer(history_limit=settings.history_prompt_limit)
    app.state.fallback_generator = FallbackGenerator()
    app.state.confidence_scorer = ConfidenceScorer(settings)
    app.state.streaming_responder = StreamingResponder(
        chunk_size=settings.stream_chunk_size, delay_ms=settings.stream_delay_ms
    )
    app.state.rate_limiter = InMemoryRateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.state.provider_factory = create_provider
    app.state.finance_store = finance_store
    app.state.conversation_store = conversation_store
    app.state.settings_store = settings_store

    if not settings.ai_encryption_secret:
        logger.warning("encryption_secret_missing")

    logger.info(
        "startup_complete",
        retrievers=sorted(retrievers),
        conversations=await conversation_store.count_conversations(),
    )

    yield

    logger.info("shutdown_complete")


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request", "errors": jsonable_errors(exc)},
    )


async def finance_agent_error_handler(request: Request, exc: FinanceAgentError) -> JSONResponse:
    logger.error("unhandled_domain_error", error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": GENERIC_FAILURE},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def create_app(settings: Settings | None = None) -> FastAPI:
    app = FastAPI(
        title="Finance Agent",
        version="1.0.0",
        description="Agentic retrieval-augmented financial assistant",
        lifespan=lifespan,
    )
    app.state.settings = settings or Settings()
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(FinanceAgentError, finance_agent_error_handler)
    app.include_router(health_router, tags=["health"])
    app.include_router(chat_router, tags=["chat"])
    app.include_router(conversations_router, tags=["conversations"])
    app.include_router(settings_router, tags=["settings"])
    return app
