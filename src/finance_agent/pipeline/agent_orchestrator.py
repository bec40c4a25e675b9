"""Agent turn loop: analyze, assemble, compose, call the model or fall back."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from finance_agent.exceptions import GenerationError
from finance_agent.generation.composer import PromptComposer
from finance_agent.generation.fallback import FallbackGenerator
from finance_agent.models.domain import (
    AgentMetadata,
    AgentResult,
    AssembledContext,
    ChatMessage,
    ChatOptions,
    QueryAnalysis,
)
from finance_agent.models.finance import Category
from finance_agent.observability.logger import get_logger
from finance_agent.observability.metrics import log_context_metrics, log_turn_metrics
from finance_agent.observability.tracing import TraceContext
from finance_agent.protocols.data_source import FinanceDataSource
from finance_agent.protocols.llm import ProviderGateway
from finance_agent.query.analyzer import QueryAnalyzer
from finance_agent.retrieval.assembler import ContextAssembler
from finance_agent.scoring.confidence import ConfidenceScorer

logger = get_logger("agent_orchestrator")


class AgentOrchestrator:
    def __init__(
        self,
        analyzer: QueryAnalyzer,
        assembler: ContextAssembler,
        composer: PromptComposer,
        gateway: ProviderGateway,
        fallback_generator: FallbackGenerator,
        confidence_scorer: ConfidenceScorer,
        data_source: FinanceDataSource,
        chat_options: ChatOptions | None = None,
        enable_fallback: bool = True,
    ) -> None:
        self._analyzer = analyzer
        self._assembler = assembler
        self._composer = composer
        self._gateway = gateway
        self._fallback = fallback_generator
        self._confidence = confidence_scorer
        self._data_source = data_source
        self._chat_options = chat_options or ChatOptions()
        self._enable_fallback = enable_fallback

    async def run(
        self,
        user_id: str,
        query: str,
        history: Sequence[ChatMessage] = (),
        data_access: Mapping[str, bool] | None = None,
        anonymize_vendors: bool = False,
        exclude_sensitive_categories: bool = False,
    ) -> AgentResult:
        trace = TraceContext()

        # STEP 1: Query analysis
        with trace.span("analysis"):
            categories = await self._load_categories(user_id)
            analysis = await self._analyzer.analyze(query, history, categories)

        # STEP 2: Retriever selection and context assembly
        with trace.span("assembly"):
            context = await self._assembler.assemble(
                analysis,
                user_id,
                data_access=data_access,
                anonymize_vendors=anonymize_vendors,
                exclude_sensitive_categories=exclude_sensitive_categories,
            )

        meta = context.metadata
        log_context_metrics(
            trace.trace_id,
            analysis.intent.value,
            meta.retrievers_used,
            meta.stubbed_sources,
            meta.dropped_sources,
            meta.failed_sources,
            meta.token_estimate,
        )

        # STEP 3: Prompt composition
        with trace.span("composition"):
            messages = self._composer.compose(
                query, context, history=history, language=analysis.language
            )

        # STEP 4: Model call, or deterministic fallback
        fallback_used = False
        tokens_used = 0
        try:
            with trace.span("generation", provider=self._gateway.provider):
                response = await self._gateway.chat(messages, self._chat_options)
            content = response.content
            tokens_used = response.usage.total_tokens if response.usage else 0
            confidence = self._confidence.score(context, analysis.confidence)
        except GenerationError as e:
            if not self._enable_fallback:
                logger.error("generation_failed", trace_id=trace.trace_id, error=str(e))
                raise
            logger.warning(
                "generation_failed_using_fallback",
                trace_id=trace.trace_id,
                error=str(e),
                code=getattr(e, "code", None),
            )
            with trace.span("fallback"):
                content = self._fallback.generate(context)
            confidence = self._confidence.fallback_score()
            fallback_used = True

        # STEP 5: Result
        result = self._build_result(
            analysis, context, content, confidence, fallback_used, tokens_used, trace
        )
        log_turn_metrics(
            trace.trace_id,
            analysis.intent.value,
            confidence,
            context.total_records,
            fallback_used,
            trace.stage_durations(),
        )
        return result

    async def _load_categories(self, user_id: str) -> list[Category]:
        try:
            return await self._data_source.list_categories(user_id)
        except Exception as e:
            logger.warning("categories_unavailable", user_id=user_id, error=str(e))
            return []

    @staticmethod
    def _build_result(
        analysis: QueryAnalysis,
        context: AssembledContext,
        content: str,
        confidence: float,
        fallback_used: bool,
        tokens_used: int,
        trace: TraceContext,
    ) -> AgentResult:
        return AgentResult(
            content=content,
            metadata=AgentMetadata(
                intent=analysis.intent,
                data_sources=list(context.metadata.retrievers_used),
                confidence=confidence,
                records_analyzed=context.total_records,
                processing_time_ms=round(trace.elapsed_ms, 2),
                tokens_used=tokens_used,
                trace_id=trace.trace_id,
            ),
            fallback_used=fallback_used,
            context=context,
        )
