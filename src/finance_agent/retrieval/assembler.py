"""Concurrent fan-out to retrievers and token-bounded context assembly."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from datetime import date

from finance_agent.config.settings import Settings
from finance_agent.models.domain import (
    AssembledContext,
    ContextMetadata,
    QueryAnalysis,
    RetrievalOptions,
    RetrievedData,
    UserContext,
)
from finance_agent.observability.logger import get_logger
from finance_agent.protocols.retriever import Retriever
from finance_agent.retrieval.common import date_range_preset
from finance_agent.retrieval.context import merge_contexts
from finance_agent.retrieval.selector import RetrieverSelector, calculate_limit, priority_of
from finance_agent.retrieval.summaries import generate_summaries
from finance_agent.retrieval.token_budget import source_tokens, summary_tokens, trim_to_budget

logger = get_logger("context_assembler")


class ContextAssembler:
    def __init__(
        self,
        retrievers: Mapping[str, Retriever],
        selector: RetrieverSelector,
        settings: Settings,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._retrievers = retrievers
        self._selector = selector
        self._settings = settings
        self._clock = clock

    async def assemble(
        self,
        analysis: QueryAnalysis,
        user_id: str,
        data_access: Mapping[str, bool] | None = None,
        anonymize_vendors: bool = False,
        exclude_sensitive_categories: bool = False,
    ) -> AssembledContext:
        start = time.monotonic()
        intent = analysis.intent

        selected = [
            key
            for key in self._selector.select(intent, analysis.suggested_retrievers, data_access)
            if key in self._retrievers
        ]
        date_range = analysis.entities.date_range or date_range_preset("this_month", self._clock())
        options = RetrievalOptions(
            date_range=date_range,
            limit=calculate_limit(len(selected)),
            category_ids=analysis.entities.category_ids,
            min_amount=analysis.entities.amount_min,
            max_amount=analysis.entities.amount_max,
            anonymize_vendors=anonymize_vendors,
            exclude_sensitive_categories=exclude_sensitive_categories,
        )

        # All retrievers settle before ordering; completion order is irrelevant
        settled = await asyncio.gather(
            *(self._retrieve(key, user_id, analysis.normalized_query, options) for key in selected)
        )
        succeeded = [r for r in settled if r is not None]
        failed = [key for key, r in zip(selected, settled) if r is None]
        succeeded.sort(key=lambda r: priority_of(intent, r.source), reverse=True)
        total_records = sum(r.record_count for r in succeeded)

        limit = self._settings.context_token_limit
        reserve = summary_tokens(
            generate_summaries(
                intent, succeeded, self._settings.max_insights, self._settings.max_recommendations
            )
        )
        trimmed = trim_to_budget(
            succeeded,
            budget=max(0, limit - reserve),
            min_stub_tokens=self._settings.min_stub_tokens,
            stub_insights=self._settings.stub_insight_count,
        )
        kept = trimmed.kept
        summaries = generate_summaries(
            intent, kept, self._settings.max_insights, self._settings.max_recommendations
        )
        token_estimate = trimmed.tokens + summary_tokens(summaries)

        # Summaries of the kept subset can differ in length; shed lowest priority until it fits
        while token_estimate > limit and kept:
            removed = kept.pop()
            trimmed.dropped.insert(0, removed.source)
            summaries = generate_summaries(
                intent, kept, self._settings.max_insights, self._settings.max_recommendations
            )
            token_estimate = sum(source_tokens(r) for r in kept) + summary_tokens(summaries)

        processing_ms = (time.monotonic() - start) * 1000
        context = AssembledContext(
            query=analysis.original_query,
            intent=intent,
            relevant_data=kept,
            total_records=total_records,
            date_range=date_range,
            summaries=summaries,
            user_context=UserContext(fiscal_year=self._clock().year),
            metadata=ContextMetadata(
                retrievers_used=[r.source for r in kept],
                processing_time_ms=round(processing_ms, 2),
                token_estimate=token_estimate,
                retrievers_selected=selected,
                stubbed_sources=[s for s in trimmed.stubbed if s in {r.source for r in kept}],
                dropped_sources=trimmed.dropped,
                failed_sources=failed,
            ),
        )

        logger.info(
            "context_assembled",
            intent=intent.value,
            selected=selected,
            used=context.metadata.retrievers_used,
            failed=failed,
            stubbed=context.metadata.stubbed_sources,
            dropped=trimmed.dropped,
            total_records=total_records,
            token_estimate=token_estimate,
            duration_ms=round(processing_ms, 2),
        )
        return context

    def merge(self, previous: AssembledContext | None, current: AssembledContext) -> AssembledContext:
        """Fold a follow-up turn's context into the previous one."""
        return merge_contexts(previous, current, insight_cap=self._settings.merged_insight_cap)

    async def _retrieve(
        self, key: str, user_id: str, query: str, options: RetrievalOptions
    ) -> RetrievedData | None:
        try:
            return await self._retrievers[key].retrieve(user_id, query, options)
        except Exception as e:
            logger.warning("retriever_failed", source=key, error=str(e))
            return None

