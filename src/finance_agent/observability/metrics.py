"""Metric recording helpers for agent turns."""

from __future__ import annotations

from finance_agent.observability.logger import get_logger

logger = get_logger("metrics")


def log_context_metrics(
    trace_id: str,
    intent: str,
    retrievers_used: list[str],
    stubbed: list[str],
    dropped: list[str],
    failed: list[str],
    token_estimate: int,
) -> None:
    logger.info(
        "context_metrics",
        trace_id=trace_id,
        intent=intent,
        retrievers_used=retrievers_used,
        stubbed=stubbed,
        dropped=dropped,
        failed=failed,
        token_estimate=token_estimate,
    )


def log_turn_metrics(
    trace_id: str,
    intent: str,
    confidence: float,
    records_analyzed: int,
    fallback_used: bool,
    stages: dict[str, float],
) -> None:
    logger.info(
        "turn_metrics",
        trace_id=trace_id,
        intent=intent,
        confidence=round(confidence, 4),
        records_analyzed=records_analyzed,
        fallback_used=fallback_used,
        stages=stages,
    )


def log_latency(trace_id: str, stage: str, duration_ms: float) -> None:
    logger.info(
        "latency",
        trace_id=trace_id,
        stage=stage,
        duration_ms=round(duration_ms, 2),
    )
