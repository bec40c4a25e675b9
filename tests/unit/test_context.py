"""Tests for context rendering and multi-turn merging."""

from datetime import date

from finance_agent.models.domain import (
    AssembledContext,
    ContextMetadata,
    ContextSummaries,
    DateRange,
    QueryIntent,
    RetrievedData,
    UserContext,
)
from finance_agent.retrieval.context import format_context_for_llm, format_source_block, merge_contexts

JUNE = DateRange(date(2024, 6, 1), date(2024, 6, 30), "June 2024")


def _data(source: str, total: float, records: int = 1) -> RetrievedData:
    return RetrievedData(
        source=source,
        description=source,
        record_count=records,
        date_range=JUNE,
        aggregations={"total_expenses": total, "empty_list": [], "skipped": None},
    )


def _context(data: list[RetrievedData], insights: list[str], total_records: int) -> AssembledContext:
    return AssembledContext(
        query="How is my spending?",
        intent=QueryIntent.SPENDING_ANALYSIS,
        relevant_data=data,
        total_records=total_records,
        date_range=JUNE,
        summaries=ContextSummaries(financial="Total expenses: RM 135.00.", insights=insights),
        user_context=UserContext(fiscal_year=2024),
        metadata=ContextMetadata(
            retrievers_used=[d.source for d in data], processing_time_ms=1.0, token_estimate=100
        ),
    )


def test_format_source_block_skips_empty_values():
    block = format_source_block(_data("credit_cards", 1234.5))
    assert block.startswith("## CREDIT CARDS Data")
    assert "- Total expenses: 1,234.50" in block
    assert "Empty list" not in block
    assert "Skipped" not in block


def test_format_source_block_marks_stub():
    block = format_source_block(_data("budgets", 10.0).as_stub())
    assert "summary only" in block


def test_format_context_for_llm_sections():
    context = _context([_data("transactions", 135.0)], ["Food is the top category"], 5)
    text = format_context_for_llm(context)
    assert text.startswith("# User Query\nHow is my spending?")
    assert "# Detected Intent\nSPENDING_ANALYSIS" in text
    assert "# Key Insights\n- Food is the top category" in text
    assert "# Data Sources\ntransactions (5 records)" in text
    assert "June 2024 (2024-06-01 to 2024-06-30)" in text
    assert "# Recommendations" not in text


def test_merge_with_no_previous_returns_current():
    current = _context([_data("transactions", 1.0)], [], 1)
    assert merge_contexts(None, current) is current


def test_merge_current_wins_by_source():
    previous = _context([_data("transactions", 1.0), _data("budgets", 2.0)], ["a", "b"], 3)
    current = _context([_data("transactions", 9.0), _data("goals", 3.0)], ["b", "c"], 4)

    merged = merge_contexts(previous, current)

    by_source = {d.source: d for d in merged.relevant_data}
    assert set(by_source) == {"transactions", "budgets", "goals"}
    assert by_source["transactions"].aggregations["total_expenses"] == 9.0
    assert merged.summaries.insights == ["a", "b", "c"]
    assert merged.total_records == 7
    assert merged.query == current.query


def test_merge_caps_insights():
    previous = _context([], [f"old {i}" for i in range(10)], 0)
    current = _context([], [f"new {i}" for i in range(10)], 0)
    merged = merge_contexts(previous, current, insight_cap=15)
    assert len(merged.summaries.insights) == 15
    assert merged.summaries.insights[0] == "old 0"
