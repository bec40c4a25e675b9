"""Tests for answer confidence scoring."""

from datetime import date

import pytest

from finance_agent.config.settings import Settings
from finance_agent.exceptions import ConfigurationError
from finance_agent.models.domain import (
    AssembledContext,
    ContextMetadata,
    ContextSummaries,
    DateRange,
    QueryIntent,
    UserContext,
)
from finance_agent.scoring.confidence import ConfidenceScorer


def _context(records: int, used: list[str], selected: list[str], stubbed: list[str] = ()) -> AssembledContext:
    return AssembledContext(
        query="q",
        intent=QueryIntent.SPENDING_ANALYSIS,
        relevant_data=[],
        total_records=records,
        date_range=DateRange(date(2024, 6, 1), date(2024, 6, 30), "June 2024"),
        summaries=ContextSummaries(),
        user_context=UserContext(fiscal_year=2024),
        metadata=ContextMetadata(
            retrievers_used=used,
            processing_time_ms=1.0,
            token_estimate=100,
            retrievers_selected=selected,
            stubbed_sources=list(stubbed),
        ),
    )


@pytest.fixture
def scorer():
    return ConfidenceScorer(Settings())


def test_bounds(scorer):
    empty = _context(0, [], ["transactions"])
    full = _context(50, ["transactions", "budgets"], ["transactions", "budgets"])
    assert scorer.score(empty, 0.0) == pytest.approx(0.40)
    assert scorer.score(full, 1.0) == pytest.approx(0.95)


def test_monotonic_in_records(scorer):
    used = ["transactions"]
    scores = [scorer.score(_context(n, used, used), 0.5) for n in (0, 10, 25, 50, 500)]
    assert scores == sorted(scores)
    # Saturates at 50 records
    assert scores[-1] == scores[-2]


def test_monotonic_in_intent_confidence(scorer):
    context = _context(20, ["transactions"], ["transactions"])
    assert scorer.score(context, 0.3) < scorer.score(context, 0.9)


def test_coverage(scorer):
    selected = ["transactions", "budgets", "goals", "income"]
    assert scorer.coverage(_context(0, selected, selected)) == 1.0
    assert scorer.coverage(_context(0, selected[:2], selected)) == 0.5
    # A stub earns half credit
    assert scorer.coverage(_context(0, selected[:2], selected, stubbed=["budgets"])) == 0.375
    assert scorer.coverage(_context(0, [], [])) == 0.0


def test_stub_and_drop_lower_confidence(scorer):
    selected = ["transactions", "budgets"]
    full = scorer.score(_context(30, selected, selected), 0.8)
    stubbed = scorer.score(_context(30, selected, selected, stubbed=["budgets"]), 0.8)
    dropped = scorer.score(_context(30, ["transactions"], selected), 0.8)
    assert full > stubbed > dropped


def test_fallback_always_below_model_floor(scorer):
    worst = scorer.score(_context(0, [], ["transactions"]), 0.0)
    assert scorer.fallback_score() == 0.30
    assert scorer.fallback_score() < worst


def test_invalid_policy_rejected():
    with pytest.raises(ConfigurationError):
        ConfidenceScorer(Settings(conf_fallback=0.5, conf_model_floor=0.4))
    with pytest.raises(ConfigurationError):
        ConfidenceScorer(Settings(conf_model_floor=0.6, conf_model_ceiling=0.5))
