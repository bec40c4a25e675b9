"""Tests for retriever selection and per-retriever limits."""

import pytest

from finance_agent.models.domain import RETRIEVER_KEYS, QueryIntent
from finance_agent.retrieval.selector import RetrieverSelector, calculate_limit, priority_of


def test_calculate_limit():
    assert calculate_limit(1) == 100
    assert calculate_limit(2) == 100
    assert calculate_limit(4) == 50
    assert calculate_limit(5) == 40
    assert calculate_limit(10) == 20
    assert calculate_limit(0) == 100


def test_suggested_first_then_priority():
    selector = RetrieverSelector()
    selected = selector.select(
        QueryIntent.SPENDING_ANALYSIS, suggested=("transactions", "budgets", "forecasts")
    )
    assert selected == ["transactions", "budgets", "forecasts", "subscriptions", "credit_cards"]


def test_suggested_outside_priority_table_kept_in_front():
    selector = RetrieverSelector()
    selected = selector.select(QueryIntent.CREDIT_CARD_ADVICE, suggested=("goals",))
    assert selected[0] == "goals"
    assert selected[1:] == ["credit_cards", "transactions", "budgets"]


def test_unknown_suggestion_ignored():
    selector = RetrieverSelector()
    selected = selector.select(QueryIntent.BUDGET_REVIEW, suggested=("weather", "budgets"))
    assert "weather" not in selected
    assert selected[0] == "budgets"


def test_selection_capped():
    selector = RetrieverSelector(max_retrievers=5)
    selected = selector.select(QueryIntent.GENERAL_ADVICE)
    assert len(selected) == 5
    assert selected[0] == "transactions"

    assert len(RetrieverSelector(max_retrievers=2).select(QueryIntent.GENERAL_ADVICE)) == 2


def test_explicit_false_permission_removes_source():
    selector = RetrieverSelector()
    selected = selector.select(
        QueryIntent.SPENDING_ANALYSIS, data_access={"budgets": False, "transactions": True}
    )
    assert "budgets" not in selected
    assert selected[0] == "transactions"


def test_missing_permission_key_allows_source():
    selector = RetrieverSelector()
    selected = selector.select(QueryIntent.SPENDING_ANALYSIS, data_access={})
    assert "budgets" in selected


def test_tax_uses_tax_data_permission():
    selector = RetrieverSelector()
    # "tax": False is not the permission key for the tax retriever
    assert "tax" in selector.select(QueryIntent.TAX_OPTIMIZATION, data_access={"tax": False})
    assert "tax" not in selector.select(QueryIntent.TAX_OPTIMIZATION, data_access={"tax_data": False})


def test_priority_of():
    assert priority_of(QueryIntent.SPENDING_ANALYSIS, "transactions") == 10
    assert priority_of(QueryIntent.SPENDING_ANALYSIS, "tax") == 0


@pytest.mark.parametrize("intent", list(QueryIntent))
@pytest.mark.parametrize(
    "suggested",
    [(), ("goals", "tax", "income", "forecasts", "subscriptions", "budgets"), ("weather",)],
)
def test_selection_bounded_for_every_intent(intent, suggested):
    selected = RetrieverSelector().select(intent, suggested=suggested)
    assert 0 < len(selected) <= 5
    assert set(selected) <= set(RETRIEVER_KEYS)
    assert len(selected) == len(set(selected))
