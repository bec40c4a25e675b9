"""Tests for token estimation and context trimming."""

from datetime import date

from finance_agent.models.domain import DateRange, Insight, InsightLevel, RetrievedData
from finance_agent.retrieval.token_budget import estimate_tokens, source_tokens, trim_to_budget

JUNE = DateRange(date(2024, 6, 1), date(2024, 6, 30), "June 2024")


def _item(source: str, rows: int, insights: int = 5) -> RetrievedData:
    return RetrievedData(
        source=source,
        description=f"{source} data",
        record_count=rows,
        date_range=JUNE,
        data=[{"id": f"{source}-{i}", "note": "x" * 80} for i in range(rows)],
        aggregations={"total": 100.0},
        insights=[Insight(InsightLevel.INFO, f"{source} insight {i}") for i in range(insights)],
    )


def test_estimate_tokens():
    assert estimate_tokens("") == 0
    assert estimate_tokens("hello") == 1
    assert estimate_tokens("hello world") == 2
    assert estimate_tokens("Food & Dining RM 105.00 this month") > estimate_tokens("Food & Dining")


def test_estimate_tokens_accepts_special_token_text():
    assert estimate_tokens("note: <|endoftext|>") > 0


def test_everything_fits():
    items = [_item("transactions", 3), _item("budgets", 2)]
    budget = sum(source_tokens(i) for i in items) + 10
    trimmed = trim_to_budget(items, budget)
    assert [i.source for i in trimmed.kept] == ["transactions", "budgets"]
    assert trimmed.stubbed == []
    assert trimmed.dropped == []
    assert trimmed.tokens == budget - 10


def test_overflowing_source_becomes_stub():
    first = _item("transactions", 5)
    second = _item("budgets", 200)
    third = _item("goals", 1)
    budget = source_tokens(first) + 1000
    trimmed = trim_to_budget([first, second, third], budget, min_stub_tokens=500, stub_insights=3)

    assert [i.source for i in trimmed.kept] == ["transactions", "budgets"]
    stub = trimmed.kept[1]
    assert stub.stubbed is True
    assert stub.data == []
    assert len(stub.insights) == 3
    assert stub.aggregations == second.aggregations
    assert trimmed.stubbed == ["budgets"]
    # Trimming stops at the first overflow even though "goals" would fit
    assert trimmed.dropped == ["goals"]
    assert trimmed.tokens <= budget


def test_overflowing_source_dropped_when_remaining_small():
    first = _item("transactions", 5)
    second = _item("budgets", 200)
    budget = source_tokens(first) + 100
    trimmed = trim_to_budget([first, second], budget, min_stub_tokens=500)
    assert [i.source for i in trimmed.kept] == ["transactions"]
    assert trimmed.stubbed == []
    assert trimmed.dropped == ["budgets"]


def test_nothing_fits():
    items = [_item("transactions", 50), _item("budgets", 1)]
    trimmed = trim_to_budget(items, budget=10)
    assert trimmed.kept == []
    assert trimmed.dropped == ["transactions", "budgets"]
    assert trimmed.tokens == 0


def test_stub_does_not_mutate_original():
    item = _item("transactions", 4)
    stub = item.as_stub(2)
    assert len(item.data) == 4
    assert len(item.insights) == 5
    assert stub.record_count == item.record_count
