"""Tests for the agent turn loop."""

import httpx
import pytest

from finance_agent.exceptions import ProviderError
from finance_agent.generation.anthropic_provider import AnthropicProvider
from finance_agent.generation.fallback import FALLBACK_FOOTER
from finance_agent.models.domain import ChatMessage, QueryIntent

USER_ID = "user-1"


@pytest.mark.asyncio
async def test_model_answer(make_orchestrator, finance_data, fake_gateway):
    orchestrator = make_orchestrator(finance_data, fake_gateway)
    result = await orchestrator.run(USER_ID, "What did I spend on food this month?")

    assert result.content == "Here is your analysis."
    assert result.fallback_used is False
    meta = result.metadata
    assert meta.intent == QueryIntent.SPENDING_ANALYSIS
    assert meta.data_sources[0] == "transactions"
    assert meta.tokens_used == 120
    assert meta.records_analyzed == result.context.total_records
    assert 0.40 <= meta.confidence <= 0.95
    assert meta.trace_id

    messages = fake_gateway.requests[0]
    assert messages[0].role == "system"
    assert messages[-1].role == "user"
    assert "What did I spend on food this month?" in messages[-1].content


@pytest.mark.asyncio
async def test_history_passed_to_prompt(make_orchestrator, finance_data, fake_gateway):
    history = [
        ChatMessage("user", "How is my budget looking?"),
        ChatMessage("assistant", "Food is over budget."),
    ]
    orchestrator = make_orchestrator(finance_data, fake_gateway)
    result = await orchestrator.run(USER_ID, "and transport?", history=history)

    assert result.metadata.intent == QueryIntent.BUDGET_REVIEW
    messages = fake_gateway.requests[0]
    assert [m.content for m in messages[1:3]] == ["How is my budget looking?", "Food is over budget."]


@pytest.mark.asyncio
async def test_fallback_on_provider_error(make_orchestrator, finance_data, failing_gateway):
    orchestrator = make_orchestrator(finance_data, failing_gateway)
    result = await orchestrator.run(USER_ID, "What did I spend on food this month?")

    assert result.fallback_used is True
    assert result.metadata.confidence == 0.30
    assert result.metadata.tokens_used == 0
    assert result.content.startswith("## Financial Summary")
    assert FALLBACK_FOOTER in result.content


@pytest.mark.asyncio
async def test_fallback_confidence_below_model_confidence(
    make_orchestrator, finance_data, fake_gateway, failing_gateway
):
    query = "What did I spend on food this month?"
    model = await make_orchestrator(finance_data, fake_gateway).run(USER_ID, query)
    fallback = await make_orchestrator(finance_data, failing_gateway).run(USER_ID, query)
    assert fallback.metadata.confidence < model.metadata.confidence


@pytest.mark.asyncio
async def test_provider_error_raised_without_fallback(make_orchestrator, finance_data, failing_gateway):
    orchestrator = make_orchestrator(finance_data, failing_gateway, enable_fallback=False)
    with pytest.raises(ProviderError):
        await orchestrator.run(USER_ID, "What did I spend on food this month?")


@pytest.mark.asyncio
async def test_category_lookup_failure_is_tolerated(make_orchestrator, finance_data, fake_gateway):
    async def broken(user_id):
        raise RuntimeError("categories table missing")

    finance_data.list_categories = broken
    result = await make_orchestrator(finance_data, fake_gateway).run(USER_ID, "How much did I spend?")
    assert result.fallback_used is False
    assert result.metadata.intent == QueryIntent.SPENDING_ANALYSIS


@pytest.mark.asyncio
async def test_data_access_restricts_sources(make_orchestrator, finance_data, fake_gateway):
    orchestrator = make_orchestrator(finance_data, fake_gateway)
    result = await orchestrator.run(
        USER_ID,
        "What did I spend on food this month?",
        data_access={"budgets": False, "forecasts": False},
    )
    assert "budgets" not in result.metadata.data_sources
    assert "forecasts" not in result.metadata.data_sources


@pytest.mark.asyncio
async def test_unreadable_provider_body_falls_back(make_orchestrator, finance_data):
    gateway = AnthropicProvider(
        "k", transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>bad gateway</html>"))
    )
    result = await make_orchestrator(finance_data, gateway).run(USER_ID, "What did I spend on food this month?")
    assert result.fallback_used is True
    assert result.metadata.confidence == 0.30
