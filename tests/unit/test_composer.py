"""Tests for prompt composition."""

from datetime import date

import pytest

from finance_agent.generation.composer import PromptComposer
from finance_agent.generation.prompt_templates import (
    LANGUAGE_INSTRUCTION,
    SPENDING_ANALYST_SECTION,
    TAX_ADVISOR_SECTION,
    PromptTemplate,
)
from finance_agent.models.domain import ChatMessage, QueryIntent
from finance_agent.query.analyzer import QueryAnalyzer

TODAY = date(2024, 6, 15)


async def _context(assembler, query: str):
    analysis = await QueryAnalyzer(clock=lambda: TODAY).analyze(query)
    return await assembler.assemble(analysis, "user-1")


@pytest.mark.asyncio
async def test_system_prompt_for_spending(assembler):
    context = await _context(assembler, "How much did I spend this month?")
    prompt = PromptComposer().system_prompt(context)

    assert prompt.startswith("You are Prismo AI")
    assert SPENDING_ANALYST_SECTION in prompt
    assert "- Query type: SPENDING ANALYSIS" in prompt
    assert f"- Records analyzed: {context.total_records}" in prompt
    assert "Year of Assessment 2024" in prompt
    assert LANGUAGE_INSTRUCTION not in prompt


@pytest.mark.asyncio
async def test_malay_instruction(assembler):
    context = await _context(assembler, "How much did I spend this month?")
    prompt = PromptComposer().system_prompt(context, language="ms")
    assert LANGUAGE_INSTRUCTION in prompt


@pytest.mark.asyncio
async def test_compose_trims_history(assembler):
    context = await _context(assembler, "How much did I spend this month?")
    history = [ChatMessage("user" if i % 2 == 0 else "assistant", f"turn {i}") for i in range(10)]
    history.append(ChatMessage("system", "ignored"))

    messages = PromptComposer(history_limit=6).compose("How much did I spend this month?", context, history)

    assert messages[0].role == "system"
    assert [m.content for m in messages[1:-1]] == ["turn 5", "turn 6", "turn 7", "turn 8", "turn 9"]
    assert messages[-1].content.startswith("## Your Financial Data")
    assert messages[-1].content.endswith("## Question\nHow much did I spend this month?")


@pytest.mark.asyncio
async def test_no_history_when_limit_zero(assembler):
    context = await _context(assembler, "How much did I spend this month?")
    history = [ChatMessage("user", "earlier")]
    messages = PromptComposer(history_limit=0).compose("q", context, history)
    assert len(messages) == 2


@pytest.mark.asyncio
async def test_register_overrides_template(assembler):
    context = await _context(assembler, "How much did I spend this month?")
    composer = PromptComposer()
    composer.register(QueryIntent.SPENDING_ANALYSIS, PromptTemplate.TAX_ADVISOR)
    assert composer.template_for(QueryIntent.SPENDING_ANALYSIS) == PromptTemplate.TAX_ADVISOR
    assert TAX_ADVISOR_SECTION in composer.system_prompt(context)


@pytest.mark.asyncio
async def test_additional_context(assembler):
    context = await _context(assembler, "How much did I spend this month?")
    prompt = PromptComposer(include_transparency=False).system_prompt(
        context, additional_context="User is saving for a wedding"
    )
    assert "## Additional Context\nUser is saving for a wedding" in prompt
    assert "## Data Transparency" not in prompt
