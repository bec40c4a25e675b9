"""Tests for SSE replay of a completed agent result."""

import json

import pytest

from finance_agent.models.domain import AgentMetadata, AgentResult, QueryIntent
from finance_agent.pipeline.streaming import StreamingResponder, chunk_text, format_sse


def _result(content: str = "a" * 45, fallback_used: bool = False) -> AgentResult:
    return AgentResult(
        content=content,
        metadata=AgentMetadata(
            intent=QueryIntent.BUDGET_REVIEW,
            data_sources=["budgets", "transactions"],
            confidence=0.72,
            records_analyzed=14,
            processing_time_ms=120.5,
        ),
        fallback_used=fallback_used,
    )


async def _collect(responder, result):
    return [event async for event in responder.events("conv-1", result)]


def test_chunk_text():
    assert chunk_text("abcdefgh", 3) == ["abc", "def", "gh"]
    assert chunk_text("", 3) == []
    assert chunk_text("ab", 0) == ["a", "b"]


def test_format_sse():
    assert format_sse({"type": "done"}) == 'data: {"type": "done"}\n\n'


@pytest.mark.asyncio
async def test_event_order():
    events = await _collect(StreamingResponder(chunk_size=20, delay_ms=0), _result())

    assert [e["type"] for e in events] == ["start", "chunk", "chunk", "chunk", "metadata", "done"]
    assert events[0] == {"type": "start", "conversation_id": "conv-1"}
    assert "".join(e["text"] for e in events if e["type"] == "chunk") == "a" * 45
    assert events[4] == {
        "type": "metadata",
        "intent": "budget_review",
        "data_sources": ["budgets", "transactions"],
        "confidence": 0.72,
        "records_analyzed": 14,
        "latency_ms": 120.5,
        "fallback_used": False,
    }


@pytest.mark.asyncio
async def test_delay_between_chunks():
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    responder = StreamingResponder(chunk_size=10, delay_ms=10, sleep=fake_sleep)
    await _collect(responder, _result("x" * 30))
    assert sleeps == [0.01, 0.01, 0.01]


@pytest.mark.asyncio
async def test_error_terminates_stream():
    result = _result()
    result.metadata.intent = "not-an-enum"

    events = await _collect(StreamingResponder(delay_ms=0), result)

    assert events[-1] == {"type": "error", "message": "Stream interrupted"}
    assert "done" not in [e["type"] for e in events]
    assert "metadata" not in [e["type"] for e in events]


@pytest.mark.asyncio
async def test_sse_frames():
    frames = [f async for f in StreamingResponder(delay_ms=0).sse("conv-1", _result("hi"))]
    assert all(f.startswith("data: ") and f.endswith("\n\n") for f in frames)
    assert json.loads(frames[0][6:]) == {"type": "start", "conversation_id": "conv-1"}
    assert json.loads(frames[-1][6:]) == {"type": "done"}
