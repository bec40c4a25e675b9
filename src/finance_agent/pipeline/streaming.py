"""Replays a completed agent result as an ordered event stream."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncGenerator, Awaitable, Callable

from finance_agent.models.domain import AgentResult
from finance_agent.observability.logger import get_logger

logger = get_logger("streaming")

STREAM_ERROR_MESSAGE = "Stream interrupted"


def format_sse(event: dict) -> str:
    return f"data: {json.dumps(event)}\n\n"


def chunk_text(text: str, size: int) -> list[str]:
    size = max(1, size)
    return [text[i : i + size] for i in range(0, len(text), size)]


class StreamingResponder:
    """Emits start, chunk*, metadata, done; or a terminal error event.

    The answer is already complete when streaming starts, so chunks are
    fixed-size slices paced by ``delay_ms``.
    """

    def __init__(
        self,
        chunk_size: int = 20,
        delay_ms: int = 10,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._chunk_size = chunk_size
        self._delay = delay_ms / 1000
        self._sleep = sleep

    async def events(self, conversation_id: str, result: AgentResult) -> AsyncGenerator[dict, None]:
        yield {"type": "start", "conversation_id": conversation_id}
        try:
            for piece in chunk_text(result.content, self._chunk_size):
                yield {"type": "chunk", "text": piece}
                if self._delay > 0:
                    await self._sleep(self._delay)
            yield {"type": "metadata", **self.metadata_payload(result)}
        except Exception as e:
            logger.error("stream_failed", conversation_id=conversation_id, error=str(e))
            yield {"type": "error", "message": STREAM_ERROR_MESSAGE}
            return
        yield {"type": "done"}

    async def sse(self, conversation_id: str, result: AgentResult) -> AsyncGenerator[str, None]:
        async for event in self.events(conversation_id, result):
            yield format_sse(event)

    @staticmethod
    def metadata_payload(result: AgentResult) -> dict:
        meta = result.metadata
        return {
            "intent": meta.intent.value,
            "data_sources": meta.data_sources,
            "confidence": meta.confidence,
            "records_analyzed": meta.records_analyzed,
            "latency_ms": meta.processing_time_ms,
            "fallback_used": result.fallback_used,
        }
