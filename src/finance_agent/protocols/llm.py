"""Protocol for model provider gateways."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from finance_agent.models.domain import ChatMessage, ChatOptions, ChatResponse


class ProviderGateway(Protocol):
    provider: str

    async def chat(
        self, messages: list[ChatMessage], options: ChatOptions | None = None
    ) -> ChatResponse: ...

    async def test_connection(self) -> bool: ...


@runtime_checkable
class StreamingProviderGateway(Protocol):
    """Capability: providers that can stream completion text."""

    def chat_stream(
        self, messages: list[ChatMessage], options: ChatOptions | None = None
    ) -> AsyncIterator[str]: ...


def supports_streaming(gateway: object) -> bool:
    return isinstance(gateway, StreamingProviderGateway)
