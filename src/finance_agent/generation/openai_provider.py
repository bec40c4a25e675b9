"""OpenAI and Azure AI Foundry chat providers using the official openai SDK."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator

import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI

from finance_agent.exceptions import ContentFilterError, EmptyResponseError
from finance_agent.generation.provider_errors import error_from_openai
from finance_agent.models.domain import ChatMessage, ChatOptions, ChatResponse, TokenUsage
from finance_agent.observability.logger import get_logger

logger = get_logger("openai_provider")

AZURE_API_VERSION = "2024-02-01"


class OpenAIProvider:
    provider = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    @staticmethod
    def _payload(messages: list[ChatMessage]) -> list[dict]:
        return [{"role": m.role, "content": m.content} for m in messages]

    async def chat(
        self, messages: list[ChatMessage], options: ChatOptions | None = None
    ) -> ChatResponse:
        options = options or ChatOptions()
        start = time.monotonic()
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=self._payload(messages),
                temperature=options.temperature,
                max_tokens=options.max_tokens,
            )
        except openai.OpenAIError as e:
            raise error_from_openai(e, self.provider, self._model) from e

        choice = response.choices[0] if response.choices else None
        if choice is not None and choice.finish_reason == "content_filter":
            raise ContentFilterError(self.provider)
        content = (choice.message.content or "") if choice is not None else ""
        if not content.strip():
            raise EmptyResponseError(self.provider)

        usage = None
        if response.usage is not None:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
        latency_ms = (time.monotonic() - start) * 1000
        logger.info(
            "chat_completed",
            provider=self.provider,
            model=self._model,
            latency_ms=round(latency_ms, 2),
            total_tokens=usage.total_tokens if usage else None,
        )
        return ChatResponse(
            content=content,
            finish_reason=choice.finish_reason or "stop",
            model=response.model or self._model,
            latency_ms=latency_ms,
            usage=usage,
        )

    async def chat_stream(
        self, messages: list[ChatMessage], options: ChatOptions | None = None
    ) -> AsyncIterator[str]:
        options = options or ChatOptions()
        try:
            stream = await self._client.chat.completions.create(
                model=self._model,
                messages=self._payload(messages),
                temperature=options.temperature,
                max_tokens=options.max_tokens,
                stream=True,
            )
            async for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except openai.OpenAIError as e:
            raise error_from_openai(e, self.provider, self._model) from e

    async def test_connection(self) -> bool:
        await self.chat([ChatMessage("user", "Reply with OK.")], ChatOptions(temperature=0.0, max_tokens=5))
        return True


class AzureFoundryProvider(OpenAIProvider):
    """Azure OpenAI deployment; ``model`` is the deployment name."""

    provider = "azure_foundry"

    def __init__(
        self,
        api_key: str,
        endpoint: str,
        model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        api_version: str = AZURE_API_VERSION,
        client: AsyncAzureOpenAI | None = None,
    ) -> None:
        super().__init__(
            api_key=api_key,
            model=model,
            client=client
            or AsyncAzureOpenAI(
                api_key=api_key,
                azure_endpoint=endpoint.rstrip("/"),
                api_version=api_version,
                timeout=timeout,
                max_retries=0,
            ),
        )
