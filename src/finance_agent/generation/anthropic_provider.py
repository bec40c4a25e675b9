"""Anthropic Messages API provider over plain httpx."""

from __future__ import annotations

import time

import httpx

from finance_agent.exceptions import EmptyResponseError, ProviderError
from finance_agent.generation.provider_errors import error_from_status
from finance_agent.models.domain import ChatMessage, ChatOptions, ChatResponse, TokenUsage
from finance_agent.observability.logger import get_logger

logger = get_logger("anthropic_provider")

ANTHROPIC_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"

STOP_REASONS = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
}


def to_anthropic_messages(messages: list[ChatMessage]) -> tuple[str | None, list[dict]]:
    """Lift system messages out and merge consecutive same-role turns.

    The Messages API takes the system prompt as a top-level field and
    requires user and assistant turns to alternate.
    """
    system_parts = [m.content for m in messages if m.role == "system"]
    merged: list[dict] = []
    for message in messages:
        if message.role == "system":
            continue
        if merged and merged[-1]["role"] == message.role:
            merged[-1]["content"] += "\n\n" + message.content
        else:
            merged.append({"role": message.role, "content": message.content})
    system = "\n\n".join(system_parts) if system_parts else None
    return system, merged


class AnthropicProvider:
    provider = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-sonnet-20241022",
        timeout: float = 60.0,
        base_url: str = ANTHROPIC_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    async def chat(
        self, messages: list[ChatMessage], options: ChatOptions | None = None
    ) -> ChatResponse:
        options = options or ChatOptions()
        system, turns = to_anthropic_messages(messages)
        body: dict = {
            "model": self._model,
            "messages": turns,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
        }
        if system:
            body["system"] = system

        start = time.monotonic()
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    "/v1/messages",
                    json=body,
                    headers={
                        "x-api-key": self._api_key,
                        "anthropic-version": ANTHROPIC_VERSION,
                        "content-type": "application/json",
                    },
                )
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Could not reach anthropic: {e}",
                code="NETWORK_ERROR",
                provider=self.provider,
                retryable=True,
            ) from e

        if response.status_code >= 400:
            retry_after = response.headers.get("retry-after")
            raise error_from_status(
                response.status_code,
                response.text,
                self.provider,
                self._model,
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            )

        try:
            data = response.json()
            content = "".join(
                block.get("text", "")
                for block in data.get("content") or []
                if block.get("type") == "text"
            )
        except (ValueError, TypeError, AttributeError) as e:
            raise ProviderError(
                f"Unreadable response from anthropic: {e}",
                code="INVALID_RESPONSE",
                provider=self.provider,
                status_code=response.status_code,
            ) from e
        if not content.strip():
            raise EmptyResponseError(self.provider)

        usage = None
        raw_usage = data.get("usage")
        if isinstance(raw_usage, dict):
            prompt_tokens = raw_usage.get("input_tokens", 0)
            completion_tokens = raw_usage.get("output_tokens", 0)
            usage = TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
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
            finish_reason=STOP_REASONS.get(data.get("stop_reason"), "stop"),
            model=data.get("model", self._model),
            latency_ms=latency_ms,
            usage=usage,
        )

    async def test_connection(self) -> bool:
        await self.chat([ChatMessage("user", "Reply with OK.")], ChatOptions(temperature=0.0, max_tokens=5))
        return True
