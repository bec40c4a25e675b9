"""Tests for provider gateways, error mapping and the provider factory."""

import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from finance_agent.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ContentFilterError,
    EmptyResponseError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
)
from finance_agent.generation.anthropic_provider import AnthropicProvider, to_anthropic_messages
from finance_agent.generation.openai_provider import AzureFoundryProvider, OpenAIProvider
from finance_agent.generation.provider_errors import error_from_openai, error_from_status
from finance_agent.generation.providers import DEFAULT_MODELS, create_provider
from finance_agent.models.domain import ChatMessage, ChatOptions
from finance_agent.protocols.llm import supports_streaming

MESSAGES = [
    ChatMessage("system", "You are helpful."),
    ChatMessage("user", "Hi"),
    ChatMessage("user", "How much did I spend?"),
]

OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class FakeCompletions:
    def __init__(self, response=None, error=None, stream_chunks=()):
        self.response = response
        self.error = error
        self.stream_chunks = stream_chunks
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if kwargs.get("stream"):
            return self._stream()
        return self.response

    async def _stream(self):
        for text in self.stream_chunks:
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


def _fake_client(completions: FakeCompletions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _completion(content="Hello", finish_reason="stop"):
    return SimpleNamespace(
        choices=[SimpleNamespace(finish_reason=finish_reason, message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=2, total_tokens=12),
        model="gpt-4o-mini-2024",
    )


# --- error mapping ---


def test_error_from_status():
    assert isinstance(error_from_status(401, "", "openai", "m"), AuthenticationError)
    assert isinstance(error_from_status(403, "", "openai", "m"), AuthenticationError)
    assert isinstance(error_from_status(404, "", "openai", "m"), ModelNotFoundError)
    limited = error_from_status(429, "", "openai", "m", retry_after=7)
    assert isinstance(limited, RateLimitError)
    assert limited.retry_after == 7
    assert isinstance(error_from_status(400, '{"code": "content_filter"}', "openai", "m"), ContentFilterError)

    server = error_from_status(503, "unavailable", "openai", "m")
    assert type(server) is ProviderError
    assert server.code == "HTTP_503"
    assert server.retryable is True
    assert error_from_status(400, "bad request", "openai", "m").retryable is False


def test_error_from_openai_status():
    response = httpx.Response(429, request=OPENAI_REQUEST, headers={"retry-after": "12"})
    err = error_from_openai(openai.RateLimitError("slow down", response=response, body=None), "openai", "m")
    assert isinstance(err, RateLimitError)
    assert err.retry_after == 12.0


def test_error_from_openai_connection():
    err = error_from_openai(openai.APIConnectionError(request=OPENAI_REQUEST), "openai", "m")
    assert err.code == "NETWORK_ERROR"
    assert err.retryable is True


# --- OpenAI ---


@pytest.mark.asyncio
async def test_openai_chat():
    completions = FakeCompletions(response=_completion())
    provider = OpenAIProvider(api_key="sk-test", client=_fake_client(completions))

    response = await provider.chat(MESSAGES, ChatOptions(temperature=0.2, max_tokens=100))

    assert response.content == "Hello"
    assert response.finish_reason == "stop"
    assert response.model == "gpt-4o-mini-2024"
    assert response.usage.total_tokens == 12
    call = completions.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["temperature"] == 0.2
    assert call["max_tokens"] == 100
    assert call["messages"][0] == {"role": "system", "content": "You are helpful."}


@pytest.mark.asyncio
async def test_openai_content_filter():
    provider = OpenAIProvider(
        api_key="sk-test", client=_fake_client(FakeCompletions(response=_completion("", "content_filter")))
    )
    with pytest.raises(ContentFilterError):
        await provider.chat(MESSAGES)


@pytest.mark.asyncio
async def test_openai_empty_response():
    provider = OpenAIProvider(api_key="sk-test", client=_fake_client(FakeCompletions(response=_completion("  "))))
    with pytest.raises(EmptyResponseError):
        await provider.chat(MESSAGES)


@pytest.mark.asyncio
async def test_openai_auth_error_mapped():
    response = httpx.Response(401, request=OPENAI_REQUEST)
    error = openai.AuthenticationError("bad key", response=response, body=None)
    provider = OpenAIProvider(api_key="sk-test", client=_fake_client(FakeCompletions(error=error)))
    with pytest.raises(AuthenticationError):
        await provider.chat(MESSAGES)


@pytest.mark.asyncio
async def test_openai_stream():
    completions = FakeCompletions(stream_chunks=["Hel", None, "lo"])
    provider = OpenAIProvider(api_key="sk-test", client=_fake_client(completions))
    pieces = [p async for p in provider.chat_stream(MESSAGES)]
    assert pieces == ["Hel", "lo"]
    assert completions.calls[0]["stream"] is True


@pytest.mark.asyncio
async def test_openai_test_connection():
    completions = FakeCompletions(response=_completion("OK"))
    provider = OpenAIProvider(api_key="sk-test", client=_fake_client(completions))
    assert await provider.test_connection() is True
    assert completions.calls[0]["max_tokens"] == 5


# --- Anthropic ---


def test_to_anthropic_messages_merges_turns():
    system, turns = to_anthropic_messages(MESSAGES)
    assert system == "You are helpful."
    assert turns == [{"role": "user", "content": "Hi\n\nHow much did I spend?"}]


@pytest.mark.asyncio
async def test_anthropic_chat():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "model": "claude-3-5-sonnet-20241022",
                "content": [{"type": "text", "text": "You spent "}, {"type": "text", "text": "RM 255.00."}],
                "stop_reason": "max_tokens",
                "usage": {"input_tokens": 30, "output_tokens": 8},
            },
        )

    provider = AnthropicProvider(api_key="sk-ant-test", transport=httpx.MockTransport(handler))
    response = await provider.chat(MESSAGES, ChatOptions(max_tokens=50))

    assert response.content == "You spent RM 255.00."
    assert response.finish_reason == "length"
    assert response.usage.total_tokens == 38
    assert seen["url"] == "https://api.anthropic.com/v1/messages"
    assert seen["headers"]["x-api-key"] == "sk-ant-test"
    assert seen["headers"]["anthropic-version"] == "2023-06-01"
    assert seen["body"]["system"] == "You are helpful."
    assert seen["body"]["max_tokens"] == 50


@pytest.mark.asyncio
async def test_anthropic_status_errors():
    def handler(request):
        return httpx.Response(429, headers={"retry-after": "3"}, json={"error": "rate_limited"})

    provider = AnthropicProvider(api_key="k", transport=httpx.MockTransport(handler))
    with pytest.raises(RateLimitError) as exc:
        await provider.chat(MESSAGES)
    assert exc.value.retry_after == 3.0


@pytest.mark.asyncio
async def test_anthropic_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = AnthropicProvider(api_key="k", transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderError) as exc:
        await provider.chat(MESSAGES)
    assert exc.value.code == "NETWORK_ERROR"


@pytest.mark.asyncio
async def test_anthropic_empty_content():
    def handler(request):
        return httpx.Response(200, json={"content": [{"type": "tool_use", "id": "x"}]})

    provider = AnthropicProvider(api_key="k", transport=httpx.MockTransport(handler))
    with pytest.raises(EmptyResponseError):
        await provider.chat(MESSAGES)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>gateway error</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"content": ["plain string block"]}),
    ],
)
async def test_anthropic_unreadable_body(response):
    provider = AnthropicProvider(api_key="k", transport=httpx.MockTransport(lambda request: response))
    with pytest.raises(ProviderError) as exc:
        await provider.chat(MESSAGES)
    assert exc.value.code == "INVALID_RESPONSE"
    assert exc.value.provider == "anthropic"


@pytest.mark.asyncio
async def test_anthropic_null_content_is_empty():
    provider = AnthropicProvider(
        api_key="k", transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"content": None}))
    )
    with pytest.raises(EmptyResponseError):
        await provider.chat(MESSAGES)


# --- factory ---


def test_create_provider():
    openai_provider = create_provider("openai", "sk-test")
    assert isinstance(openai_provider, OpenAIProvider)
    assert openai_provider.model == DEFAULT_MODELS["openai"]

    azure = create_provider("azure_foundry", "key", "my-deployment", endpoint="https://x.openai.azure.com/")
    assert isinstance(azure, AzureFoundryProvider)
    assert azure.model == "my-deployment"

    anthropic = create_provider("anthropic", "sk-ant")
    assert isinstance(anthropic, AnthropicProvider)


def test_create_provider_rejects_bad_config():
    with pytest.raises(ConfigurationError):
        create_provider("gemini", "key")
    with pytest.raises(ConfigurationError):
        create_provider("openai", "")
    with pytest.raises(ConfigurationError):
        create_provider("azure_foundry", "key")


def test_streaming_capability():
    assert supports_streaming(create_provider("openai", "sk-test"))
    assert not supports_streaming(create_provider("anthropic", "sk-ant"))
