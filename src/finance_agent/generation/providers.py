"""Provider factory and per-provider model catalogue."""

from __future__ import annotations

from finance_agent.exceptions import ConfigurationError
from finance_agent.generation.anthropic_provider import AnthropicProvider
from finance_agent.generation.openai_provider import AzureFoundryProvider, OpenAIProvider
from finance_agent.protocols.llm import ProviderGateway

SUPPORTED_PROVIDERS = ("openai", "azure_foundry", "anthropic")

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "azure_foundry": "gpt-4o-mini",
    "anthropic": "claude-3-5-sonnet-20241022",
}

RECOMMENDED_MODELS = {
    "openai": ["gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-4", "gpt-3.5-turbo"],
    "azure_foundry": ["gpt-4o", "gpt-4o-mini", "gpt-4", "gpt-35-turbo"],
    "anthropic": [
        "claude-3-5-sonnet-20241022",
        "claude-3-opus-20240229",
        "claude-3-sonnet-20240229",
        "claude-3-haiku-20240307",
    ],
}

PROVIDER_DISPLAY_NAMES = {
    "openai": "OpenAI",
    "azure_foundry": "Azure AI Foundry",
    "anthropic": "Anthropic Claude",
}


def create_provider(
    provider: str,
    api_key: str,
    model_name: str | None = None,
    endpoint: str | None = None,
    timeout: float = 60.0,
) -> ProviderGateway:
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(f"Unsupported AI provider: {provider}")
    if not api_key:
        raise ConfigurationError(f"API key is required for {provider}")

    model = model_name or DEFAULT_MODELS[provider]
    if provider == "openai":
        return OpenAIProvider(api_key=api_key, model=model, timeout=timeout)
    if provider == "azure_foundry":
        if not endpoint:
            raise ConfigurationError("Azure AI Foundry requires a model endpoint")
        return AzureFoundryProvider(api_key=api_key, endpoint=endpoint, model=model, timeout=timeout)
    return AnthropicProvider(api_key=api_key, model=model, timeout=timeout)
