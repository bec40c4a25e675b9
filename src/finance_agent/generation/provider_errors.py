"""Mapping of provider HTTP failures onto the provider error hierarchy."""

from __future__ import annotations

import openai

from finance_agent.exceptions import (
    AuthenticationError,
    ContentFilterError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
)


def error_from_status(
    status_code: int,
    body: str,
    provider: str,
    model: str,
    retry_after: float | None = None,
) -> ProviderError:
    if status_code in (401, 403):
        return AuthenticationError(provider, status_code=status_code)
    if status_code == 404:
        return ModelNotFoundError(provider, model)
    if status_code == 429:
        return RateLimitError(provider, retry_after=retry_after)
    lowered = body.lower()
    if status_code == 400 and ("content_filter" in lowered or "content filter" in lowered):
        return ContentFilterError(provider)
    return ProviderError(
        f"{provider} request failed with HTTP {status_code}: {body[:200]}",
        code=f"HTTP_{status_code}",
        provider=provider,
        retryable=status_code >= 500,
        status_code=status_code,
    )


def error_from_openai(e: openai.OpenAIError, provider: str, model: str) -> ProviderError:
    if isinstance(e, openai.APIStatusError):
        retry_after = e.response.headers.get("retry-after") if e.response is not None else None
        return error_from_status(
            e.status_code,
            str(e.body or e.message),
            provider,
            model,
            retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
        )
    if isinstance(e, openai.APIConnectionError):
        return ProviderError(
            f"Could not reach {provider}: {e}", code="NETWORK_ERROR", provider=provider, retryable=True
        )
    return ProviderError(f"{provider} request failed: {e}", code="UNKNOWN_ERROR", provider=provider)
