"""Custom exception hierarchy for the finance agent."""


class FinanceAgentError(Exception):
    """Base exception for all finance agent errors."""


class ConfigurationError(FinanceAgentError):
    """Error in system or per-user AI configuration."""


class EncryptionError(FinanceAgentError):
    """API key could not be encrypted or decrypted."""


class StorageError(FinanceAgentError):
    """Error reading or writing persistent state."""


class ConversationNotFoundError(StorageError):
    """Conversation does not exist or belongs to another user."""


class RetrievalError(FinanceAgentError):
    """A data retriever failed."""


class GenerationError(FinanceAgentError):
    """Error during answer generation."""


class ProviderError(GenerationError):
    """Error returned by an external model provider."""

    def __init__(
        self,
        message: str,
        code: str,
        provider: str,
        retryable: bool = False,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.provider = provider
        self.retryable = retryable
        self.status_code = status_code


class RateLimitError(ProviderError):
    def __init__(self, provider: str, retry_after: float | None = None) -> None:
        super().__init__(
            f"Rate limit exceeded for {provider}",
            code="RATE_LIMIT",
            provider=provider,
            retryable=True,
            status_code=429,
        )
        self.retry_after = retry_after


class AuthenticationError(ProviderError):
    def __init__(self, provider: str, status_code: int = 401) -> None:
        super().__init__(
            f"Authentication failed for {provider}",
            code="AUTH_ERROR",
            provider=provider,
            status_code=status_code,
        )


class ModelNotFoundError(ProviderError):
    def __init__(self, provider: str, model: str) -> None:
        super().__init__(
            f"Model '{model}' not found for {provider}",
            code="MODEL_NOT_FOUND",
            provider=provider,
            status_code=404,
        )
        self.model = model


class ContentFilterError(ProviderError):
    def __init__(self, provider: str) -> None:
        super().__init__(
            f"Content was filtered by {provider}",
            code="CONTENT_FILTER",
            provider=provider,
            status_code=400,
        )


class EmptyResponseError(ProviderError):
    def __init__(self, provider: str) -> None:
        super().__init__(
            f"{provider} returned an empty response",
            code="EMPTY_RESPONSE",
            provider=provider,
        )
