"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Storage paths
    sqlite_db_path: str = "data/finance.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    json_logs: bool = True

    # Auth / JWT
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiry_minutes: int = 60

    # API key encryption (AES-256-GCM, scrypt-derived key)
    ai_encryption_secret: str = ""

    # Rate limiting (fixed window per user)
    rate_limit_max_requests: int = 20
    rate_limit_window_seconds: int = 60

    # Turn validation / history
    max_message_length: int = 4000
    history_fetch_limit: int = 10
    history_prompt_limit: int = 6
    conversation_title_length: int = 50

    # Context budget
    max_context_tokens: int = 8000
    token_buffer: int = 500
    min_stub_tokens: int = 500
    stub_insight_count: int = 3
    max_retrievers: int = 5
    max_insights: int = 10
    max_recommendations: int = 5
    merged_insight_cap: int = 15

    # Agent defaults (overridden per user by AI settings)
    default_temperature: float = 0.7
    default_max_tokens: int = 2048
    provider_timeout_seconds: float = 60.0

    # Confidence policy
    conf_model_floor: float = 0.40
    conf_model_ceiling: float = 0.95
    conf_fallback: float = 0.30
    conf_w_records: float = 0.40
    conf_w_intent: float = 0.30
    conf_w_coverage: float = 0.30
    conf_stub_credit: float = 0.5
    conf_records_saturation: int = 50

    # Streaming replay
    stream_chunk_size: int = 20
    stream_delay_ms: int = 10

    model_config = {"env_file": ".env", "env_prefix": "FIN_"}

    @property
    def context_token_limit(self) -> int:
        return self.max_context_tokens - self.token_buffer
