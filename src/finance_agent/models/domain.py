"""Core domain objects used throughout the agent."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum


class QueryIntent(str, Enum):
    TAX_OPTIMIZATION = "tax_optimization"
    SPENDING_ANALYSIS = "spending_analysis"
    BUDGET_REVIEW = "budget_review"
    GOAL_PROGRESS = "goal_progress"
    SUBSCRIPTION_REVIEW = "subscription_review"
    CREDIT_CARD_ADVICE = "credit_card_advice"
    INCOME_ANALYSIS = "income_analysis"
    FORECAST_REVIEW = "forecast_review"
    COMPARISON = "comparison"
    ANOMALY_DETECTION = "anomaly_detection"
    GENERAL_ADVICE = "general_advice"


class InsightLevel(str, Enum):
    INFO = "info"
    TIP = "tip"
    WARNING = "warning"
    CRITICAL = "critical"


RETRIEVER_KEYS: tuple[str, ...] = (
    "transactions",
    "budgets",
    "goals",
    "subscriptions",
    "credit_cards",
    "tax",
    "income",
    "forecasts",
)

# Retriever key -> data access permission key in the user's AI settings
PERMISSION_KEYS: dict[str, str] = {
    "transactions": "transactions",
    "budgets": "budgets",
    "goals": "goals",
    "subscriptions": "subscriptions",
    "credit_cards": "credit_cards",
    "tax": "tax_data",
    "income": "income",
    "forecasts": "forecasts",
}


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date
    label: str = ""

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat(), "label": self.label}


@dataclass(frozen=True)
class QueryEntities:
    date_range: DateRange | None = None
    category_names: tuple[str, ...] = ()
    category_ids: tuple[str, ...] = ()
    amount_min: float | None = None
    amount_max: float | None = None
    timeframe: str | None = None
    comparison: bool = False


@dataclass(frozen=True)
class QueryAnalysis:
    original_query: str
    normalized_query: str
    intent: QueryIntent
    confidence: float
    entities: QueryEntities
    suggested_retrievers: tuple[str, ...]
    language: str = "en"


@dataclass(frozen=True)
class Insight:
    level: InsightLevel
    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class RetrievalOptions:
    date_range: DateRange
    limit: int = 100
    category_ids: tuple[str, ...] = ()
    min_amount: float | None = None
    max_amount: float | None = None
    anonymize_vendors: bool = False
    exclude_sensitive_categories: bool = False


@dataclass
class RetrievedData:
    source: str
    description: str
    record_count: int
    date_range: DateRange
    data: list[dict] = field(default_factory=list)
    aggregations: dict = field(default_factory=dict)
    insights: list[Insight] = field(default_factory=list)
    stubbed: bool = False

    def as_stub(self, insight_count: int = 3) -> RetrievedData:
        """Drop raw records but keep aggregations and the leading insights."""
        return dataclasses.replace(
            self, data=[], insights=list(self.insights[:insight_count]), stubbed=True
        )

    def to_payload(self) -> dict:
        return {
            "source": self.source,
            "description": self.description,
            "record_count": self.record_count,
            "date_range": self.date_range.to_dict(),
            "data": self.data,
            "aggregations": self.aggregations,
            "insights": [{"level": i.level.value, "text": i.text} for i in self.insights],
        }


@dataclass
class ContextSummaries:
    financial: str = ""
    insights: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class UserContext:
    currency: str = "MYR"
    locale: str = "en-MY"
    fiscal_year: int = field(default_factory=lambda: date.today().year)


@dataclass
class ContextMetadata:
    retrievers_used: list[str]
    processing_time_ms: float
    token_estimate: int
    retrievers_selected: list[str] = field(default_factory=list)
    stubbed_sources: list[str] = field(default_factory=list)
    dropped_sources: list[str] = field(default_factory=list)
    failed_sources: list[str] = field(default_factory=list)


@dataclass
class AssembledContext:
    query: str
    intent: QueryIntent
    relevant_data: list[RetrievedData]
    total_records: int
    date_range: DateRange
    summaries: ContextSummaries
    user_context: UserContext
    metadata: ContextMetadata

    def source(self, key: str) -> RetrievedData | None:
        for item in self.relevant_data:
            if item.source == key:
                return item
        return None


@dataclass
class AgentMetadata:
    intent: QueryIntent
    data_sources: list[str]
    confidence: float
    records_analyzed: int
    processing_time_ms: float
    tokens_used: int = 0
    trace_id: str = ""


@dataclass
class AgentResult:
    content: str
    metadata: AgentMetadata
    fallback_used: bool
    context: AssembledContext | None = None


# --- Provider gateway messages ---


@dataclass(frozen=True)
class ChatMessage:
    role: str  # "system", "user", "assistant"
    content: str


@dataclass(frozen=True)
class ChatOptions:
    temperature: float = 0.7
    max_tokens: int = 2048


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class ChatResponse:
    content: str
    finish_reason: str
    model: str
    latency_ms: float
    usage: TokenUsage | None = None


# --- External collaborators ---


@dataclass
class AISettings:
    user_id: str
    ai_enabled: bool = False
    provider: str = "openai"  # "openai", "azure_foundry", "anthropic"
    api_key_encrypted: str | None = None
    model_endpoint: str | None = None
    model_name: str | None = None
    temperature: float = 0.7
    max_tokens: int = 2048
    enable_crag: bool = True
    enable_fallback: bool = True
    relevance_threshold: float = 0.7
    max_retrieval_docs: int = 50
    enable_web_search_fallback: bool = False
    data_access: dict[str, bool] = field(default_factory=dict)
    anonymize_vendors: bool = False
    exclude_sensitive_categories: bool = False


@dataclass
class Conversation:
    id: str
    user_id: str
    title: str
    total_messages: int = 0
    total_tokens_used: int = 0
    is_archived: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class StoredMessage:
    id: str
    conversation_id: str
    role: str
    content: str
    retrieved_data: dict | None = None
    data_sources: list[str] = field(default_factory=list)
    confidence_score: float | None = None
    tokens_used: int | None = None
    processing_time_ms: float | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
