"""Shared test fixtures."""

from __future__ import annotations

import tempfile
from collections.abc import AsyncIterator
from datetime import date, timedelta
from pathlib import Path

import pytest

from finance_agent.config.settings import Settings
from finance_agent.exceptions import ProviderError
from finance_agent.generation.composer import PromptComposer
from finance_agent.generation.fallback import FallbackGenerator
from finance_agent.models.domain import ChatMessage, ChatOptions, ChatResponse, TokenUsage
from finance_agent.models.finance import (
    Budget,
    Category,
    CreditCard,
    Goal,
    Subscription,
    TaxDeduction,
    TaxProfile,
    Transaction,
)
from finance_agent.pipeline.agent_orchestrator import AgentOrchestrator
from finance_agent.query.analyzer import QueryAnalyzer
from finance_agent.retrieval.assembler import ContextAssembler
from finance_agent.retrieval.registry import create_default_retrievers
from finance_agent.retrieval.selector import RetrieverSelector
from finance_agent.scoring.confidence import ConfidenceScorer

TODAY = date(2024, 6, 15)
USER_ID = "user-1"


class InMemoryFinanceData:
    """FinanceDataSource over plain lists."""

    def __init__(self) -> None:
        self.categories: list[Category] = []
        self.transactions: list[Transaction] = []
        self.budgets: list[Budget] = []
        self.goals: list[Goal] = []
        self.subscriptions: list[Subscription] = []
        self.credit_cards: list[CreditCard] = []
        self.tax_deductions: list[TaxDeduction] = []
        self.tax_profiles: dict[str, TaxProfile] = {}
        self.calls: list[str] = []

    async def list_categories(self, user_id):
        self.calls.append("categories")
        return list(self.categories)

    async def list_transactions(
        self,
        user_id,
        start,
        end,
        limit=None,
        category_ids=(),
        min_amount=None,
        max_amount=None,
        type=None,
    ):
        self.calls.append("transactions")
        rows = [
            t
            for t in self.transactions
            if t.user_id == user_id
            and start <= t.date <= end
            and (not category_ids or t.category_id in category_ids)
            and (min_amount is None or t.amount >= min_amount)
            and (max_amount is None or t.amount <= max_amount)
            and (type is None or t.type == type)
        ]
        rows.sort(key=lambda t: t.date, reverse=True)
        return rows[:limit] if limit is not None else rows

    async def list_budgets(self, user_id):
        self.calls.append("budgets")
        return [b for b in self.budgets if b.user_id == user_id]

    async def list_goals(self, user_id):
        self.calls.append("goals")
        return [g for g in self.goals if g.user_id == user_id]

    async def list_subscriptions(self, user_id):
        self.calls.append("subscriptions")
        return [s for s in self.subscriptions if s.user_id == user_id]

    async def list_credit_cards(self, user_id):
        self.calls.append("credit_cards")
        return [c for c in self.credit_cards if c.user_id == user_id]

    async def list_tax_deductions(self, user_id, year):
        self.calls.append("tax_deductions")
        return [d for d in self.tax_deductions if d.user_id == user_id and d.year == year]

    async def get_tax_profile(self, user_id):
        self.calls.append("tax_profile")
        return self.tax_profiles.get(user_id)


class FakeGateway:
    """Provider gateway without streaming capability."""

    provider = "fake"

    def __init__(self, content: str = "Here is your analysis.", error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.requests: list[list[ChatMessage]] = []

    async def chat(self, messages, options: ChatOptions | None = None) -> ChatResponse:
        self.requests.append(list(messages))
        if self.error is not None:
            raise self.error
        return ChatResponse(
            content=self.content,
            finish_reason="stop",
            model="fake-model",
            latency_ms=1.0,
            usage=TokenUsage(prompt_tokens=100, completion_tokens=20, total_tokens=120),
        )

    async def test_connection(self) -> bool:
        await self.chat([ChatMessage("user", "ping")])
        return True


class FakeStreamingGateway(FakeGateway):
    async def chat_stream(self, messages, options: ChatOptions | None = None) -> AsyncIterator[str]:
        yield self.content


def build_sample_data(user_id: str = USER_ID, today: date = TODAY) -> InMemoryFinanceData:
    data = InMemoryFinanceData()
    data.categories = [
        Category("cat-food", "Food & Dining"),
        Category("cat-transport", "Transport"),
        Category("cat-health", "Healthcare", is_sensitive=True),
        Category("cat-salary", "Salary", type="income"),
    ]
    names = {c.id: c.name for c in data.categories}

    def txn(i, amount, day, category_id, type="expense", **kw):
        return Transaction(
            id=f"t{i}",
            user_id=user_id,
            amount=amount,
            type=type,
            date=day,
            description=kw.pop("description", f"txn {i}"),
            vendor=kw.pop("vendor", "Restoran Nasi Kandar"),
            category_id=category_id,
            category_name=names[category_id],
            **kw,
        )

    month_start = today.replace(day=1)
    data.transactions = [
        txn(1, 45.0, month_start, "cat-food", payment_method="credit_card", credit_card_id="card-1"),
        txn(2, 60.0, month_start + timedelta(days=3), "cat-food", payment_method="ewallet"),
        txn(3, 30.0, month_start + timedelta(days=5), "cat-transport", vendor="Grab"),
        txn(4, 120.0, month_start + timedelta(days=8), "cat-health", vendor="Klinik", is_tax_deductible=True),
        txn(5, 5000.0, month_start + timedelta(days=9), "cat-salary", type="income", vendor="Acme"),
    ]
    # Previous months for history-based retrievers
    for back in range(1, 7):
        day = (month_start - timedelta(days=back * 30)).replace(day=10)
        data.transactions.append(txn(100 + back, 200.0 + back * 10, day, "cat-food"))
        data.transactions.append(txn(200 + back, 5000.0, day, "cat-salary", type="income", vendor="Acme"))

    data.budgets = [
        Budget("b1", user_id, "Food", 100.0, category_id="cat-food"),
        Budget("b2", user_id, "Transport", 300.0, category_id="cat-transport"),
    ]
    data.goals = [
        Goal(
            "g1",
            user_id,
            "Emergency Fund",
            10000.0,
            current_amount=2000.0,
            start_date=today - timedelta(days=180),
            target_date=today + timedelta(days=180),
        )
    ]
    data.subscriptions = [
        Subscription("s1", user_id, "Netflix", 55.0, tier="premium"),
        Subscription("s2", user_id, "Gym", 150.0, status="paused"),
        Subscription("s3", user_id, "Old Magazine", 20.0, status="cancelled"),
    ]
    data.credit_cards = [CreditCard("card-1", user_id, "Visa Platinum", "Maybank", 10000.0, 8000.0)]
    data.tax_deductions = [TaxDeduction("d1", user_id, today.year, "LIFESTYLE", 1500.0)]
    data.tax_profiles[user_id] = TaxProfile(user_id, base_salary=60000.0, epf_contribution=6600.0, pcb_paid=2400.0)
    return data


@pytest.fixture
def settings():
    """Test settings with temp paths."""
    tmp = tempfile.mkdtemp()
    return Settings(
        sqlite_db_path=str(Path(tmp) / "test_finance.db"),
        jwt_secret="test-secret",
        ai_encryption_secret="test-encryption-secret",
        stream_delay_ms=0,
        json_logs=False,
    )


@pytest.fixture
def clock():
    return lambda: TODAY


@pytest.fixture
def finance_data():
    return build_sample_data()


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def failing_gateway():
    return FakeGateway(error=ProviderError("upstream 503", code="HTTP_503", provider="fake", retryable=True))


@pytest.fixture
def streaming_gateway():
    return FakeStreamingGateway(content="Your food spending this month is RM 105.00 across two meals.")


@pytest.fixture
def tmp_dir():
    """Create a temporary directory."""
    return tempfile.mkdtemp()


def build_assembler(settings, data, clock, retrievers=None) -> ContextAssembler:
    return ContextAssembler(
        retrievers if retrievers is not None else create_default_retrievers(data, clock=clock),
        RetrieverSelector(settings.max_retrievers),
        settings,
        clock=clock,
    )


@pytest.fixture
def make_orchestrator(settings, clock):
    def factory(data, gateway, enable_fallback=True, retrievers=None) -> AgentOrchestrator:
        return AgentOrchestrator(
            analyzer=QueryAnalyzer(clock=clock),
            assembler=build_assembler(settings, data, clock, retrievers),
            composer=PromptComposer(history_limit=settings.history_prompt_limit),
            gateway=gateway,
            fallback_generator=FallbackGenerator(),
            confidence_scorer=ConfidenceScorer(settings),
            data_source=data,
            enable_fallback=enable_fallback,
        )

    return factory


@pytest.fixture
def assembler(settings, finance_data, clock):
    return build_assembler(settings, finance_data, clock)


@pytest.fixture
def assembler_factory(clock):
    def factory(settings, data, retrievers=None) -> ContextAssembler:
        return build_assembler(settings, data, clock, retrievers)

    return factory


async def seed_finance_store(store, data: InMemoryFinanceData, user_id: str = USER_ID) -> None:
    """Copy in-memory sample data into a SQLiteFinanceStore."""
    for category in data.categories:
        await store.add_category(category, user_id=user_id)
    await store.add_transactions(data.transactions)
    for budget in data.budgets:
        await store.add_budget(budget)
    for goal in data.goals:
        await store.add_goal(goal)
    for sub in data.subscriptions:
        await store.add_subscription(sub)
    for card in data.credit_cards:
        await store.add_credit_card(card)
    for deduction in data.tax_deductions:
        await store.add_tax_deduction(deduction)
    for profile in data.tax_profiles.values():
        await store.set_tax_profile(profile)


@pytest.fixture
def seed_store():
    return seed_finance_store


@pytest.fixture
def live_data():
    """Sample data dated around the real current day, for code paths that use date.today()."""
    return build_sample_data(today=date.today())
