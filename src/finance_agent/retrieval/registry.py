"""Default retriever set keyed by source."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date

from finance_agent.protocols.data_source import FinanceDataSource
from finance_agent.protocols.retriever import Retriever
from finance_agent.retrieval.budgets import BudgetRetriever
from finance_agent.retrieval.credit_cards import CreditCardRetriever
from finance_agent.retrieval.forecasts import ForecastRetriever
from finance_agent.retrieval.goals import GoalRetriever
from finance_agent.retrieval.income import IncomeRetriever
from finance_agent.retrieval.subscriptions import SubscriptionRetriever
from finance_agent.retrieval.tax import TaxRetriever
from finance_agent.retrieval.transactions import TransactionRetriever

RETRIEVER_CLASSES = (
    TransactionRetriever,
    BudgetRetriever,
    GoalRetriever,
    SubscriptionRetriever,
    CreditCardRetriever,
    TaxRetriever,
    IncomeRetriever,
    ForecastRetriever,
)


def create_default_retrievers(
    data_source: FinanceDataSource,
    clock: Callable[[], date] = date.today,
) -> dict[str, Retriever]:
    return {cls.source: cls(data_source, clock=clock) for cls in RETRIEVER_CLASSES}
