"""Shared plumbing for the domain retrievers."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date

from finance_agent.models.domain import DateRange, Insight, InsightLevel, RetrievedData
from finance_agent.models.finance import Transaction
from finance_agent.protocols.data_source import FinanceDataSource


class BaseRetriever:
    source: str = ""
    description: str = ""

    def __init__(
        self,
        data_source: FinanceDataSource,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._data = data_source
        self._clock = clock

    def _today(self) -> date:
        return self._clock()

    def _result(
        self,
        date_range: DateRange,
        record_count: int,
        data: list[dict],
        aggregations: dict,
        insights: list[Insight],
    ) -> RetrievedData:
        return RetrievedData(
            source=self.source,
            description=self.description,
            record_count=record_count,
            date_range=date_range,
            data=data,
            aggregations=aggregations,
            insights=insights,
        )


def info(text: str) -> Insight:
    return Insight(InsightLevel.INFO, text)


def tip(text: str) -> Insight:
    return Insight(InsightLevel.TIP, text)


def warning(text: str) -> Insight:
    return Insight(InsightLevel.WARNING, text)


def critical(text: str) -> Insight:
    return Insight(InsightLevel.CRITICAL, text)


def anonymize_vendor(name: str | None) -> str | None:
    if not name:
        return name
    return name[0] + "*" * min(len(name) - 1, 8)


def expense_total(transactions: list[Transaction]) -> float:
    return sum(t.amount for t in transactions if t.is_expense)


def income_total(transactions: list[Transaction]) -> float:
    return sum(t.amount for t in transactions if not t.is_expense)
