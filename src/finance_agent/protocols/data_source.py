"""Protocol for the financial data collaborator read by the retrievers."""

from __future__ import annotations

from datetime import date
from typing import Protocol

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


class FinanceDataSource(Protocol):
    async def list_categories(self, user_id: str) -> list[Category]: ...

    async def list_transactions(
        self,
        user_id: str,
        start: date,
        end: date,
        limit: int | None = None,
        category_ids: tuple[str, ...] = (),
        min_amount: float | None = None,
        max_amount: float | None = None,
        type: str | None = None,
    ) -> list[Transaction]: ...

    async def list_budgets(self, user_id: str) -> list[Budget]: ...

    async def list_goals(self, user_id: str) -> list[Goal]: ...

    async def list_subscriptions(self, user_id: str) -> list[Subscription]: ...

    async def list_credit_cards(self, user_id: str) -> list[CreditCard]: ...

    async def list_tax_deductions(self, user_id: str, year: int) -> list[TaxDeduction]: ...

    async def get_tax_profile(self, user_id: str) -> TaxProfile | None: ...
