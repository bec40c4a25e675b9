"""Transaction retriever: spending and income activity for a period."""

from __future__ import annotations

from collections import defaultdict
from datetime import timedelta

from finance_agent.models.domain import Insight, RetrievalOptions, RetrievedData
from finance_agent.models.finance import Transaction
from finance_agent.observability.logger import get_logger
from finance_agent.retrieval.base import (
    BaseRetriever,
    anonymize_vendor,
    expense_total,
    income_total,
    info,
    tip,
    warning,
)
from finance_agent.retrieval.common import (
    format_currency,
    percent_change,
    previous_period,
    round2,
)

logger = get_logger("retriever.transactions")

LARGE_TRANSACTION_MULTIPLIER = 3.0
TREND_TOLERANCE = 0.10


class TransactionRetriever(BaseRetriever):
    source = "transactions"
    description = "Income and expense transactions"

    async def retrieve(
        self, user_id: str, query: str, options: RetrievalOptions
    ) -> RetrievedData:
        period = options.date_range
        transactions = await self._data.list_transactions(
            user_id,
            period.start,
            period.end,
            category_ids=options.category_ids,
            min_amount=options.min_amount,
            max_amount=options.max_amount,
        )
        if options.exclude_sensitive_categories:
            transactions = await self._without_sensitive(user_id, transactions)

        prior = previous_period(period)
        previous = await self._data.list_transactions(
            user_id,
            prior.start,
            prior.end,
            category_ids=options.category_ids,
            type="expense",
        )

        aggregations = self._aggregate(transactions, expense_total(previous), period.start, period.end)
        insights = self._insights(transactions, aggregations)

        records = [
            self._to_record(t, options.anonymize_vendors)
            for t in sorted(transactions, key=lambda t: t.date, reverse=True)[: options.limit]
        ]

        logger.debug("transactions_retrieved", count=len(transactions), returned=len(records))
        return self._result(period, len(transactions), records, aggregations, insights)

    async def _without_sensitive(
        self, user_id: str, transactions: list[Transaction]
    ) -> list[Transaction]:
        sensitive = {c.id for c in await self._data.list_categories(user_id) if c.is_sensitive}
        return [t for t in transactions if t.category_id not in sensitive]

    @staticmethod
    def _aggregate(transactions: list[Transaction], previous_expenses: float, start, end) -> dict:
        expenses = [t for t in transactions if t.is_expense]
        total_expenses = expense_total(transactions)
        total_income = income_total(transactions)

        by_category: dict[str, float] = defaultdict(float)
        by_method: dict[str, float] = defaultdict(float)
        for t in expenses:
            by_category[t.category_name or "Uncategorized"] += t.amount
            by_method[t.payment_method or "unknown"] += t.amount

        # Trend compares the first and second half of the period
        midpoint = start + timedelta(days=((end - start).days) // 2)
        first_half = sum(t.amount for t in expenses if t.date <= midpoint)
        second_half = sum(t.amount for t in expenses if t.date > midpoint)
        if first_half and second_half > first_half * (1 + TREND_TOLERANCE):
            trend = "increasing"
        elif first_half and second_half < first_half * (1 - TREND_TOLERANCE):
            trend = "decreasing"
        else:
            trend = "stable"

        average = total_expenses / len(expenses) if expenses else 0.0
        large = [t for t in expenses if average and t.amount > average * LARGE_TRANSACTION_MULTIPLIER]
        deductible = [t for t in expenses if t.is_tax_deductible]

        return {
            "total_expenses": round2(total_expenses),
            "total_income": round2(total_income),
            "net_cash_flow": round2(total_income - total_expenses),
            "transaction_count": len(transactions),
            "expense_count": len(expenses),
            "income_count": len(transactions) - len(expenses),
            "average_transaction": round2(average),
            "expenses_by_category": {
                k: round2(v) for k, v in sorted(by_category.items(), key=lambda kv: kv[1], reverse=True)
            },
            "expenses_by_payment_method": {
                k: round2(v) for k, v in sorted(by_method.items(), key=lambda kv: kv[1], reverse=True)
            },
            "expenses_trend": trend,
            "previous_period_expenses": round2(previous_expenses),
            "percent_change_from_last_period": percent_change(total_expenses, previous_expenses),
            "large_transaction_count": len(large),
            "tax_deductible_total": round2(sum(t.amount for t in deductible)),
            "tax_deductible_count": len(deductible),
        }

    @staticmethod
    def _insights(transactions: list[Transaction], agg: dict) -> list[Insight]:
        if not transactions:
            return [info("No transactions recorded for this period")]

        insights = [
            info(
                f"Total spending: {format_currency(agg['total_expenses'])} "
                f"across {agg['expense_count']} transactions"
            )
        ]

        if agg["total_income"] > 0:
            savings_rate = agg["net_cash_flow"] / agg["total_income"] * 100
            line = f"Net cash flow: {format_currency(agg['net_cash_flow'])} ({savings_rate:.1f}% savings rate)"
            insights.append(warning(line) if agg["net_cash_flow"] < 0 else info(line))

        top = list(agg["expenses_by_category"].items())[:3]
        if top and agg["total_expenses"]:
            parts = [
                f"{name} ({format_currency(amount)}, {amount / agg['total_expenses'] * 100:.1f}%)"
                for name, amount in top
            ]
            insights.append(info("Top spending categories: " + ", ".join(parts)))

        change = agg["percent_change_from_last_period"]
        if agg["previous_period_expenses"] and change > TREND_TOLERANCE * 100:
            insights.append(warning(f"Spending is up {change:.1f}% from the previous period"))
        elif agg["previous_period_expenses"] and change < -TREND_TOLERANCE * 100:
            insights.append(info(f"Spending is down {abs(change):.1f}% from the previous period"))

        if agg["large_transaction_count"]:
            insights.append(
                warning(
                    f"{agg['large_transaction_count']} unusually large transaction(s) "
                    "detected (more than 3x the average)"
                )
            )

        if agg["tax_deductible_count"]:
            insights.append(
                tip(
                    f"Tax-deductible expenses: {format_currency(agg['tax_deductible_total'])} "
                    f"across {agg['tax_deductible_count']} transactions"
                )
            )
        return insights

    @staticmethod
    def _to_record(t: Transaction, anonymize: bool) -> dict:
        vendor = anonymize_vendor(t.vendor) if anonymize else t.vendor
        return {
            "id": t.id,
            "date": t.date.isoformat(),
            "type": t.type,
            "amount": round2(t.amount),
            "category": t.category_name,
            "vendor": vendor,
            "payment_method": t.payment_method,
            "description": t.description[:80],
            "tax_deductible": t.is_tax_deductible,
        }
