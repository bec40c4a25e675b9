"""Income retriever: income sources, stability and savings rate."""

from __future__ import annotations

from collections import defaultdict
from datetime import date

import numpy as np

from finance_agent.models.domain import DateRange, Insight, RetrievalOptions, RetrievedData
from finance_agent.models.finance import Transaction
from finance_agent.retrieval.base import BaseRetriever, info, tip, warning
from finance_agent.retrieval.common import format_currency, month_range, percent_change, round2, shift_month

HISTORY_MONTHS = 12
IRREGULAR_CV = 30.0
VARIABLE_CV = 15.0


def stability_label(cv: float) -> str:
    if cv > IRREGULAR_CV:
        return "irregular"
    if cv > VARIABLE_CV:
        return "variable"
    return "stable"


def _year_earlier(day: date) -> date:
    if day.month == 2 and day.day == 29:
        return day.replace(year=day.year - 1, day=28)
    return day.replace(year=day.year - 1)


def _source_name(t: Transaction) -> str:
    return t.category_name or t.vendor or "Other income"


class IncomeRetriever(BaseRetriever):
    source = "income"
    description = "Income sources, stability and savings rate"

    async def retrieve(
        self, user_id: str, query: str, options: RetrievalOptions
    ) -> RetrievedData:
        rng = options.date_range
        in_range = await self._data.list_transactions(user_id, rng.start, rng.end)
        income = [t for t in in_range if not t.is_expense]
        expenses = sum(t.amount for t in in_range if t.is_expense)
        total_income = sum(t.amount for t in income)

        year, month = shift_month(rng.end.year, rng.end.month, -(HISTORY_MONTHS - 1))
        history_start = date(year, month, 1)
        history = await self._data.list_transactions(user_id, history_start, rng.end, type="income")
        monthly = self._monthly_totals(history, history_start, rng.end)

        active = monthly[monthly > 0]
        avg_monthly = float(active.mean()) if active.size else 0.0
        cv = float(active.std() / active.mean() * 100) if active.size > 1 else 0.0

        last_year = DateRange(_year_earlier(rng.start), _year_earlier(rng.end))
        previous = await self._data.list_transactions(
            user_id, last_year.start, last_year.end, type="income"
        )
        previous_total = sum(t.amount for t in previous)

        by_source: dict[str, float] = defaultdict(float)
        for t in income:
            by_source[_source_name(t)] += t.amount
        by_source = dict(sorted(by_source.items(), key=lambda kv: kv[1], reverse=True))

        profile = await self._data.get_tax_profile(user_id)

        aggregations = {
            "total_income": round2(total_income),
            "total_expenses": round2(expenses),
            "avg_monthly_income": round2(avg_monthly),
            "projected_annual_income": round2(avg_monthly * 12),
            "savings_rate": round((total_income - expenses) / total_income * 100, 1) if total_income else 0.0,
            "income_stability": stability_label(cv),
            "coefficient_of_variation": round(cv, 1),
            "primary_income_source": next(iter(by_source), None),
            "number_of_income_sources": len(by_source),
            "income_by_source": {k: round2(v) for k, v in by_source.items()},
            "year_over_year_change": percent_change(total_income, previous_total) if previous_total else None,
            "base_salary": round2(profile.base_salary) if profile else None,
            "employment_type": profile.employment_type if profile else None,
        }

        records = [
            {
                "id": t.id,
                "date": t.date.isoformat(),
                "amount": round2(t.amount),
                "source": _source_name(t),
                "description": t.description[:80],
            }
            for t in sorted(income, key=lambda t: t.date, reverse=True)[: options.limit]
        ]
        return self._result(rng, len(income), records, aggregations, self._insights(aggregations))

    @staticmethod
    def _monthly_totals(history: list[Transaction], start: date, end: date) -> np.ndarray:
        totals = []
        year, month = start.year, start.month
        while (year, month) <= (end.year, end.month):
            window = month_range(year, month)
            totals.append(sum(t.amount for t in history if window.contains(t.date)))
            year, month = shift_month(year, month, 1)
        return np.array(totals, dtype=float)

    @staticmethod
    def _insights(agg: dict) -> list[Insight]:
        if not agg["total_income"]:
            return [info("No income recorded for this period")]

        insights = [
            info(
                f"Income this period: {format_currency(agg['total_income'])} "
                f"from {agg['number_of_income_sources']} source(s)"
            )
        ]
        rate = agg["savings_rate"]
        if rate < 0:
            insights.append(warning(f"Expenses exceed income (savings rate {rate:.1f}%)"))
        elif rate < 10:
            insights.append(warning(f"Savings rate is {rate:.1f}%, below the 10% minimum benchmark"))
        elif rate >= 20:
            insights.append(info(f"Savings rate of {rate:.1f}% meets the 20% guideline"))
        else:
            insights.append(tip(f"Savings rate is {rate:.1f}%; 20% is a common target"))

        if agg["income_stability"] != "stable":
            insights.append(
                warning(
                    f"Income is {agg['income_stability']} month to month; "
                    "a larger emergency fund helps smooth the gaps"
                )
            )
        yoy = agg["year_over_year_change"]
        if yoy is not None:
            insights.append(info(f"Income changed {yoy:+.1f}% versus the same period last year"))
        return insights
