"""Forecast retriever: spending projections from monthly expense history.

Next-month spending is a weighted moving average over the latest five months,
scaled by a bounded seasonal factor when a full year of history exists. The
current month is projected linearly from its daily run rate.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date

import numpy as np

from finance_agent.models.domain import DateRange, Insight, RetrievalOptions, RetrievedData
from finance_agent.models.finance import Transaction
from finance_agent.retrieval.base import BaseRetriever, critical, info, warning
from finance_agent.retrieval.common import format_currency, month_range, round2, shift_month

HISTORY_MONTHS = 12
FORECAST_MONTHS = 3
WMA_WEIGHTS = np.array([0.10, 0.15, 0.20, 0.25, 0.30])
SEASONAL_BOUNDS = (0.8, 1.2)
TREND_SLOPE_PCT = 5.0
ANOMALY_SIGMA = 2.0
TRANSACTION_ANOMALY_MULTIPLIER = 5.0


def weighted_moving_average(values: np.ndarray) -> float:
    if values.size == 0:
        return 0.0
    window = values[-len(WMA_WEIGHTS):]
    weights = WMA_WEIGHTS[-window.size:]
    return float(np.dot(window, weights) / weights.sum())


def trend_direction(values: np.ndarray) -> str:
    recent = values[-6:]
    if recent.size < 3 or recent.mean() == 0:
        return "stable"
    slope = np.polyfit(np.arange(recent.size), recent, 1)[0]
    pct = slope / recent.mean() * 100
    if pct > TREND_SLOPE_PCT:
        return "increasing"
    if pct < -TREND_SLOPE_PCT:
        return "decreasing"
    return "stable"


class ForecastRetriever(BaseRetriever):
    source = "forecasts"
    description = "Spending forecasts, run rate and anomalies"

    async def retrieve(
        self, user_id: str, query: str, options: RetrievalOptions
    ) -> RetrievedData:
        today = self._today()
        first_year, first_month = shift_month(today.year, today.month, -HISTORY_MONTHS)
        history_start = date(first_year, first_month, 1)
        expenses = await self._data.list_transactions(
            user_id, history_start, today, category_ids=options.category_ids, type="expense"
        )

        months = [shift_month(first_year, first_month, i) for i in range(HISTORY_MONTHS)]
        windows = [month_range(y, m) for y, m in months]
        totals = np.array([self._sum_in(expenses, w) for w in windows], dtype=float)
        observed = totals[np.nonzero(totals)[0][0]:] if totals.any() else np.array([])

        current = DateRange(date(today.year, today.month, 1), today)
        month_to_date = self._sum_in(expenses, current)
        days_in_month = calendar.monthrange(today.year, today.month)[1]
        daily_rate = month_to_date / today.day
        projection = daily_rate * days_in_month

        base = weighted_moving_average(observed)
        mean = float(observed.mean()) if observed.size else 0.0
        std = float(observed.std()) if observed.size else 0.0

        forecasts = []
        for i in range(FORECAST_MONTHS):
            year, month = shift_month(today.year, today.month, i + 1)
            amount = base * self._seasonal_factor(totals, month, months, mean)
            forecasts.append(
                {
                    "month": date(year, month, 1).strftime("%B %Y"),
                    "amount": round2(amount),
                    "confidence": round(max(0.5, 0.9 - 0.1 * i), 2),
                }
            )

        high_months = [
            w.label for w, total in zip(windows, totals) if std and total > mean + ANOMALY_SIGMA * std
        ]
        avg_txn = float(np.mean([t.amount for t in expenses])) if expenses else 0.0
        outliers = [
            t for t in expenses if current.contains(t.date) and avg_txn and t.amount > avg_txn * TRANSACTION_ANOMALY_MULTIPLIER
        ]
        over_budget = await self._categories_above_budget(user_id, expenses, current, today.day, days_in_month)

        aggregations = {
            "overall_trend": trend_direction(observed),
            "confidence_score": round(min(1.0, observed.size / 6) * 0.9, 2),
            "average_monthly_spending": round2(mean),
            "next_month_forecast": forecasts[0]["amount"],
            "forecasts": forecasts,
            "month_to_date_spending": round2(month_to_date),
            "current_month_projection": round2(projection),
            "daily_spending_rate": round2(daily_rate),
            "weekly_spending_rate": round2(daily_rate * 7),
            "days_remaining_in_month": days_in_month - today.day,
            "categories_above_budget": over_budget,
            "anomalies_detected": len(high_months) + len(outliers),
            "high_spend_months": high_months,
        }

        records = [
            {"month": w.label, "total_expenses": round2(total)} for w, total in zip(windows, totals)
        ][-options.limit:]
        return self._result(
            DateRange(history_start, today, "Last 12 Months"),
            len(expenses),
            records,
            aggregations,
            self._insights(aggregations, outliers),
        )

    @staticmethod
    def _sum_in(expenses: list[Transaction], window: DateRange) -> float:
        return sum(t.amount for t in expenses if window.contains(t.date))

    @staticmethod
    def _seasonal_factor(totals: np.ndarray, month: int, months: list[tuple[int, int]], mean: float) -> float:
        if totals.size < HISTORY_MONTHS or not mean or not totals.all():
            return 1.0
        same_month = [total for (_, m), total in zip(months, totals) if m == month]
        if not same_month:
            return 1.0
        return float(np.clip(same_month[-1] / mean, *SEASONAL_BOUNDS))

    async def _categories_above_budget(
        self,
        user_id: str,
        expenses: list[Transaction],
        current: DateRange,
        day: int,
        days_in_month: int,
    ) -> list[str]:
        budgets = [
            b
            for b in await self._data.list_budgets(user_id)
            if b.is_active and b.category_id and b.period == "monthly"
        ]
        spent: dict[str, float] = defaultdict(float)
        for t in expenses:
            if current.contains(t.date) and t.category_id:
                spent[t.category_id] += t.amount
        return [
            b.name for b in budgets if spent[b.category_id] / day * days_in_month > b.amount
        ]

    @staticmethod
    def _insights(agg: dict, outliers: list[Transaction]) -> list[Insight]:
        insights = [
            info(
                f"Projected spending this month: {format_currency(agg['current_month_projection'])} "
                f"at {format_currency(agg['daily_spending_rate'])}/day"
            ),
            info(f"Next month forecast: {format_currency(agg['next_month_forecast'])}"),
        ]
        if agg["overall_trend"] == "increasing":
            insights.append(warning("Monthly spending has been trending upward"))
        elif agg["overall_trend"] == "decreasing":
            insights.append(info("Monthly spending has been trending downward"))
        if agg["categories_above_budget"]:
            insights.append(
                critical(
                    "On pace to exceed budget: " + ", ".join(agg["categories_above_budget"])
                )
            )
        if agg["high_spend_months"]:
            insights.append(
                warning("Unusually high spending in " + ", ".join(agg["high_spend_months"]))
            )
        if outliers:
            insights.append(
                warning(f"{len(outliers)} transaction(s) this month are more than 5x your average")
            )
        return insights
