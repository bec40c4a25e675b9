"""Budget retriever: utilization and pacing of active budgets."""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from finance_agent.models.domain import DateRange, Insight, RetrievalOptions, RetrievedData
from finance_agent.models.finance import Budget, Transaction
from finance_agent.retrieval.base import BaseRetriever, critical, info, tip, warning
from finance_agent.retrieval.common import format_currency, round2

UNDER_UTILIZED_PCT = 50.0
UNDER_UTILIZED_MIN_AMOUNT = 100.0


def budget_period(budget: Budget, today: date) -> DateRange:
    """Current period window for a budget."""
    if budget.start_date and budget.end_date:
        return DateRange(budget.start_date, budget.end_date, budget.period)
    if budget.period == "weekly":
        start = today - timedelta(days=today.weekday())
        return DateRange(start, start + timedelta(days=6), "weekly")
    if budget.period == "yearly":
        return DateRange(date(today.year, 1, 1), date(today.year, 12, 31), "yearly")
    last_day = calendar.monthrange(today.year, today.month)[1]
    return DateRange(date(today.year, today.month, 1), date(today.year, today.month, last_day), "monthly")


class BudgetRetriever(BaseRetriever):
    source = "budgets"
    description = "Budget limits, utilization and projected overspend"

    async def retrieve(
        self, user_id: str, query: str, options: RetrievalOptions
    ) -> RetrievedData:
        today = self._today()
        budgets = [b for b in await self._data.list_budgets(user_id) if b.is_active]
        if options.category_ids:
            matching = [b for b in budgets if b.category_id in options.category_ids]
            budgets = matching or budgets

        periods = {b.id: budget_period(b, today) for b in budgets}
        if periods:
            start = min(p.start for p in periods.values())
            end = max(p.end for p in periods.values())
            expenses = await self._data.list_transactions(user_id, start, end, type="expense")
        else:
            expenses = []

        rows = [self._evaluate(b, periods[b.id], expenses, today) for b in budgets]
        rows.sort(key=lambda r: r["utilization"], reverse=True)

        aggregations = self._aggregate(rows)
        insights = self._insights(rows, aggregations)
        return self._result(
            options.date_range, len(rows), rows[: options.limit], aggregations, insights
        )

    @staticmethod
    def _evaluate(budget: Budget, period: DateRange, expenses: list[Transaction], today: date) -> dict:
        spent = sum(
            t.amount
            for t in expenses
            if period.contains(t.date) and (budget.category_id is None or t.category_id == budget.category_id)
        )
        utilization = spent / budget.amount * 100 if budget.amount else 0.0
        if utilization >= 100:
            status = "over"
        elif utilization >= budget.alert_threshold:
            status = "warning"
        else:
            status = "healthy"

        days_elapsed = max(1, min((today - period.start).days + 1, period.days))
        days_remaining = max(0, (period.end - today).days)
        projected = spent / days_elapsed * period.days
        return {
            "id": budget.id,
            "name": budget.name,
            "period": budget.period,
            "amount": round2(budget.amount),
            "spent": round2(spent),
            "remaining": round2(budget.amount - spent),
            "utilization": round(utilization, 1),
            "status": status,
            "alert_threshold": budget.alert_threshold,
            "days_remaining": days_remaining,
            "projected_spend": round2(projected),
            "projected_overspend": round2(max(0.0, projected - budget.amount)),
        }

    @staticmethod
    def _aggregate(rows: list[dict]) -> dict:
        total_budget = sum(r["amount"] for r in rows)
        total_spent = sum(r["spent"] for r in rows)
        return {
            "total_budget": round2(total_budget),
            "total_spent": round2(total_spent),
            "total_remaining": round2(total_budget - total_spent),
            "overall_utilization": round(total_spent / total_budget * 100, 1) if total_budget else 0.0,
            "over_budget_count": sum(1 for r in rows if r["status"] == "over"),
            "warning_count": sum(1 for r in rows if r["status"] == "warning"),
            "healthy_count": sum(1 for r in rows if r["status"] == "healthy"),
            "projected_overspend_total": round2(sum(r["projected_overspend"] for r in rows)),
        }

    @staticmethod
    def _insights(rows: list[dict], agg: dict) -> list[Insight]:
        if not rows:
            return [tip("No active budgets found. Setting category budgets makes overspending visible early")]

        insights = [
            info(
                f"Overall budget utilization: {agg['overall_utilization']:.1f}% "
                f"({format_currency(agg['total_spent'])} of {format_currency(agg['total_budget'])})"
            )
        ]

        over = [r for r in rows if r["status"] == "over"]
        if over:
            names = ", ".join(f"{r['name']} ({r['utilization']:.0f}%)" for r in over)
            insights.append(critical(f"Over budget: {names}"))

        near = [r for r in rows if r["status"] == "warning"]
        if near:
            names = ", ".join(f"{r['name']} ({r['utilization']:.0f}%)" for r in near)
            insights.append(warning(f"Approaching limit: {names}"))

        overspending = [r for r in rows if r["projected_overspend"] > 0 and r["status"] != "over"]
        if overspending:
            total = sum(r["projected_overspend"] for r in overspending)
            insights.append(
                warning(
                    f"Projected overspend by period end: {format_currency(total)} "
                    f"across {len(overspending)} budget(s)"
                )
            )

        under = [
            r
            for r in rows
            if r["utilization"] < UNDER_UTILIZED_PCT and r["amount"] > UNDER_UTILIZED_MIN_AMOUNT
        ]
        if under:
            names = ", ".join(r["name"] for r in under)
            insights.append(tip(f"Under-utilized budgets that could be reallocated: {names}"))

        remaining_days = [r["days_remaining"] for r in rows if r["days_remaining"] > 0]
        if remaining_days and agg["total_remaining"] > 0:
            avg_days = round(sum(remaining_days) / len(remaining_days))
            if avg_days:
                insights.append(
                    info(
                        f"Daily spending budget for the remaining {avg_days} days: "
                        f"{format_currency(agg['total_remaining'] / avg_days)}"
                    )
                )
        return insights
