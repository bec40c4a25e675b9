"""Credit card retriever: utilization, due dates and card spending."""

from __future__ import annotations

import calendar
from datetime import date

from finance_agent.models.domain import Insight, RetrievalOptions, RetrievedData
from finance_agent.models.finance import CreditCard, Transaction
from finance_agent.retrieval.base import BaseRetriever, critical, info, tip, warning
from finance_agent.retrieval.common import format_currency, round2, shift_month

HIGH_UTILIZATION_PCT = 70.0
HEALTHY_UTILIZATION_PCT = 30.0
NEAR_DUE_DAYS = 7


def next_due_date(due_day: int, today: date) -> date:
    last_day = calendar.monthrange(today.year, today.month)[1]
    due = date(today.year, today.month, min(due_day, last_day))
    if due >= today:
        return due
    year, month = shift_month(today.year, today.month, 1)
    return date(year, month, min(due_day, calendar.monthrange(year, month)[1]))


def infer_rewards(card: CreditCard) -> str:
    name = f"{card.bank} {card.name}".lower()
    if "cash" in name:
        return "cashback"
    if any(w in name for w in ("travel", "miles", "enrich", "airasia")):
        return "miles"
    if "petrol" in name or "fuel" in name:
        return "fuel"
    return "points"


class CreditCardRetriever(BaseRetriever):
    source = "credit_cards"
    description = "Credit card balances, limits and due dates"

    async def retrieve(
        self, user_id: str, query: str, options: RetrievalOptions
    ) -> RetrievedData:
        today = self._today()
        cards = [c for c in await self._data.list_credit_cards(user_id) if c.is_active]
        spending = await self._data.list_transactions(
            user_id, options.date_range.start, options.date_range.end, type="expense"
        )

        rows = [self._evaluate(c, spending, today) for c in cards]
        rows.sort(key=lambda r: r["utilization"], reverse=True)

        aggregations = self._aggregate(rows)
        return self._result(
            options.date_range,
            len(rows),
            rows[: options.limit],
            aggregations,
            self._insights(rows, aggregations),
        )

    @staticmethod
    def _evaluate(card: CreditCard, spending: list[Transaction], today: date) -> dict:
        due = next_due_date(card.due_day, today)
        card_spend = sum(t.amount for t in spending if t.credit_card_id == card.id)
        utilization = card.current_balance / card.credit_limit * 100 if card.credit_limit else 0.0
        return {
            "id": card.id,
            "name": card.name,
            "bank": card.bank,
            "credit_limit": round2(card.credit_limit),
            "current_balance": round2(card.current_balance),
            "available_credit": round2(card.credit_limit - card.current_balance),
            "utilization": round(utilization, 1),
            "next_due_date": due.isoformat(),
            "days_until_due": (due - today).days,
            "period_spending": round2(card_spend),
            "rewards_type": infer_rewards(card),
        }

    @staticmethod
    def _aggregate(rows: list[dict]) -> dict:
        limit = sum(r["credit_limit"] for r in rows)
        balance = sum(r["current_balance"] for r in rows)
        return {
            "total_cards": len(rows),
            "total_credit_limit": round2(limit),
            "total_balance": round2(balance),
            "total_available_credit": round2(limit - balance),
            "overall_utilization": round(balance / limit * 100, 1) if limit else 0.0,
            "total_monthly_spending": round2(sum(r["period_spending"] for r in rows)),
            "high_utilization_card_count": sum(1 for r in rows if r["utilization"] > HIGH_UTILIZATION_PCT),
            "cards_near_due": sum(1 for r in rows if r["days_until_due"] <= NEAR_DUE_DAYS),
        }

    @staticmethod
    def _insights(rows: list[dict], agg: dict) -> list[Insight]:
        if not rows:
            return [info("No active credit cards on file")]

        line = (
            f"Overall credit utilization: {agg['overall_utilization']:.1f}% "
            f"({format_currency(agg['total_balance'])} of {format_currency(agg['total_credit_limit'])})"
        )
        insights = [warning(line) if agg["overall_utilization"] > HEALTHY_UTILIZATION_PCT else info(line)]

        for r in rows:
            if r["utilization"] > HIGH_UTILIZATION_PCT:
                insights.append(critical(f"{r['name']} is at {r['utilization']:.0f}% utilization"))
        for r in rows:
            if r["days_until_due"] <= NEAR_DUE_DAYS and r["current_balance"] > 0:
                insights.append(
                    warning(
                        f"{r['name']} payment of {format_currency(r['current_balance'])} "
                        f"due in {r['days_until_due']} day(s)"
                    )
                )
        if agg["overall_utilization"] <= HEALTHY_UTILIZATION_PCT:
            insights.append(tip("Utilization under 30% keeps your credit profile healthy"))
        return insights
