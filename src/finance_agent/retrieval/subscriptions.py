"""Subscription retriever: recurring costs and likely unused services."""

from __future__ import annotations

from datetime import timedelta

from finance_agent.models.domain import Insight, RetrievalOptions, RetrievedData
from finance_agent.models.finance import Subscription
from finance_agent.retrieval.base import BaseRetriever, info, tip, warning
from finance_agent.retrieval.common import format_currency, round2

CYCLE_TO_MONTHLY = {
    "weekly": 4.33,
    "monthly": 1.0,
    "quarterly": 1 / 3,
    "yearly": 1 / 12,
}

UNUSED_THRESHOLD = 30
RENEWAL_WINDOW_DAYS = 7


def monthly_equivalent(sub: Subscription) -> float:
    return sub.amount * CYCLE_TO_MONTHLY.get(sub.billing_cycle, 1.0)


def usage_score(sub: Subscription) -> int:
    """Heuristic engagement score; paused services score low."""
    if sub.status == "paused":
        return 20
    if sub.status != "active":
        return 0
    tier = (sub.tier or "").lower()
    if tier in ("premium", "enterprise", "family"):
        return 90
    if tier in ("basic", "standard"):
        return 70
    return 50


class SubscriptionRetriever(BaseRetriever):
    source = "subscriptions"
    description = "Recurring subscriptions and their monthly cost"

    async def retrieve(
        self, user_id: str, query: str, options: RetrievalOptions
    ) -> RetrievedData:
        today = self._today()
        subs = [s for s in await self._data.list_subscriptions(user_id) if s.status != "cancelled"]

        rows = []
        for s in subs:
            monthly = monthly_equivalent(s)
            rows.append(
                {
                    "id": s.id,
                    "name": s.name,
                    "amount": round2(s.amount),
                    "billing_cycle": s.billing_cycle,
                    "status": s.status,
                    "category": s.category_name,
                    "monthly_equivalent": round2(monthly),
                    "usage_score": usage_score(s),
                    "next_billing_date": s.next_billing_date.isoformat() if s.next_billing_date else None,
                    "renews_soon": bool(
                        s.next_billing_date
                        and today <= s.next_billing_date <= today + timedelta(days=RENEWAL_WINDOW_DAYS)
                    ),
                }
            )
        rows.sort(key=lambda r: r["monthly_equivalent"], reverse=True)

        aggregations = self._aggregate(rows)
        return self._result(
            options.date_range,
            len(rows),
            rows[: options.limit],
            aggregations,
            self._insights(rows, aggregations),
        )

    @staticmethod
    def _aggregate(rows: list[dict]) -> dict:
        active = [r for r in rows if r["status"] == "active"]
        unused = [r for r in rows if r["usage_score"] < UNUSED_THRESHOLD]
        monthly = sum(r["monthly_equivalent"] for r in active)
        savings = sum(r["monthly_equivalent"] for r in unused)
        return {
            "total_subscriptions": len(rows),
            "active_subscriptions": len(active),
            "total_monthly_spend": round2(monthly),
            "total_yearly_spend": round2(monthly * 12),
            "potentially_unused_count": len(unused),
            "potential_monthly_savings": round2(savings),
            "potential_yearly_savings": round2(savings * 12),
            "average_subscription_cost": round2(monthly / len(active)) if active else 0.0,
            "upcoming_renewals": sum(1 for r in rows if r["renews_soon"]),
        }

    @staticmethod
    def _insights(rows: list[dict], agg: dict) -> list[Insight]:
        if not rows:
            return [info("No active subscriptions found")]

        insights = [
            info(
                f"{agg['active_subscriptions']} active subscriptions costing "
                f"{format_currency(agg['total_monthly_spend'])}/month "
                f"({format_currency(agg['total_yearly_spend'])}/year)"
            )
        ]
        if agg["potentially_unused_count"]:
            names = ", ".join(r["name"] for r in rows if r["usage_score"] < UNUSED_THRESHOLD)
            insights.append(
                warning(
                    f"Possibly unused: {names}. Cancelling could save "
                    f"{format_currency(agg['potential_yearly_savings'])}/year"
                )
            )
        if agg["upcoming_renewals"]:
            insights.append(info(f"{agg['upcoming_renewals']} subscription(s) renew within 7 days"))
        monthly_billed = [r for r in rows if r["billing_cycle"] == "monthly" and r["status"] == "active"]
        if len(monthly_billed) >= 3:
            insights.append(tip("Annual billing often discounts long-running monthly subscriptions"))
        return insights
