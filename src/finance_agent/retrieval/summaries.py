"""Fixed-shape summary sentences, insight caps and recommendation phrasing."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from finance_agent.models.domain import ContextSummaries, InsightLevel, QueryIntent, RetrievedData
from finance_agent.retrieval.common import format_currency

DOMINANT_SOURCE: dict[QueryIntent, str] = {
    QueryIntent.TAX_OPTIMIZATION: "tax",
    QueryIntent.SPENDING_ANALYSIS: "transactions",
    QueryIntent.BUDGET_REVIEW: "budgets",
    QueryIntent.GOAL_PROGRESS: "goals",
    QueryIntent.SUBSCRIPTION_REVIEW: "subscriptions",
    QueryIntent.CREDIT_CARD_ADVICE: "credit_cards",
    QueryIntent.INCOME_ANALYSIS: "income",
    QueryIntent.FORECAST_REVIEW: "forecasts",
    QueryIntent.COMPARISON: "transactions",
    QueryIntent.ANOMALY_DETECTION: "transactions",
    QueryIntent.GENERAL_ADVICE: "transactions",
}

RECOMMENDATION_PREFIX = {
    InsightLevel.CRITICAL: "Action needed: ",
    InsightLevel.WARNING: "Consider: ",
}


def _tax(d: RetrievedData) -> str:
    a = d.aggregations
    balance = a.get("projected_refund_or_owed", 0)
    outcome = "Projected refund" if balance >= 0 else "Projected amount owed"
    return (
        f"Tax year: YA {a.get('tax_year')}. Annual income: {format_currency(a.get('annual_income', 0))}. "
        f"Reliefs claimed: {format_currency(a.get('total_reliefs_claimed', 0))}. "
        f"Tax bracket: {a.get('estimated_tax_bracket', 0):g}%. "
        f"{outcome}: {format_currency(abs(balance))}. "
        f"Potential additional savings: {format_currency(a.get('potential_additional_savings', 0))}."
    )


def _transactions(d: RetrievedData) -> str:
    a = d.aggregations
    return (
        f"Period: {d.date_range.label}. Total expenses: {format_currency(a.get('total_expenses', 0))}. "
        f"Total income: {format_currency(a.get('total_income', 0))}. "
        f"Net cash flow: {format_currency(a.get('net_cash_flow', 0))}. "
        f"Trend: {a.get('expenses_trend', 'stable')}. "
        f"Change from last period: {a.get('percent_change_from_last_period', 0):+.1f}%."
    )


def _budgets(d: RetrievedData) -> str:
    a = d.aggregations
    return (
        f"Total budget: {format_currency(a.get('total_budget', 0))}. "
        f"Spent: {format_currency(a.get('total_spent', 0))} ({a.get('overall_utilization', 0):.1f}%). "
        f"Over budget: {a.get('over_budget_count', 0)}, approaching limit: {a.get('warning_count', 0)}, "
        f"healthy: {a.get('healthy_count', 0)}."
    )


def _goals(d: RetrievedData) -> str:
    a = d.aggregations
    return (
        f"Goal progress: {a.get('overall_progress', 0):.1f}% "
        f"({format_currency(a.get('total_current_amount', 0))} of {format_currency(a.get('total_target_amount', 0))}). "
        f"Active: {a.get('active_goals', 0)}, completed: {a.get('completed_goals', 0)}, "
        f"behind schedule: {a.get('behind_goals', 0)}."
    )


def _subscriptions(d: RetrievedData) -> str:
    a = d.aggregations
    return (
        f"Active subscriptions: {a.get('active_subscriptions', 0)} costing "
        f"{format_currency(a.get('total_monthly_spend', 0))}/month "
        f"({format_currency(a.get('total_yearly_spend', 0))}/year). "
        f"Potential savings: {format_currency(a.get('potential_monthly_savings', 0))}/month."
    )


def _credit_cards(d: RetrievedData) -> str:
    a = d.aggregations
    return (
        f"Credit cards: {a.get('total_cards', 0)}. Utilization: {a.get('overall_utilization', 0):.1f}% "
        f"({format_currency(a.get('total_balance', 0))} of {format_currency(a.get('total_credit_limit', 0))}). "
        f"Cards due within 7 days: {a.get('cards_near_due', 0)}."
    )


def _income(d: RetrievedData) -> str:
    a = d.aggregations
    return (
        f"Income this period: {format_currency(a.get('total_income', 0))}. "
        f"Average monthly income: {format_currency(a.get('avg_monthly_income', 0))}. "
        f"Savings rate: {a.get('savings_rate', 0):.1f}%. Stability: {a.get('income_stability', 'stable')}."
    )


def _forecasts(d: RetrievedData) -> str:
    a = d.aggregations
    return (
        f"Current month projection: {format_currency(a.get('current_month_projection', 0))}. "
        f"Next month forecast: {format_currency(a.get('next_month_forecast', 0))}. "
        f"Trend: {a.get('overall_trend', 'stable')}."
    )


SUMMARY_RENDERERS: dict[str, Callable[[RetrievedData], str]] = {
    "tax": _tax,
    "transactions": _transactions,
    "budgets": _budgets,
    "goals": _goals,
    "subscriptions": _subscriptions,
    "credit_cards": _credit_cards,
    "income": _income,
    "forecasts": _forecasts,
}


def financial_summary(intent: QueryIntent, results: Sequence[RetrievedData]) -> str:
    """One sentence from the dominant source's aggregations, else from the top source."""
    if not results:
        return ""
    by_source = {r.source: r for r in results}
    dominant = by_source.get(DOMINANT_SOURCE[intent]) or by_source.get("transactions") or results[0]
    renderer = SUMMARY_RENDERERS.get(dominant.source)
    return renderer(dominant) if renderer else ""


def generate_summaries(
    intent: QueryIntent,
    results: Sequence[RetrievedData],
    max_insights: int = 10,
    max_recommendations: int = 5,
) -> ContextSummaries:
    insights = [i for r in results for i in r.insights]
    recommendations = [
        RECOMMENDATION_PREFIX[i.level] + i.text for i in insights if i.level in RECOMMENDATION_PREFIX
    ]
    return ContextSummaries(
        financial=financial_summary(intent, results),
        insights=[i.text for i in insights[:max_insights]],
        recommendations=recommendations[:max_recommendations],
    )
