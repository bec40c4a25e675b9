"""Deterministic answer built from assembled context when no model answer is available.

Every figure in the output comes from ``summaries`` or a source's
``aggregations``; nothing is computed or invented here.
"""

from __future__ import annotations

from finance_agent.models.domain import AssembledContext, QueryIntent
from finance_agent.retrieval.common import format_currency

FALLBACK_FOOTER = (
    "*This is an automated summary. For more detailed analysis, please try again "
    "or rephrase your question.*"
)

# intent -> (source, heading, [(label, aggregation key, kind)])
INTENT_SECTIONS: dict[QueryIntent, tuple[str, str, list[tuple[str, str, str]]]] = {
    QueryIntent.SPENDING_ANALYSIS: (
        "transactions",
        "Spending Breakdown",
        [
            ("Total Expenses", "total_expenses", "money"),
            ("Total Income", "total_income", "money"),
            ("Net Cash Flow", "net_cash_flow", "money"),
            ("Top Categories", "expenses_by_category", "keys"),
        ],
    ),
    QueryIntent.BUDGET_REVIEW: (
        "budgets",
        "Budget Status",
        [
            ("Total Budget", "total_budget", "money"),
            ("Total Spent", "total_spent", "money"),
            ("Utilization", "overall_utilization", "percent"),
            ("Over Budget", "over_budget_count", "count"),
        ],
    ),
    QueryIntent.GOAL_PROGRESS: (
        "goals",
        "Goal Progress",
        [
            ("Active Goals", "active_goals", "count"),
            ("Total Saved", "total_current_amount", "money"),
            ("Overall Progress", "overall_progress", "percent"),
            ("Required Monthly Savings", "total_required_monthly_savings", "money"),
        ],
    ),
    QueryIntent.TAX_OPTIMIZATION: (
        "tax",
        "Tax Summary",
        [
            ("Year of Assessment", "tax_year", "count"),
            ("Reliefs Claimed", "total_reliefs_claimed", "money"),
            ("Estimated Tax Payable", "estimated_tax_payable", "money"),
            ("Potential Savings", "potential_additional_savings", "money"),
        ],
    ),
    QueryIntent.SUBSCRIPTION_REVIEW: (
        "subscriptions",
        "Subscriptions",
        [
            ("Active Subscriptions", "active_subscriptions", "count"),
            ("Monthly Spend", "total_monthly_spend", "money"),
            ("Potentially Unused", "potentially_unused_count", "count"),
        ],
    ),
    QueryIntent.CREDIT_CARD_ADVICE: (
        "credit_cards",
        "Credit Cards",
        [
            ("Total Balance", "total_balance", "money"),
            ("Available Credit", "total_available_credit", "money"),
            ("Utilization", "overall_utilization", "percent"),
        ],
    ),
}


def _render_value(value, kind: str) -> str:
    if value is None:
        return "N/A"
    if kind == "money":
        return format_currency(value)
    if kind == "percent":
        return f"{value:.1f}%"
    if kind == "keys":
        return ", ".join(list(value)[:3]) or "N/A"
    return str(value)


class FallbackGenerator:
    def __init__(self, max_insights: int = 5, max_recommendations: int = 3) -> None:
        self._max_insights = max_insights
        self._max_recommendations = max_recommendations

    def generate(self, context: AssembledContext) -> str:
        summaries = context.summaries
        label = context.date_range.label or "this period"
        parts = [
            "## Financial Summary",
            f"*Based on {context.total_records} records from {label}*",
        ]
        if summaries.financial:
            parts.append(f"### Overview\n{summaries.financial}")
        if summaries.insights:
            lines = "\n".join(f"- {i}" for i in summaries.insights[: self._max_insights])
            parts.append(f"### Key Insights\n{lines}")
        if summaries.recommendations:
            lines = "\n".join(f"- {r}" for r in summaries.recommendations[: self._max_recommendations])
            parts.append(f"### Recommendations\n{lines}")

        parts.append(self._intent_section(context))
        parts.append(f"---\n{FALLBACK_FOOTER}")
        return "\n\n".join(parts)

    def _intent_section(self, context: AssembledContext) -> str:
        section = INTENT_SECTIONS.get(context.intent)
        source = context.source(section[0]) if section else None
        if section is None or source is None:
            return (
                "### Your Financial Data\n"
                f"We found {context.total_records} relevant records for your query."
            )
        _, heading, fields = section
        lines = [
            f"- **{label}**: {_render_value(source.aggregations.get(key), kind)}"
            for label, key, kind in fields
        ]
        return f"### {heading}\n" + "\n".join(lines)
