"""Intent-driven retriever selection and per-retriever record limits."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

from finance_agent.models.domain import PERMISSION_KEYS, RETRIEVER_KEYS, QueryIntent

# intent -> retriever -> priority (higher runs first and survives trimming longer)
RETRIEVER_PRIORITIES: dict[QueryIntent, dict[str, int]] = {
    QueryIntent.TAX_OPTIMIZATION: {"tax": 10, "transactions": 8, "income": 7, "budgets": 3, "goals": 2},
    QueryIntent.SPENDING_ANALYSIS: {
        "transactions": 10, "budgets": 8, "forecasts": 6, "subscriptions": 5, "credit_cards": 4,
    },
    QueryIntent.BUDGET_REVIEW: {"budgets": 10, "transactions": 9, "goals": 5, "forecasts": 4},
    QueryIntent.GOAL_PROGRESS: {"goals": 10, "transactions": 7, "income": 6, "budgets": 5},
    QueryIntent.SUBSCRIPTION_REVIEW: {"subscriptions": 10, "transactions": 7, "budgets": 5},
    QueryIntent.CREDIT_CARD_ADVICE: {"credit_cards": 10, "transactions": 8, "budgets": 4},
    QueryIntent.INCOME_ANALYSIS: {"income": 10, "transactions": 7, "tax": 6, "goals": 4},
    QueryIntent.FORECAST_REVIEW: {"forecasts": 10, "transactions": 8, "budgets": 7, "subscriptions": 5},
    QueryIntent.COMPARISON: {"transactions": 10, "budgets": 8, "income": 7, "forecasts": 6},
    QueryIntent.ANOMALY_DETECTION: {"transactions": 10, "forecasts": 8, "credit_cards": 5},
    QueryIntent.GENERAL_ADVICE: {
        "transactions": 8, "budgets": 7, "goals": 6, "income": 5,
        "subscriptions": 4, "credit_cards": 3, "tax": 3, "forecasts": 3,
    },
}

MAX_RETRIEVERS = 5


def calculate_limit(retriever_count: int) -> int:
    """Per-retriever record limit so that total volume stays roughly constant."""
    return math.floor(100 / max(1, retriever_count / 2))


def priority_of(intent: QueryIntent, source: str) -> int:
    return RETRIEVER_PRIORITIES.get(intent, {}).get(source, 0)


class RetrieverSelector:
    def __init__(self, max_retrievers: int = MAX_RETRIEVERS) -> None:
        self._max = max_retrievers

    def select(
        self,
        intent: QueryIntent,
        suggested: Sequence[str] = (),
        data_access: Mapping[str, bool] | None = None,
    ) -> list[str]:
        """Suggested retrievers first, then the intent table by descending priority.

        A retriever is removed only when its permission flag is explicitly False.
        """
        priorities = RETRIEVER_PRIORITIES.get(intent, {})
        ordered: list[str] = []
        for key in suggested:
            if key in RETRIEVER_KEYS and key not in ordered:
                ordered.append(key)
        for key, _ in sorted(priorities.items(), key=lambda kv: kv[1], reverse=True):
            if key not in ordered:
                ordered.append(key)

        access = data_access or {}
        allowed = [k for k in ordered if access.get(PERMISSION_KEYS[k]) is not False]
        return allowed[: self._max]
