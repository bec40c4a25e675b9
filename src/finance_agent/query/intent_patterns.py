"""Keyword and phrase tables for intent classification and entity extraction."""

from __future__ import annotations

from finance_agent.models.domain import QueryIntent

# intent -> (keywords, phrases, weight). Keyword hit = 1 x weight, phrase hit = 2 x weight.
INTENT_PATTERNS: dict[QueryIntent, tuple[tuple[str, ...], tuple[str, ...], float]] = {
    QueryIntent.TAX_OPTIMIZATION: (
        (
            "tax", "taxes", "lhdn", "relief", "reliefs", "deduction", "deductions", "pcb",
            "claim", "filing", "refund", "assessment", "ya", "cukai", "pelepasan",
            "rebate", "epf", "kwsp", "socso", "perkeso", "eis", "zakat",
        ),
        (
            "save on tax", "tax savings", "maximize deductions", "tax return", "how much tax",
            "reduce tax", "tax-deductible", "claim relief", "tax bracket", "income tax",
            "annual assessment", "lifestyle relief", "medical relief", "education relief",
        ),
        1.5,
    ),
    QueryIntent.SPENDING_ANALYSIS: (
        (
            "spend", "spending", "spent", "expense", "expenses", "where", "money",
            "category", "breakdown", "pattern", "overspend", "perbelanjaan", "belanja",
            "habis", "duit",
        ),
        (
            "where did", "how much did i spend", "spending too much", "top expenses",
            "biggest expense", "money going", "spending habits", "spending pattern",
            "analyze spending", "review expenses",
        ),
        1.2,
    ),
    QueryIntent.BUDGET_REVIEW: (
        (
            "budget", "budgets", "limit", "allocation", "within", "bajet", "allocate",
            "allowance", "cap", "threshold",
        ),
        (
            "over budget", "under budget", "budget status", "how is my budget",
            "budget utilization", "set budget", "budget vs actual", "staying within budget",
        ),
        1.2,
    ),
    QueryIntent.GOAL_PROGRESS: (
        (
            "goal", "goals", "target", "saving", "savings", "progress", "matlamat",
            "simpanan", "achieve", "reach", "milestone",
        ),
        (
            "on track", "how am i doing", "goal progress", "reach my goal", "savings goal",
            "achieve my", "when will i", "how long until", "target amount", "save for",
        ),
        1.3,
    ),
    QueryIntent.SUBSCRIPTION_REVIEW: (
        (
            "subscription", "subscriptions", "recurring", "cancel", "langganan", "netflix",
            "spotify", "gym", "membership", "memberships",
        ),
        (
            "cancel subscription", "unused subscription", "too many subscriptions",
            "subscription audit", "how much on subscriptions", "recurring payments",
            "wasting money on", "not using",
        ),
        1.3,
    ),
    QueryIntent.CREDIT_CARD_ADVICE: (
        (
            "credit", "card", "cards", "utilization", "due", "balance", "cashback",
            "rewards", "points", "miles", "visa", "mastercard", "amex",
        ),
        (
            "credit card", "best card", "card to use", "credit utilization", "pay off card",
            "credit limit", "which card", "card rewards", "card payment due", "credit score",
        ),
        1.4,
    ),
    QueryIntent.INCOME_ANALYSIS: (
        (
            "income", "salary", "earning", "earnings", "earned", "bonus", "freelance",
            "pendapatan", "gaji", "commission", "revenue", "paycheck",
        ),
        (
            "how much am i earning", "income trend", "salary increase", "total income",
            "income sources", "making enough", "income vs expense", "net income", "gross income",
        ),
        1.2,
    ),
    QueryIntent.FORECAST_REVIEW: (
        (
            "forecast", "predict", "prediction", "future", "projection", "projected",
            "expect", "estimate", "anticipate",
        ),
        (
            "what will i spend", "next month", "next month spending", "projected expenses",
            "how much will", "spending forecast", "predict my", "future spending",
            "end of month", "expecting to spend",
        ),
        1.3,
    ),
    QueryIntent.COMPARISON: (
        (
            "compare", "comparison", "versus", "vs", "difference", "between", "higher",
            "lower", "increase", "decrease",
        ),
        (
            "compared to", "this month vs", "year over year", "month over month",
            "better or worse", "change from",
        ),
        1.1,
    ),
    QueryIntent.ANOMALY_DETECTION: (
        (
            "unusual", "strange", "unexpected", "suspicious", "fraud", "wrong", "error",
            "mistake", "duplicate", "weird", "odd",
        ),
        (
            "something wrong", "doesn't look right", "unusual spending", "strange transaction",
            "didn't recognize", "unexpected charge", "fraud detection", "suspicious activity",
        ),
        1.4,
    ),
    QueryIntent.GENERAL_ADVICE: (
        (
            "advice", "help", "suggest", "recommend", "improve", "tips", "strategy", "plan",
            "optimize", "should",
        ),
        (
            "what should i", "how can i", "any suggestions", "help me", "give me advice",
            "what do you recommend", "best way to", "how to improve", "financial advice",
        ),
        1.0,
    ),
}

SUGGESTED_RETRIEVERS: dict[QueryIntent, tuple[str, ...]] = {
    QueryIntent.TAX_OPTIMIZATION: ("tax", "transactions", "income"),
    QueryIntent.SPENDING_ANALYSIS: ("transactions", "budgets", "forecasts"),
    QueryIntent.BUDGET_REVIEW: ("budgets", "transactions"),
    QueryIntent.GOAL_PROGRESS: ("goals", "transactions", "income"),
    QueryIntent.SUBSCRIPTION_REVIEW: ("subscriptions", "transactions"),
    QueryIntent.CREDIT_CARD_ADVICE: ("credit_cards", "transactions"),
    QueryIntent.INCOME_ANALYSIS: ("income", "transactions", "tax"),
    QueryIntent.FORECAST_REVIEW: ("forecasts", "transactions", "budgets"),
    QueryIntent.COMPARISON: ("transactions", "budgets", "income"),
    QueryIntent.ANOMALY_DETECTION: ("transactions", "forecasts"),
    QueryIntent.GENERAL_ADVICE: ("transactions", "budgets", "goals", "income"),
}

# Relative period phrases, checked in order; first hit wins
DATE_PATTERNS: tuple[tuple[str, str], ...] = (
    ("today", r"\b(today|hari ini)\b"),
    ("yesterday", r"\b(yesterday|semalam)\b"),
    ("this_week", r"\b(this week|minggu ini)\b"),
    ("last_week", r"\b(last week|minggu lepas|previous week)\b"),
    ("this_month", r"\b(this month|bulan ini|current month)\b"),
    ("last_month", r"\b(last month|bulan lepas|previous month)\b"),
    ("this_quarter", r"\b(this quarter|current quarter)\b"),
    ("last_30_days", r"\b(last|past) 30 days\b"),
    ("last_90_days", r"\b((last|past) 90 days|(last|past) (3|three) months)\b"),
    ("ytd", r"\b(ytd|year to date|year-to-date)\b"),
    ("this_year", r"\b(this year|tahun ini|current year)\b"),
    ("last_year", r"\b(last year|tahun lepas|previous year)\b"),
)

MONTH_NAMES: tuple[tuple[str, ...], ...] = (
    ("january", "januari", "jan"),
    ("february", "februari", "feb"),
    ("march", "mac", "mar"),
    ("april", "apr"),
    ("may", "mei"),
    ("june", "jun"),
    ("july", "julai", "jul"),
    ("august", "ogos", "aug"),
    ("september", "sept", "sep"),
    ("october", "oktober", "oct"),
    ("november", "nov"),
    ("december", "disember", "dec"),
)

# Alias pattern -> canonical category name
CATEGORY_ALIASES: tuple[tuple[str, str], ...] = (
    (r"\b(food|makan|f&b|restaurants?|groceries|grocery|dining)\b", "Food & Dining"),
    (r"\b(transport|transportation|petrol|fuel|grab|mrt|lrt|bus|toll|parking)\b", "Transport"),
    (r"\b(shopping|retail|clothes|clothing)\b", "Shopping"),
    (r"\b(entertainment|movies?|gaming|games)\b", "Entertainment"),
    (r"\b(utilities|electricity|water bill|internet|phone bill|telco)\b", "Utilities"),
    (r"\b(health|healthcare|medical|doctor|hospital|pharmacy|medicine)\b", "Healthcare"),
    (r"\b(education|course|tuition|books|school|university)\b", "Education"),
    (r"\b(insurance|takaful)\b", "Insurance"),
    (r"\b(rent|rental|housing|mortgage)\b", "Housing"),
    (r"\b(travel|vacation|holiday|hotel|flights?)\b", "Travel"),
)

TIMEFRAME_PATTERNS: tuple[tuple[str, str], ...] = (
    ("day", r"\b(day|daily|today)\b"),
    ("week", r"\b(week|weekly)\b"),
    ("month", r"\b(month|monthly)\b"),
    ("quarter", r"\b(quarter|quarterly)\b"),
    ("year", r"\b(year|yearly|annual|annually)\b"),
)

COMPARISON_PATTERN = r"\b(compare|compared to|versus|vs|difference)\b"

FOLLOW_UP_PREFIXES = ("what about", "how about", "and ", "what if", "also", "same for", "and what")
