"""Seed a demo user's financial records and AI settings for development."""

from __future__ import annotations

import asyncio
import random
import sys
from datetime import date, timedelta
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from finance_agent.api.auth import create_access_token
from finance_agent.config.settings import Settings
from finance_agent.models.domain import AISettings
from finance_agent.models.finance import (
    Budget,
    Category,
    CreditCard,
    Goal,
    Subscription,
    TaxDeduction,
    TaxProfile,
    Transaction,
)
from finance_agent.security import encrypt_api_key
from finance_agent.storage.sqlite_finance_store import SQLiteFinanceStore
from finance_agent.storage.sqlite_settings_store import SQLiteAISettingsStore

USER_ID = "demo-user"

CATEGORIES = [
    Category("cat-food", "Food & Dining"),
    Category("cat-groceries", "Groceries"),
    Category("cat-transport", "Transportation"),
    Category("cat-utilities", "Utilities"),
    Category("cat-shopping", "Shopping"),
    Category("cat-entertainment", "Entertainment"),
    Category("cat-health", "Healthcare", is_sensitive=True),
    Category("cat-education", "Education"),
    Category("cat-salary", "Salary", type="income"),
    Category("cat-freelance", "Freelance", type="income"),
]

# category id -> (vendors, low, high, visits per month)
SPENDING_PATTERNS = {
    "cat-food": (["Nasi Kandar Pelita", "Starbucks", "McDonald's", "Old Town White Coffee"], 12, 60, 14),
    "cat-groceries": (["Jaya Grocer", "Lotus's", "AEON"], 60, 250, 4),
    "cat-transport": (["Grab", "Shell", "Petronas", "Touch 'n Go"], 10, 120, 8),
    "cat-utilities": (["TNB", "Air Selangor", "Unifi"], 80, 250, 3),
    "cat-shopping": (["Shopee", "Lazada", "Uniqlo"], 30, 400, 3),
    "cat-entertainment": (["GSC Cinemas", "Steam"], 20, 90, 2),
    "cat-health": (["Guardian", "Klinik Mediviron"], 25, 180, 1),
    "cat-education": (["MPH Bookstores", "Coursera"], 40, 300, 1),
}

PAYMENT_METHODS = ["credit_card", "debit_card", "ewallet", "cash"]


def month_starts(today: date, months: int) -> list[date]:
    starts = []
    year, month = today.year, today.month
    for _ in range(months):
        starts.append(date(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


def build_transactions(today: date, rng: random.Random) -> list[Transaction]:
    transactions: list[Transaction] = []
    counter = 0
    for start in month_starts(today, 13):
        days_in_month = ((start.replace(day=28) + timedelta(days=4)).replace(day=1) - start).days
        is_current = (start.year, start.month) == (today.year, today.month)
        last_day = today.day if is_current else days_in_month

        counter += 1
        transactions.append(
            Transaction(
                id=f"txn-{counter}",
                user_id=USER_ID,
                amount=6500.0,
                type="income",
                date=start.replace(day=min(25, last_day)),
                description="Monthly salary",
                vendor="Acme Sdn Bhd",
                category_id="cat-salary",
            )
        )
        if rng.random() < 0.4:
            counter += 1
            transactions.append(
                Transaction(
                    id=f"txn-{counter}",
                    user_id=USER_ID,
                    amount=round(rng.uniform(500, 2000), 2),
                    type="income",
                    date=start.replace(day=rng.randint(1, last_day)),
                    description="Freelance project",
                    vendor="Upwork",
                    category_id="cat-freelance",
                )
            )

        for category_id, (vendors, low, high, visits) in SPENDING_PATTERNS.items():
            for _ in range(visits):
                counter += 1
                method = rng.choice(PAYMENT_METHODS)
                transactions.append(
                    Transaction(
                        id=f"txn-{counter}",
                        user_id=USER_ID,
                        amount=round(rng.uniform(low, high), 2),
                        type="expense",
                        date=start.replace(day=rng.randint(1, last_day)),
                        description=f"{category_id.removeprefix('cat-').title()} purchase",
                        vendor=rng.choice(vendors),
                        category_id=category_id,
                        payment_method=method,
                        credit_card_id="card-maybank" if method == "credit_card" else None,
                        is_tax_deductible=category_id in ("cat-health", "cat-education"),
                        tax_category={"cat-health": "MEDICAL_SELF", "cat-education": "EDUCATION_SELF"}.get(
                            category_id
                        ),
                    )
                )
    return transactions


async def main():
    settings = Settings()
    today = date.today()
    rng = random.Random(42)

    Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)

    store = SQLiteFinanceStore(settings.sqlite_db_path)
    await store.initialize()
    settings_store = SQLiteAISettingsStore(settings.sqlite_db_path)
    await settings_store.initialize()

    for category in CATEGORIES:
        await store.add_category(category)

    transactions = build_transactions(today, rng)
    await store.add_transactions(transactions)

    for budget in [
        Budget("budget-food", USER_ID, "Food & Dining", 600.0, category_id="cat-food"),
        Budget("budget-transport", USER_ID, "Transportation", 400.0, category_id="cat-transport"),
        Budget("budget-shopping", USER_ID, "Shopping", 500.0, category_id="cat-shopping", alert_threshold=75),
        Budget("budget-total", USER_ID, "Monthly Spending", 4000.0),
    ]:
        await store.add_budget(budget)

    for goal in [
        Goal(
            "goal-emergency",
            USER_ID,
            "Emergency Fund",
            20000.0,
            current_amount=8500.0,
            start_date=today - timedelta(days=180),
            target_date=today + timedelta(days=365),
            priority="high",
        ),
        Goal(
            "goal-travel",
            USER_ID,
            "Japan Trip",
            8000.0,
            current_amount=1200.0,
            start_date=today - timedelta(days=120),
            target_date=today + timedelta(days=150),
        ),
    ]:
        await store.add_goal(goal)

    for sub in [
        Subscription("sub-netflix", USER_ID, "Netflix", 55.0, tier="premium", category_name="Entertainment",
                     next_billing_date=today + timedelta(days=5)),
        Subscription("sub-spotify", USER_ID, "Spotify", 15.9, tier="family", category_name="Entertainment",
                     next_billing_date=today + timedelta(days=12)),
        Subscription("sub-gym", USER_ID, "Anytime Fitness", 159.0, status="paused", category_name="Health"),
        Subscription("sub-icloud", USER_ID, "iCloud+", 3.9, tier="basic", category_name="Utilities",
                     next_billing_date=today + timedelta(days=20)),
        Subscription("sub-adobe", USER_ID, "Adobe Creative Cloud", 1068.0, billing_cycle="yearly",
                     category_name="Software", next_billing_date=today + timedelta(days=90)),
    ]:
        await store.add_subscription(sub)

    await store.add_credit_card(
        CreditCard("card-maybank", USER_ID, "Maybank 2 Platinum", "Maybank", 15000.0, current_balance=3200.0,
                   statement_day=5, due_day=25)
    )
    await store.add_credit_card(
        CreditCard("card-cimb", USER_ID, "CIMB Petronas Visa", "CIMB", 8000.0, current_balance=6100.0,
                   statement_day=12, due_day=2)
    )

    await store.set_tax_profile(
        TaxProfile(USER_ID, marital_status="single", base_salary=78000.0, epf_contribution=8580.0,
                   socso_contribution=296.0, pcb_paid=3900.0)
    )
    for i, (code, amount) in enumerate([("LIFESTYLE", 1800.0), ("INSURANCE_LIFE", 2400.0), ("PRS", 1000.0)]):
        await store.add_tax_deduction(TaxDeduction(f"ded-{i}", USER_ID, today.year, code, amount))

    await settings_store.save(
        AISettings(
            user_id=USER_ID,
            ai_enabled=bool(settings.ai_encryption_secret),
            provider="openai",
            api_key_encrypted=(
                encrypt_api_key("sk-replace-me-with-a-real-key", settings.ai_encryption_secret)
                if settings.ai_encryption_secret
                else None
            ),
            model_name="gpt-4o-mini",
        )
    )

    print(f"Seeded {len(transactions)} transactions for {USER_ID}")
    print(f"Bearer token: {create_access_token(USER_ID, settings)}")


if __name__ == "__main__":
    asyncio.run(main())
