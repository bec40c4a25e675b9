"""SQLite-backed financial records read by the retrievers."""

from __future__ import annotations

from datetime import date

import aiosqlite

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
from finance_agent.storage.migrations import initialize_finance_db


def _date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


class SQLiteFinanceStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_finance_db(self._db_path)

    # --- reads ---

    async def list_categories(self, user_id: str) -> list[Category]:
        rows = await self._fetch(
            "SELECT * FROM categories WHERE user_id = ? OR user_id IS NULL ORDER BY name",
            (user_id,),
        )
        return [
            Category(
                id=row["id"],
                name=row["name"],
                type=row["type"],
                is_sensitive=bool(row["is_sensitive"]),
            )
            for row in rows
        ]

    async def list_transactions(
        self,
        user_id: str,
        start: date,
        end: date,
        limit: int | None = None,
        category_ids: tuple[str, ...] = (),
        min_amount: float | None = None,
        max_amount: float | None = None,
        type: str | None = None,
    ) -> list[Transaction]:
        sql = (
            "SELECT t.*, c.name AS category_name FROM transactions t "
            "LEFT JOIN categories c ON c.id = t.category_id "
            "WHERE t.user_id = ? AND t.date >= ? AND t.date <= ?"
        )
        params: list = [user_id, start.isoformat(), end.isoformat()]
        if category_ids:
            sql += f" AND t.category_id IN ({','.join('?' for _ in category_ids)})"
            params.extend(category_ids)
        if min_amount is not None:
            sql += " AND t.amount >= ?"
            params.append(min_amount)
        if max_amount is not None:
            sql += " AND t.amount <= ?"
            params.append(max_amount)
        if type is not None:
            sql += " AND t.type = ?"
            params.append(type)
        sql += " ORDER BY t.date DESC, t.id"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        rows = await self._fetch(sql, params)
        return [
            Transaction(
                id=row["id"],
                user_id=row["user_id"],
                amount=row["amount"],
                type=row["type"],
                date=date.fromisoformat(row["date"]),
                description=row["description"],
                vendor=row["vendor"],
                category_id=row["category_id"],
                category_name=row["category_name"],
                payment_method=row["payment_method"],
                credit_card_id=row["credit_card_id"],
                is_tax_deductible=bool(row["is_tax_deductible"]),
                tax_category=row["tax_category"],
            )
            for row in rows
        ]

    async def list_budgets(self, user_id: str) -> list[Budget]:
        rows = await self._fetch("SELECT * FROM budgets WHERE user_id = ?", (user_id,))
        return [
            Budget(
                id=row["id"],
                user_id=row["user_id"],
                name=row["name"],
                amount=row["amount"],
                period=row["period"],
                category_id=row["category_id"],
                alert_threshold=row["alert_threshold"],
                start_date=_date(row["start_date"]),
                end_date=_date(row["end_date"]),
                is_active=bool(row["is_active"]),
            )
            for row in rows
        ]

    async def list_goals(self, user_id: str) -> list[Goal]:
        rows = await self._fetch(
            "SELECT * FROM goals WHERE user_id = ? ORDER BY target_date", (user_id,)
        )
        return [
            Goal(
                id=row["id"],
                user_id=row["user_id"],
                name=row["name"],
                target_amount=row["target_amount"],
                current_amount=row["current_amount"],
                start_date=_date(row["start_date"]),
                target_date=_date(row["target_date"]),
                priority=row["priority"],
                is_completed=bool(row["is_completed"]),
            )
            for row in rows
        ]

    async def list_subscriptions(self, user_id: str) -> list[Subscription]:
        rows = await self._fetch("SELECT * FROM subscriptions WHERE user_id = ?", (user_id,))
        return [
            Subscription(
                id=row["id"],
                user_id=row["user_id"],
                name=row["name"],
                amount=row["amount"],
                billing_cycle=row["billing_cycle"],
                status=row["status"],
                tier=row["tier"],
                next_billing_date=_date(row["next_billing_date"]),
                category_name=row["category_name"],
            )
            for row in rows
        ]

    async def list_credit_cards(self, user_id: str) -> list[CreditCard]:
        rows = await self._fetch("SELECT * FROM credit_cards WHERE user_id = ?", (user_id,))
        return [
            CreditCard(
                id=row["id"],
                user_id=row["user_id"],
                name=row["name"],
                bank=row["bank"],
                credit_limit=row["credit_limit"],
                current_balance=row["current_balance"],
                statement_day=row["statement_day"],
                due_day=row["due_day"],
                is_active=bool(row["is_active"]),
            )
            for row in rows
        ]

    async def list_tax_deductions(self, user_id: str, year: int) -> list[TaxDeduction]:
        rows = await self._fetch(
            "SELECT * FROM tax_deductions WHERE user_id = ? AND year = ?", (user_id, year)
        )
        return [
            TaxDeduction(
                id=row["id"],
                user_id=row["user_id"],
                year=row["year"],
                relief_code=row["relief_code"],
                amount=row["amount"],
                description=row["description"],
            )
            for row in rows
        ]

    async def get_tax_profile(self, user_id: str) -> TaxProfile | None:
        rows = await self._fetch("SELECT * FROM tax_profiles WHERE user_id = ?", (user_id,))
        if not rows:
            return None
        row = rows[0]
        return TaxProfile(
            user_id=row["user_id"],
            marital_status=row["marital_status"],
            employment_type=row["employment_type"],
            base_salary=row["base_salary"],
            epf_contribution=row["epf_contribution"],
            socso_contribution=row["socso_contribution"],
            pcb_paid=row["pcb_paid"],
        )

    async def count_transactions(self) -> int:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute("SELECT COUNT(*) FROM transactions") as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    # --- inserts used by seeding and tests ---

    async def add_category(self, category: Category, user_id: str | None = None) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO categories (id, user_id, name, type, is_sensitive) "
            "VALUES (?, ?, ?, ?, ?)",
            (category.id, user_id, category.name, category.type, int(category.is_sensitive)),
        )

    async def add_transactions(self, transactions: list[Transaction]) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.executemany(
                "INSERT OR REPLACE INTO transactions (id, user_id, amount, type, date, description, "
                "vendor, category_id, payment_method, credit_card_id, is_tax_deductible, tax_category) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        t.id,
                        t.user_id,
                        t.amount,
                        t.type,
                        t.date.isoformat(),
                        t.description,
                        t.vendor,
                        t.category_id,
                        t.payment_method,
                        t.credit_card_id,
                        int(t.is_tax_deductible),
                        t.tax_category,
                    )
                    for t in transactions
                ],
            )
            await db.commit()

    async def add_budget(self, budget: Budget) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO budgets (id, user_id, name, amount, period, category_id, "
            "alert_threshold, start_date, end_date, is_active) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                budget.id,
                budget.user_id,
                budget.name,
                budget.amount,
                budget.period,
                budget.category_id,
                budget.alert_threshold,
                _iso(budget.start_date),
                _iso(budget.end_date),
                int(budget.is_active),
            ),
        )

    async def add_goal(self, goal: Goal) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO goals (id, user_id, name, target_amount, current_amount, "
            "start_date, target_date, priority, is_completed) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                goal.id,
                goal.user_id,
                goal.name,
                goal.target_amount,
                goal.current_amount,
                _iso(goal.start_date),
                _iso(goal.target_date),
                goal.priority,
                int(goal.is_completed),
            ),
        )

    async def add_subscription(self, sub: Subscription) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO subscriptions (id, user_id, name, amount, billing_cycle, "
            "status, tier, next_billing_date, category_name) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                sub.id,
                sub.user_id,
                sub.name,
                sub.amount,
                sub.billing_cycle,
                sub.status,
                sub.tier,
                _iso(sub.next_billing_date),
                sub.category_name,
            ),
        )

    async def add_credit_card(self, card: CreditCard) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO credit_cards (id, user_id, name, bank, credit_limit, "
            "current_balance, statement_day, due_day, is_active) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                card.id,
                card.user_id,
                card.name,
                card.bank,
                card.credit_limit,
                card.current_balance,
                card.statement_day,
                card.due_day,
                int(card.is_active),
            ),
        )

    async def add_tax_deduction(self, deduction: TaxDeduction) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO tax_deductions (id, user_id, year, relief_code, amount, description) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                deduction.id,
                deduction.user_id,
                deduction.year,
                deduction.relief_code,
                deduction.amount,
                deduction.description,
            ),
        )

    async def set_tax_profile(self, profile: TaxProfile) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO tax_profiles (user_id, marital_status, employment_type, "
            "base_salary, epf_contribution, socso_contribution, pcb_paid) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                profile.user_id,
                profile.marital_status,
                profile.employment_type,
                profile.base_salary,
                profile.epf_contribution,
                profile.socso_contribution,
                profile.pcb_paid,
            ),
        )

    async def _fetch(self, sql: str, params) -> list[aiosqlite.Row]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(sql, params) as cursor:
                return list(await cursor.fetchall())

    async def _execute(self, sql: str, params) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(sql, params)
            await db.commit()
