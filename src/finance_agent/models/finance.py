"""Financial records read by the retrievers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass
class Category:
    id: str
    name: str
    type: str = "expense"  # "expense" or "income"
    is_sensitive: bool = False


@dataclass
class Transaction:
    id: str
    user_id: str
    amount: float
    type: str  # "expense" or "income"
    date: date
    description: str = ""
    vendor: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    payment_method: str | None = None
    credit_card_id: str | None = None
    is_tax_deductible: bool = False
    tax_category: str | None = None

    @property
    def is_expense(self) -> bool:
        return self.type == "expense"


@dataclass
class Budget:
    id: str
    user_id: str
    name: str
    amount: float
    period: str = "monthly"
    category_id: str | None = None
    alert_threshold: float = 80.0
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool = True


@dataclass
class Goal:
    id: str
    user_id: str
    name: str
    target_amount: float
    current_amount: float = 0.0
    start_date: date | None = None
    target_date: date | None = None
    priority: str = "medium"
    is_completed: bool = False


@dataclass
class Subscription:
    id: str
    user_id: str
    name: str
    amount: float
    billing_cycle: str = "monthly"  # weekly, monthly, quarterly, yearly
    status: str = "active"
    tier: str | None = None
    next_billing_date: date | None = None
    category_name: str | None = None


@dataclass
class CreditCard:
    id: str
    user_id: str
    name: str
    bank: str
    credit_limit: float
    current_balance: float = 0.0
    statement_day: int = 1
    due_day: int = 20
    is_active: bool = True


@dataclass
class TaxDeduction:
    id: str
    user_id: str
    year: int
    relief_code: str
    amount: float
    description: str = ""


@dataclass
class TaxProfile:
    user_id: str
    marital_status: str = "single"
    employment_type: str = "employed"
    base_salary: float = 0.0
    epf_contribution: float = 0.0
    socso_contribution: float = 0.0
    pcb_paid: float = 0.0
