"""Idempotent database schema creation."""

from __future__ import annotations

import aiosqlite

CATEGORIES_TABLE = """
CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    user_id TEXT,
    name TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'expense',
    is_sensitive INTEGER NOT NULL DEFAULT 0
)
"""

TRANSACTIONS_TABLE = """
CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    amount REAL NOT NULL,
    type TEXT NOT NULL,
    date TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    vendor TEXT,
    category_id TEXT,
    payment_method TEXT,
    credit_card_id TEXT,
    is_tax_deductible INTEGER NOT NULL DEFAULT 0,
    tax_category TEXT,
    FOREIGN KEY (category_id) REFERENCES categories(id)
)
"""

TRANSACTIONS_USER_DATE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_transactions_user_date ON transactions(user_id, date)
"""

BUDGETS_TABLE = """
CREATE TABLE IF NOT EXISTS budgets (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    amount REAL NOT NULL,
    period TEXT NOT NULL DEFAULT 'monthly',
    category_id TEXT,
    alert_threshold REAL NOT NULL DEFAULT 80,
    start_date TEXT,
    end_date TEXT,
    is_active INTEGER NOT NULL DEFAULT 1
)
"""

GOALS_TABLE = """
CREATE TABLE IF NOT EXISTS goals (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    target_amount REAL NOT NULL,
    current_amount REAL NOT NULL DEFAULT 0,
    start_date TEXT,
    target_date TEXT,
    priority TEXT NOT NULL DEFAULT 'medium',
    is_completed INTEGER NOT NULL DEFAULT 0
)
"""

SUBSCRIPTIONS_TABLE = """
CREATE TABLE IF NOT EXISTS subscriptions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    amount REAL NOT NULL,
    billing_cycle TEXT NOT NULL DEFAULT 'monthly',
    status TEXT NOT NULL DEFAULT 'active',
    tier TEXT,
    next_billing_date TEXT,
    category_name TEXT
)
"""

CREDIT_CARDS_TABLE = """
CREATE TABLE IF NOT EXISTS credit_cards (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    bank TEXT NOT NULL,
    credit_limit REAL NOT NULL,
    current_balance REAL NOT NULL DEFAULT 0,
    statement_day INTEGER NOT NULL DEFAULT 1,
    due_day INTEGER NOT NULL DEFAULT 20,
    is_active INTEGER NOT NULL DEFAULT 1
)
"""

TAX_DEDUCTIONS_TABLE = """
CREATE TABLE IF NOT EXISTS tax_deductions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    year INTEGER NOT NULL,
    relief_code TEXT NOT NULL,
    amount REAL NOT NULL,
    description TEXT NOT NULL DEFAULT ''
)
"""

TAX_PROFILES_TABLE = """
CREATE TABLE IF NOT EXISTS tax_profiles (
    user_id TEXT PRIMARY KEY,
    marital_status TEXT NOT NULL DEFAULT 'single',
    employment_type TEXT NOT NULL DEFAULT 'employed',
    base_salary REAL NOT NULL DEFAULT 0,
    epf_contribution REAL NOT NULL DEFAULT 0,
    socso_contribution REAL NOT NULL DEFAULT 0,
    pcb_paid REAL NOT NULL DEFAULT 0
)
"""

CONVERSATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS ai_conversations (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    total_messages INTEGER NOT NULL DEFAULT 0,
    total_tokens_used INTEGER NOT NULL DEFAULT 0,
    is_archived INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

CONVERSATIONS_USER_INDEX = """
CREATE INDEX IF NOT EXISTS idx_ai_conversations_user ON ai_conversations(user_id, updated_at)
"""

MESSAGES_TABLE = """
CREATE TABLE IF NOT EXISTS ai_messages (
    id TEXT PRIMARY KEY,
    conversation_id TEXT NOT NULL,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    retrieved_data TEXT,
    data_sources TEXT NOT NULL DEFAULT '[]',
    confidence_score REAL,
    tokens_used INTEGER,
    processing_time_ms REAL,
    created_at TEXT NOT NULL,
    seq INTEGER NOT NULL,
    FOREIGN KEY (conversation_id) REFERENCES ai_conversations(id)
)
"""

MESSAGES_CONVERSATION_INDEX = """
CREATE INDEX IF NOT EXISTS idx_ai_messages_conversation ON ai_messages(conversation_id, seq)
"""

AI_SETTINGS_TABLE = """
CREATE TABLE IF NOT EXISTS ai_settings (
    user_id TEXT PRIMARY KEY,
    ai_enabled INTEGER NOT NULL DEFAULT 0,
    provider TEXT NOT NULL DEFAULT 'openai',
    api_key_encrypted TEXT,
    model_endpoint TEXT,
    model_name TEXT,
    temperature REAL NOT NULL DEFAULT 0.7,
    max_tokens INTEGER NOT NULL DEFAULT 2048,
    enable_crag INTEGER NOT NULL DEFAULT 1,
    enable_fallback INTEGER NOT NULL DEFAULT 1,
    relevance_threshold REAL NOT NULL DEFAULT 0.7,
    max_retrieval_docs INTEGER NOT NULL DEFAULT 50,
    enable_web_search_fallback INTEGER NOT NULL DEFAULT 0,
    data_access TEXT NOT NULL DEFAULT '{}',
    anonymize_vendors INTEGER NOT NULL DEFAULT 0,
    exclude_sensitive_categories INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL
)
"""


async def initialize_finance_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        for statement in (
            CATEGORIES_TABLE,
            TRANSACTIONS_TABLE,
            TRANSACTIONS_USER_DATE_INDEX,
            BUDGETS_TABLE,
            GOALS_TABLE,
            SUBSCRIPTIONS_TABLE,
            CREDIT_CARDS_TABLE,
            TAX_DEDUCTIONS_TABLE,
            TAX_PROFILES_TABLE,
        ):
            await db.execute(statement)
        await db.commit()


async def initialize_conversation_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(CONVERSATIONS_TABLE)
        await db.execute(CONVERSATIONS_USER_INDEX)
        await db.execute(MESSAGES_TABLE)
        await db.execute(MESSAGES_CONVERSATION_INDEX)
        await db.commit()


async def initialize_settings_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(AI_SETTINGS_TABLE)
        await db.commit()
