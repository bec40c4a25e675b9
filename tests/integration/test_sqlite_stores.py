"""Integration tests for the SQLite finance, conversation and settings stores."""

import tempfile
from datetime import date
from pathlib import Path

import pytest

from finance_agent.models.domain import AISettings
from finance_agent.models.finance import Category
from finance_agent.storage.sqlite_conversation_store import SQLiteConversationStore
from finance_agent.storage.sqlite_finance_store import SQLiteFinanceStore
from finance_agent.storage.sqlite_settings_store import SQLiteAISettingsStore

TODAY = date(2024, 6, 15)
USER_ID = "user-1"


@pytest.fixture
def db_path():
    tmp = tempfile.mkdtemp()
    return str(Path(tmp) / "test.db")


@pytest.fixture
async def finance_store(db_path, finance_data, seed_store):
    store = SQLiteFinanceStore(db_path)
    await store.initialize()
    await seed_store(store, finance_data)
    return store


@pytest.fixture
async def conversation_store(db_path):
    store = SQLiteConversationStore(db_path)
    await store.initialize()
    return store


@pytest.fixture
async def settings_store(db_path):
    store = SQLiteAISettingsStore(db_path)
    await store.initialize()
    return store


# --- finance ---


@pytest.mark.asyncio
async def test_list_transactions_in_range(finance_store):
    rows = await finance_store.list_transactions(USER_ID, date(2024, 6, 1), TODAY)
    assert [t.id for t in rows] == ["t5", "t4", "t3", "t2", "t1"]
    assert rows[-1].category_name == "Food & Dining"
    assert rows[-1].credit_card_id == "card-1"
    assert rows[1].is_tax_deductible is True


@pytest.mark.asyncio
async def test_list_transactions_filters(finance_store):
    start, end = date(2024, 6, 1), TODAY
    food = await finance_store.list_transactions(USER_ID, start, end, category_ids=("cat-food",))
    assert {t.id for t in food} == {"t1", "t2"}

    expenses = await finance_store.list_transactions(USER_ID, start, end, type="expense", min_amount=50)
    assert {t.id for t in expenses} == {"t2", "t4"}

    limited = await finance_store.list_transactions(USER_ID, start, end, limit=2)
    assert len(limited) == 2

    assert await finance_store.list_transactions("someone-else", start, end) == []


@pytest.mark.asyncio
async def test_categories_include_shared(finance_store):
    await finance_store.add_category(Category("cat-shared", "Zakat"), user_id=None)
    names = [c.name for c in await finance_store.list_categories(USER_ID)]
    assert "Zakat" in names
    assert "Food & Dining" in names
    sensitive = [c for c in await finance_store.list_categories(USER_ID) if c.is_sensitive]
    assert [c.id for c in sensitive] == ["cat-health"]


@pytest.mark.asyncio
async def test_finance_records_round_trip(finance_store):
    budgets = await finance_store.list_budgets(USER_ID)
    assert {b.name for b in budgets} == {"Food", "Transport"}

    goals = await finance_store.list_goals(USER_ID)
    assert goals[0].target_amount == 10000.0
    assert goals[0].target_date is not None

    subs = await finance_store.list_subscriptions(USER_ID)
    assert {s.status for s in subs} == {"active", "paused", "cancelled"}

    cards = await finance_store.list_credit_cards(USER_ID)
    assert cards[0].credit_limit == 10000.0

    deductions = await finance_store.list_tax_deductions(USER_ID, 2024)
    assert deductions[0].relief_code == "LIFESTYLE"
    assert await finance_store.list_tax_deductions(USER_ID, 2023) == []

    profile = await finance_store.get_tax_profile(USER_ID)
    assert profile.epf_contribution == 6600.0
    assert await finance_store.get_tax_profile("nobody") is None


@pytest.mark.asyncio
async def test_count_transactions(finance_store):
    assert await finance_store.count_transactions() == 17


# --- conversations ---


@pytest.mark.asyncio
async def test_create_and_get_conversation(conversation_store):
    conversation = await conversation_store.create(USER_ID, "Food spending")
    fetched = await conversation_store.get(conversation.id, USER_ID)
    assert fetched is not None
    assert fetched.title == "Food spending"
    assert fetched.total_messages == 0


@pytest.mark.asyncio
async def test_get_foreign_conversation_returns_none(conversation_store):
    conversation = await conversation_store.create(USER_ID, "Mine")
    assert await conversation_store.get(conversation.id, "other-user") is None
    assert await conversation_store.get("missing", USER_ID) is None


@pytest.mark.asyncio
async def test_messages_and_counters(conversation_store):
    conversation = await conversation_store.create(USER_ID, "Budget")
    await conversation_store.add_message(conversation.id, "user", "How is my budget?")
    await conversation_store.add_message(
        conversation.id,
        "assistant",
        "Food is over budget.",
        retrieved_data={"tables": ["budgets"], "record_count": 2},
        data_sources=["budgets"],
        confidence_score=0.81,
        tokens_used=120,
        processing_time_ms=42.0,
    )
    await conversation_store.increment_counters(conversation.id, messages=2, tokens=120)
    await conversation_store.increment_counters(conversation.id, messages=2, tokens=80)

    fetched = await conversation_store.get(conversation.id, USER_ID)
    assert fetched.total_messages == 4
    assert fetched.total_tokens_used == 200

    messages = await conversation_store.list_messages(conversation.id)
    assert [m.role for m in messages] == ["user", "assistant"]
    assert messages[1].data_sources == ["budgets"]
    assert messages[1].retrieved_data["record_count"] == 2
    assert messages[1].confidence_score == 0.81

    recent = await conversation_store.recent_messages(conversation.id, limit=1)
    assert [m.content for m in recent] == ["Food is over budget."]


@pytest.mark.asyncio
async def test_list_conversations_paging_and_archive(conversation_store):
    created = [await conversation_store.create(USER_ID, f"Chat {i}") for i in range(3)]
    await conversation_store.create("other-user", "Not mine")
    await conversation_store.add_message(created[0].id, "user", "hello")
    await conversation_store.update(created[1].id, USER_ID, is_archived=True)

    items, total = await conversation_store.list_conversations(USER_ID, page=1, limit=10)
    assert total == 2
    titles = {c.title for c, _ in items}
    assert titles == {"Chat 0", "Chat 2"}
    last = {c.title: m for c, m in items}
    assert last["Chat 0"].content == "hello"
    assert last["Chat 2"] is None

    items, total = await conversation_store.list_conversations(USER_ID, include_archived=True, limit=2)
    assert total == 3
    assert len(items) == 2
    page_two, _ = await conversation_store.list_conversations(USER_ID, page=2, include_archived=True, limit=2)
    assert len(page_two) == 1


@pytest.mark.asyncio
async def test_update_and_delete(conversation_store):
    conversation = await conversation_store.create(USER_ID, "Old title")
    await conversation_store.add_message(conversation.id, "user", "hi")

    updated = await conversation_store.update(conversation.id, USER_ID, title="New title")
    assert updated.title == "New title"
    assert await conversation_store.update(conversation.id, "other-user", title="x") is None

    assert await conversation_store.delete(conversation.id, "other-user") is False
    assert await conversation_store.delete(conversation.id, USER_ID) is True
    assert await conversation_store.get(conversation.id, USER_ID) is None
    assert await conversation_store.list_messages(conversation.id) == []


# --- settings ---


@pytest.mark.asyncio
async def test_settings_round_trip(settings_store):
    assert await settings_store.get(USER_ID) is None

    await settings_store.save(
        AISettings(
            user_id=USER_ID,
            ai_enabled=True,
            provider="anthropic",
            api_key_encrypted="ciphertext",
            data_access={"transactions": True, "tax_data": False},
            anonymize_vendors=True,
        )
    )
    stored = await settings_store.get(USER_ID)
    assert stored.ai_enabled is True
    assert stored.provider == "anthropic"
    assert stored.data_access == {"transactions": True, "tax_data": False}
    assert stored.anonymize_vendors is True

    stored.ai_enabled = False
    await settings_store.save(stored)
    assert (await settings_store.get(USER_ID)).ai_enabled is False
