import re
from datetime import timedelta
from decimal import Decimal

from expensebot import crud
from expensebot.categories import Category
from expensebot.db import Base
from expensebot.executor import GENERIC_ERROR, CommandExecutor, currency_symbol_for
from expensebot.security import hash_pin

from conftest import FIXED_NOW


def send(executor, text, owner="alice", name="Alice"):
    return executor.handle_message(owner, name, text)


def test_add_expense_reply(executor):
    reply = send(executor, "coffee 4.50")
    assert reply.startswith("✅ #1 coffee - $4.50")
    assert "🍔 food" in reply
    assert "📊 Today: $4.50" in reply


def test_explicit_category_is_validated(executor, db):
    send(executor, "lunch 15 ent")
    expense = crud.list_expenses(db, "alice")[0]
    assert expense.category is Category.ENTERTAINMENT


def test_today_totals(executor):
    send(executor, "coffee 10")
    send(executor, "grab 20")
    send(executor, "lunch 30")

    reply = send(executor, "?")
    assert "💰 Total: $60.00" in reply
    assert "📝 Expenses: 3" in reply


def test_week_and_month_windows(executor, db):
    send(executor, "coffee 10")
    crud.upsert_user(db, "alice")
    crud.create_expense(db, "alice", "old", Decimal("20"), Category.OTHER, FIXED_NOW - timedelta(days=3))
    crud.create_expense(db, "alice", "older", Decimal("40"), Category.OTHER, FIXED_NOW - timedelta(days=10))
    crud.create_expense(db, "alice", "april", Decimal("80"), Category.OTHER, FIXED_NOW - timedelta(days=30))

    assert "💰 Total: $10.00" in send(executor, "?")
    assert "💰 Total: $30.00" in send(executor, "??")
    assert "💰 Total: $70.00" in send(executor, "???")


def test_totals_are_per_owner(executor):
    send(executor, "coffee 10", owner="alice")
    send(executor, "coffee 99", owner="bob", name="Bob")
    assert "💰 Total: $10.00" in send(executor, "?", owner="alice")


def test_budget_alerts(executor):
    assert send(executor, "budget").startswith("💼 No budget set.")
    assert "$100.00" in send(executor, "budget 100")

    reply = send(executor, "coffee 85")
    assert "⚠️ *Budget Alert:* 85% used ($15.00 left)" in reply

    reply = send(executor, "lunch 20")
    assert "🚨 *BUDGET EXCEEDED!*" in reply

    status = send(executor, "budget")
    assert "💸 Spent: $105.00" in status
    assert "██████████" in status


def test_no_alert_below_threshold(executor):
    send(executor, "budget 100")
    reply = send(executor, "coffee 10")
    assert "Budget Alert" not in reply
    assert "EXCEEDED" not in reply


def test_delete_last(executor):
    assert send(executor, "!") == "❌ Nothing to delete."
    send(executor, "coffee 10")
    send(executor, "lunch 30")
    assert send(executor, "undo") == "🗑️ Deleted: lunch - $30.00"
    assert "💰 Total: $10.00" in send(executor, "?")


def test_edit_only_own_expense(executor, db):
    send(executor, "coffee 10")
    expense_id = crud.list_expenses(db, "alice")[0].id

    reply = send(executor, f"edit {expense_id} lunch 18 food", owner="bob", name="Bob")
    assert reply == "❌ Expense not found or you cannot edit it."

    reply = send(executor, f"edit {expense_id} lunch 18 food")
    assert reply.startswith(f"✏️ Updated expense #{expense_id}")
    assert "lunch - $18.00 (food)" in reply


def test_recurring_lifecycle(executor):
    assert send(executor, "recurring").startswith("🔄 No recurring expenses.")

    reply = send(executor, "recurring netflix 15.99 subscription 1")
    assert reply.startswith("🔄 Recurring expense added! (#1)")
    assert "📅 Every month on day 1" in reply

    assert "1. netflix - $15.99 (subscription) - Day 1" in send(executor, "recurring")
    assert send(executor, "stop recurring 1") == "✅ Stopped recurring: netflix"
    assert send(executor, "stop recurring 1") == "❌ Recurring expense not found."


def test_stop_recurring_of_other_owner(executor):
    send(executor, "recurring gym 50 subscription 5")
    reply = send(executor, "stop recurring 1", owner="bob", name="Bob")
    assert reply == "❌ Recurring expense not found."


def test_export(executor):
    assert send(executor, "export") == "📋 No expenses to export this month."
    send(executor, "coffee 10")
    send(executor, "lunch 20")

    reply = send(executor, "export")
    assert "📊 Export (May 2024)" in reply
    assert "Date,Description,Category,Amount" in reply
    assert "2024-05-15,coffee,food,10.00" in reply
    assert "TOTAL,,,30.00" in reply


def test_breakdown_and_recent(executor):
    send(executor, "coffee 10")
    send(executor, "grab 25")

    breakdown = send(executor, "breakdown")
    assert breakdown.index("🚗 transport: $25.00") < breakdown.index("🍔 food: $10.00")

    recent = send(executor, "recent")
    assert recent.startswith("📋 Recent Expenses:")
    assert recent.index("grab") < recent.index("coffee")


def test_currency(executor):
    assert send(executor, "currency eur").startswith("💱 Currency set to €.")
    assert "€5.00" in send(executor, "coffee 5")
    assert send(executor, "currency xyz") == "❌ Unknown currency: XYZ"


def test_currency_symbol_lookup():
    assert currency_symbol_for("SGD") == "S$"
    assert currency_symbol_for("£") == "£"
    assert currency_symbol_for("abc") is None


def test_pin_commands(executor, db):
    reply = send(executor, "pin 1234")
    assert reply.startswith("🔒 PIN set successfully!")
    assert crud.get_user(db, "alice").pin_hash == hash_pin("1234")

    reply = send(executor, "reset pin")
    new_pin = re.search(r"\*(\d{4})\*", reply).group(1)
    db.expire_all()
    assert crud.get_user(db, "alice").pin_hash == hash_pin(new_pin)


def test_invalid_command_reply(executor):
    assert send(executor, "pin 12") == "❌ PIN must be exactly 4 digits."
    assert send(executor, "lunch 0") == "❌ Amount must be greater than zero."


def test_unknown_text_is_ignored(executor):
    assert send(executor, "hello there") is None


def test_help(executor):
    assert send(executor, "/start").startswith("💰 *Expense Tracker*")


def test_dashboard_link(executor, token_service):
    reply = send(executor, "dashboard")
    match = re.search(r"https://dash\.example/\?token=(\S+)", reply)
    assert match
    assert token_service.resolve_access_token(match.group(1)) == "alice"
    assert "30 minutes" in reply


def test_dashboard_link_requires_pin_when_configured(session_factory, token_service, settings):
    strict = settings.model_copy(update={"require_pin_for_dashboard": True})
    executor = CommandExecutor(session_factory, token_service, strict, now=lambda: FIXED_NOW)

    assert send(executor, "$").startswith("⚠️ Please set a PIN first")
    send(executor, "pin 4321")
    assert "token=" in send(executor, "$")


def test_display_name_is_refreshed(executor, db):
    send(executor, "?", name="Alice")
    send(executor, "?", name="Ally")
    db.expire_all()
    assert crud.get_user(db, "alice").display_name == "Ally"


def test_storage_failure_returns_generic_error(executor, engine):
    Base.metadata.drop_all(bind=engine)
    assert send(executor, "coffee 5") == GENERIC_ERROR


def test_oversized_values_are_rejected(executor):
    assert send(executor, "coffee 123456789012") == "❌ Amount is too large."
    assert send(executor, "stop recurring 99999999999999999999") == "❌ No such id."
    assert send(executor, "edit 99999999999999999999 lunch 5 food") == "❌ No such id."
    assert "📝 Expenses: 0" in send(executor, "?")
