from datetime import timedelta
from decimal import Decimal

from expensebot import crud
from expensebot.categories import Category
from expensebot.clock import today_window

from conftest import FIXED_NOW


def _add(db, owner, amount, category=Category.FOOD, when=FIXED_NOW):
    return crud.create_expense(db, owner, "item", Decimal(amount), category, when)


def test_period_totals(db):
    crud.upsert_user(db, "alice")
    for amount in ("10", "20", "30"):
        _add(db, "alice", amount)

    totals = crud.period_totals(db, "alice", today_window(FIXED_NOW))
    assert totals == crud.PeriodTotals(total=Decimal("60"), count=3)


def test_period_totals_empty(db):
    totals = crud.period_totals(db, "nobody", today_window(FIXED_NOW))
    assert totals.total == 0
    assert totals.count == 0


def test_budget_summary_without_budget(db):
    crud.upsert_user(db, "alice")
    _add(db, "alice", "40")
    summary = crud.budget_summary(db, "alice", FIXED_NOW)
    assert summary.budget == 0
    assert summary.percentage == 0
    assert summary.spent == Decimal("40")


def test_cross_owner_delete_does_not_mutate(db):
    crud.upsert_user(db, "alice")
    crud.upsert_user(db, "bob")
    expense = _add(db, "alice", "10")

    assert crud.delete_expense(db, expense.id, "bob") is False
    assert crud.update_expense(db, expense.id, "bob", amount=Decimal("1")) is None
    db.expire_all()
    assert crud.get_expense(db, expense.id, "alice").amount == Decimal("10")


def test_delete_last_picks_newest(db):
    crud.upsert_user(db, "alice")
    _add(db, "alice", "10", when=FIXED_NOW - timedelta(hours=1))
    newest = _add(db, "alice", "20")

    assert crud.delete_last_expense(db, "alice").id == newest.id
    assert crud.delete_last_expense(db, "alice").amount == Decimal("10")
    assert crud.delete_last_expense(db, "alice") is None


def test_aggregate_expenses(db):
    crud.upsert_user(db, "alice")
    _add(db, "alice", "5")
    _add(db, "alice", "7", Category.TRANSPORT, FIXED_NOW - timedelta(days=1))

    aggregated = crud.aggregate_expenses(crud.list_expenses(db, "alice"))
    assert aggregated["category_totals"]["food"] == Decimal("5")
    assert aggregated["category_totals"]["transport"] == Decimal("7")
    assert aggregated["category_totals"]["other"] == 0
    assert list(aggregated["daily_totals"]) == [
        (FIXED_NOW - timedelta(days=1)).date(),
        FIXED_NOW.date(),
    ]
