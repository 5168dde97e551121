from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from expensebot.categories import Category
from expensebot.clock import month_window, today_window, week_window
from expensebot.config import Settings
from expensebot.crud import BudgetSummary
from expensebot.reports import budget_alert, export_csv, format_money, progress_bar


def test_windows():
    now = datetime(2024, 12, 31, 18, 30)
    today = today_window(now)
    assert (today.start, today.end) == (datetime(2024, 12, 31), datetime(2025, 1, 1))

    week = week_window(now)
    assert week.start == datetime(2024, 12, 24, 18, 30)
    assert week.end is None

    month = month_window(now)
    assert (month.start, month.end) == (datetime(2024, 12, 1), datetime(2025, 1, 1))


def test_format_money():
    assert format_money(Decimal("5"), "$") == "$5.00"
    assert format_money(Decimal("1234.5"), "S$") == "S$1234.50"


@pytest.mark.parametrize(
    ("percentage", "bar"),
    [(Decimal("0"), "░" * 10), (Decimal("45"), "████░░░░░░"), (Decimal("250"), "█" * 10)],
)
def test_progress_bar(percentage, bar):
    assert progress_bar(percentage) == bar


def _summary(budget, spent):
    budget, spent = Decimal(budget), Decimal(spent)
    percentage = spent / budget * 100 if budget else Decimal("0")
    return BudgetSummary(budget=budget, spent=spent, remaining=budget - spent, percentage=percentage)


def test_budget_alert_thresholds():
    assert budget_alert(_summary("100", "79.99"), "$") == ""
    assert "80% used" in budget_alert(_summary("100", "80"), "$")
    assert "EXCEEDED" in budget_alert(_summary("100", "100"), "$")
    assert budget_alert(_summary("0", "500"), "$") == ""


def test_export_csv_orders_oldest_first_and_quotes():
    expenses = [
        SimpleNamespace(id=2, description="dinner, late", amount=Decimal("12"),
                        category=Category.FOOD, occurred_at=datetime(2024, 5, 2, 20)),
        SimpleNamespace(id=1, description="grab", amount=Decimal("8.5"),
                        category=Category.TRANSPORT, occurred_at=datetime(2024, 5, 1, 9)),
    ]
    assert export_csv(expenses).splitlines() == [
        "Date,Description,Category,Amount",
        "2024-05-01,grab,transport,8.50",
        '2024-05-02,"dinner, late",food,12.00',
        "",
        "TOTAL,,,20.50",
    ]


def test_settings_parse_origins_and_timezone():
    settings = Settings(allow_origins="http://a.test, http://b.test")
    assert settings.allow_origins == ["http://a.test", "http://b.test"]

    with pytest.raises(ValidationError):
        Settings(timezone="Mars/Olympus_Mons")
