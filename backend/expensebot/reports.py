"""Plain-text replies and CSV exports sent back to chat users."""

from __future__ import annotations

import csv
from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import Decimal
from io import StringIO

from .categories import Category
from .crud import BudgetSummary, PeriodTotals
from .models import ExpenseModel, RecurringExpenseModel

BUDGET_WARNING_PERCENT = Decimal("80")
BUDGET_EXCEEDED_PERCENT = Decimal("100")
PROGRESS_CELLS = 10

HELP_TEXT = (
    "💰 *Expense Tracker*\n"
    "\n"
    "*Quick add (auto-categorizes):*\n"
    "• coffee 5 → 🍔 food\n"
    "• grab 15 → 🚗 transport\n"
    "• ntuc 50 → 🛒 shopping\n"
    "• netflix 15 → 📺 subscription\n"
    "\n"
    "*Or pick the category:*\n"
    "• lunch 15 food\n"
    "• add lunch 15 food\n"
    "\n"
    "*Shortcuts:*\n"
    "• ? → today\n"
    "• ?? → last 7 days\n"
    "• ??? → this month\n"
    "• $ → dashboard link\n"
    "• ! → delete last expense\n"
    "\n"
    "*Other:*\n"
    "• recent, breakdown, export\n"
    "• budget 500 / budget\n"
    "• pin 1234 / reset pin\n"
    "• recurring netflix 15 subscription 1 / recurring / stop recurring 1\n"
    "• edit 12 lunch 18 food\n"
    "• currency sgd"
)


def format_money(amount: Decimal | float | int, symbol: str) -> str:
    return f"{symbol}{Decimal(amount):.2f}"


def progress_bar(percentage: Decimal) -> str:
    filled = min(PROGRESS_CELLS, max(0, int(percentage // 10)))
    return "█" * filled + "░" * (PROGRESS_CELLS - filled)


def budget_alert(summary: BudgetSummary, symbol: str) -> str:
    if summary.budget <= 0:
        return ""
    if summary.percentage >= BUDGET_EXCEEDED_PERCENT:
        return (
            f"\n\n🚨 *BUDGET EXCEEDED!* You've spent {format_money(summary.spent, symbol)}"
            f" of {format_money(summary.budget, symbol)}"
        )
    if summary.percentage >= BUDGET_WARNING_PERCENT:
        return (
            f"\n\n⚠️ *Budget Alert:* {summary.percentage:.0f}% used"
            f" ({format_money(summary.remaining, symbol)} left)"
        )
    return ""


def expense_added(
    expense: ExpenseModel,
    today: PeriodTotals,
    summary: BudgetSummary,
    symbol: str,
) -> str:
    category = Category(expense.category)
    stamp = expense.occurred_at.strftime("%d %b, %I:%M %p")
    return (
        f"✅ #{expense.id} {expense.description} - {format_money(expense.amount, symbol)}\n"
        f"📁 {category.emoji} {category.value}\n"
        f"🕐 {stamp}\n\n"
        f"📊 Today: {format_money(today.total, symbol)}"
        f"{budget_alert(summary, symbol)}"
    )


def period_summary(
    title: str,
    totals: PeriodTotals,
    symbol: str,
    summary: BudgetSummary | None = None,
) -> str:
    text = f"📊 {title}\n\n💰 Total: {format_money(totals.total, symbol)}\n📝 Expenses: {totals.count}"
    if summary is not None and summary.budget > 0:
        text += (
            f"\n\n💼 Budget: {format_money(summary.budget, symbol)}"
            f"\n📊 Used: {summary.percentage:.0f}%"
            f"\n💵 Remaining: {format_money(summary.remaining, symbol)}"
        )
    return text


def budget_status(summary: BudgetSummary, symbol: str) -> str:
    if summary.budget <= 0:
        return "💼 No budget set.\n\nTo set a monthly budget, send:\nbudget 500"
    return (
        f"💼 Budget Status\n\n{progress_bar(summary.percentage)} {summary.percentage:.0f}%\n\n"
        f"💰 Budget: {format_money(summary.budget, symbol)}\n"
        f"💸 Spent: {format_money(summary.spent, symbol)}\n"
        f"💵 Remaining: {format_money(summary.remaining, symbol)}"
    )


def recent_expenses(expenses: Sequence[ExpenseModel], symbol: str) -> str:
    if not expenses:
        return "📋 No recent expenses found."
    lines = [
        f"{index}. #{expense.id} {expense.description} - {format_money(expense.amount, symbol)}"
        f" ({Category(expense.category).value}) - {expense.occurred_at:%d/%m}"
        for index, expense in enumerate(expenses, start=1)
    ]
    return "📋 Recent Expenses:\n\n" + "\n".join(lines)


def category_breakdown(category_totals: dict[str, Decimal], symbol: str) -> str:
    spent = [(name, total) for name, total in category_totals.items() if total > 0]
    if not spent:
        return "📋 No expenses this month yet."
    spent.sort(key=lambda item: item[1], reverse=True)
    lines = [
        f"{Category(name).emoji} {name}: {format_money(total, symbol)}" for name, total in spent
    ]
    return "📊 This Month by Category\n\n" + "\n".join(lines)


def recurring_list(templates: Sequence[RecurringExpenseModel], symbol: str) -> str:
    if not templates:
        return (
            "🔄 No recurring expenses.\n\nTo add one, send:\n"
            "recurring netflix 15 subscription 1\n"
            "(netflix, 15, subscription, day 1 of month)"
        )
    lines = [
        f"{template.id}. {template.description} - {format_money(template.amount, symbol)}"
        f" ({Category(template.category).value}) - Day {template.day_of_month}"
        for template in templates
    ]
    return "🔄 Recurring Expenses:\n\n" + "\n".join(lines) + "\n\nTo stop: stop recurring [id]"


def export_csv(expenses: Iterable[ExpenseModel]) -> str:
    """CSV of expenses, oldest first, followed by a TOTAL row."""
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Date", "Description", "Category", "Amount"])
    total = Decimal("0")
    for expense in sorted(expenses, key=lambda item: (item.occurred_at, item.id)):
        amount = Decimal(expense.amount)
        total += amount
        writer.writerow(
            [
                expense.occurred_at.strftime("%Y-%m-%d"),
                expense.description,
                Category(expense.category).value,
                f"{amount:.2f}",
            ]
        )
    writer.writerow([])
    writer.writerow(["TOTAL", "", "", f"{total:.2f}"])
    return buffer.getvalue().rstrip("\n")


def export_message(expenses: Sequence[ExpenseModel], now: datetime) -> str:
    if not expenses:
        return "📋 No expenses to export this month."
    return (
        f"📊 Export ({now:%B %Y})\n\n```\n{export_csv(expenses)}\n```\n\n"
        "💡 Copy this and paste into Excel/Google Sheets"
    )
