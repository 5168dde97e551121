from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from .categories import Category
from .clock import Window, month_window
from .config import get_settings
from .models import ExpenseModel, RecurringExpenseModel, UserModel

settings = get_settings()

ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class PeriodTotals:
    total: Decimal
    count: int


@dataclass(frozen=True, slots=True)
class BudgetSummary:
    budget: Decimal
    spent: Decimal
    remaining: Decimal
    percentage: Decimal


def upsert_user(db: Session, owner_id: str, display_name: str | None = None) -> UserModel:
    user = db.get(UserModel, owner_id)
    if user is None:
        user = UserModel(
            owner_id=owner_id,
            display_name=display_name or owner_id,
            monthly_budget=ZERO,
            currency_symbol=settings.default_currency_symbol,
        )
        db.add(user)
    elif display_name and user.display_name != display_name:
        user.display_name = display_name
    db.commit()
    db.refresh(user)
    return user


def get_user(db: Session, owner_id: str) -> UserModel | None:
    return db.get(UserModel, owner_id)


def set_budget(db: Session, owner_id: str, amount: Decimal) -> None:
    db.execute(update(UserModel).where(UserModel.owner_id == owner_id).values(monthly_budget=amount))
    db.commit()


def set_pin_hash(db: Session, owner_id: str, pin_hash: str) -> None:
    db.execute(update(UserModel).where(UserModel.owner_id == owner_id).values(pin_hash=pin_hash))
    db.commit()


def set_currency_symbol(db: Session, owner_id: str, symbol: str) -> None:
    db.execute(update(UserModel).where(UserModel.owner_id == owner_id).values(currency_symbol=symbol))
    db.commit()


def create_expense(
    db: Session,
    owner_id: str,
    description: str,
    amount: Decimal,
    category: Category,
    now: datetime,
) -> ExpenseModel:
    expense = ExpenseModel(
        owner_id=owner_id,
        description=description,
        amount=amount,
        category=category,
        occurred_at=now,
        created_at=now,
    )
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense


def get_expense(db: Session, expense_id: int, owner_id: str) -> ExpenseModel | None:
    stmt = select(ExpenseModel).where(ExpenseModel.id == expense_id, ExpenseModel.owner_id == owner_id)
    return db.scalar(stmt)


def update_expense(
    db: Session,
    expense_id: int,
    owner_id: str,
    **changes: object,
) -> ExpenseModel | None:
    """Apply ``changes`` to an expense only if ``owner_id`` owns it."""
    values = {key: value for key, value in changes.items() if value is not None}
    if values:
        result = db.execute(
            update(ExpenseModel)
            .where(ExpenseModel.id == expense_id, ExpenseModel.owner_id == owner_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        db.commit()
        if result.rowcount == 0:
            return None
    expense = get_expense(db, expense_id, owner_id)
    if expense is not None:
        db.refresh(expense)
    return expense


def delete_expense(db: Session, expense_id: int, owner_id: str) -> bool:
    result = db.execute(
        delete(ExpenseModel).where(ExpenseModel.id == expense_id, ExpenseModel.owner_id == owner_id)
    )
    db.commit()
    return result.rowcount > 0


def delete_last_expense(db: Session, owner_id: str) -> ExpenseModel | None:
    stmt = (
        select(ExpenseModel)
        .where(ExpenseModel.owner_id == owner_id)
        .order_by(ExpenseModel.created_at.desc(), ExpenseModel.id.desc())
        .limit(1)
    )
    expense = db.scalar(stmt)
    if expense is None:
        return None
    db.delete(expense)
    db.commit()
    return expense


def _in_window(stmt, window: Window):
    stmt = stmt.where(ExpenseModel.occurred_at >= window.start)
    if window.end is not None:
        stmt = stmt.where(ExpenseModel.occurred_at < window.end)
    return stmt


def period_totals(db: Session, owner_id: str, window: Window) -> PeriodTotals:
    stmt = select(
        func.coalesce(func.sum(ExpenseModel.amount), ZERO),
        func.count(ExpenseModel.id),
    ).where(ExpenseModel.owner_id == owner_id)
    total, count = db.execute(_in_window(stmt, window)).one()
    return PeriodTotals(total=Decimal(total or 0).quantize(Decimal("0.01")), count=int(count or 0))


def list_expenses(
    db: Session,
    owner_id: str,
    window: Window | None = None,
    limit: int | None = None,
) -> list[ExpenseModel]:
    """Expenses for ``owner_id``, newest first."""
    stmt = select(ExpenseModel).where(ExpenseModel.owner_id == owner_id)
    if window is not None:
        stmt = _in_window(stmt, window)
    stmt = stmt.order_by(ExpenseModel.created_at.desc(), ExpenseModel.id.desc())
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt))


def budget_summary(db: Session, owner_id: str, now: datetime) -> BudgetSummary:
    user = get_user(db, owner_id)
    budget = Decimal(user.monthly_budget) if user and user.monthly_budget else ZERO
    spent = period_totals(db, owner_id, month_window(now)).total
    percentage = (spent / budget * 100) if budget > 0 else ZERO
    return BudgetSummary(
        budget=budget,
        spent=spent,
        remaining=budget - spent,
        percentage=percentage,
    )


def aggregate_expenses(expenses: list[ExpenseModel]) -> dict[str, object]:
    """Group expenses into per-category and per-day totals."""
    category_totals: dict[str, Decimal] = {category.value: ZERO for category in Category}
    daily_totals: defaultdict[date, Decimal] = defaultdict(lambda: ZERO)

    for expense in expenses:
        amount = Decimal(expense.amount)
        category_totals[Category(expense.category).value] += amount
        daily_totals[expense.occurred_at.date()] += amount

    return {
        "category_totals": category_totals,
        "daily_totals": dict(sorted(daily_totals.items())),
    }


def create_recurring(
    db: Session,
    owner_id: str,
    description: str,
    amount: Decimal,
    category: Category,
    day_of_month: int,
) -> RecurringExpenseModel:
    recurring = RecurringExpenseModel(
        owner_id=owner_id,
        description=description,
        amount=amount,
        category=category,
        day_of_month=day_of_month,
        is_active=True,
    )
    db.add(recurring)
    db.commit()
    db.refresh(recurring)
    return recurring


def list_recurring(db: Session, owner_id: str) -> list[RecurringExpenseModel]:
    stmt = (
        select(RecurringExpenseModel)
        .where(RecurringExpenseModel.owner_id == owner_id, RecurringExpenseModel.is_active.is_(True))
        .order_by(RecurringExpenseModel.day_of_month, RecurringExpenseModel.id)
    )
    return list(db.scalars(stmt))


def deactivate_recurring(db: Session, recurring_id: int, owner_id: str) -> RecurringExpenseModel | None:
    recurring = db.scalar(
        select(RecurringExpenseModel).where(
            RecurringExpenseModel.id == recurring_id,
            RecurringExpenseModel.owner_id == owner_id,
            RecurringExpenseModel.is_active.is_(True),
        )
    )
    if recurring is None:
        return None
    recurring.is_active = False
    db.commit()
    db.refresh(recurring)
    return recurring
