from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import crud
from ..clock import local_now, month_window, today_window, week_window
from ..db import get_db
from ..schemas import BudgetOut, DailyTotalOut, DashboardOut, ExpenseOut, PeriodTotalsOut
from ..security import get_current_owner

router = APIRouter(tags=["dashboard"])

RECENT_LIMIT = 20


def get_clock() -> Callable[[], datetime]:
    """Dependency returning the local-time clock used for date windows."""
    return local_now


def _totals_out(totals: crud.PeriodTotals) -> PeriodTotalsOut:
    return PeriodTotalsOut(total=float(totals.total), count=totals.count)


@router.get("/dashboard", response_model=DashboardOut)
def get_dashboard(
    owner_id: str = Depends(get_current_owner),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> DashboardOut:
    user = crud.get_user(db, owner_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    now = clock()
    month = month_window(now)
    budget = crud.budget_summary(db, owner_id, now)
    aggregated = crud.aggregate_expenses(crud.list_expenses(db, owner_id, window=month))
    recent = crud.list_expenses(db, owner_id, limit=RECENT_LIMIT)

    return DashboardOut(
        name=user.display_name,
        currency=user.currency_symbol,
        today=_totals_out(crud.period_totals(db, owner_id, today_window(now))),
        week=_totals_out(crud.period_totals(db, owner_id, week_window(now))),
        month=_totals_out(crud.period_totals(db, owner_id, month)),
        expenses=[ExpenseOut.model_validate(expense) for expense in recent],
        budget=BudgetOut(
            budget=float(budget.budget),
            spent=float(budget.spent),
            remaining=float(budget.remaining),
            percentage=round(float(budget.percentage), 2),
        ),
        categories={name: float(total) for name, total in aggregated["category_totals"].items()},
        daily=[
            DailyTotalOut(date=day, total=float(total))
            for day, total in aggregated["daily_totals"].items()
        ],
    )
