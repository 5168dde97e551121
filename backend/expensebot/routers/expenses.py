from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from .. import crud
from ..categories import categorize, validate_category
from ..db import get_db
from ..parser import MAX_RECORD_ID
from ..schemas import ExpenseCreate, ExpenseOut, ExpenseUpdate
from ..security import get_current_owner
from .dashboard import get_clock

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.post("", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
def create_expense(
    data: ExpenseCreate,
    owner_id: str = Depends(get_current_owner),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ExpenseOut:
    category = validate_category(data.category) if data.category else categorize(data.description)
    expense = crud.create_expense(db, owner_id, data.description, data.amount, category, clock())
    return ExpenseOut.model_validate(expense)


@router.put("/{expense_id}", response_model=ExpenseOut)
def update_expense(
    data: ExpenseUpdate,
    expense_id: int = Path(ge=1, le=MAX_RECORD_ID),
    owner_id: str = Depends(get_current_owner),
    db: Session = Depends(get_db),
) -> ExpenseOut:
    changes = data.model_dump(exclude_unset=True)
    if changes.get("category") is not None:
        changes["category"] = validate_category(changes["category"])
    updated = crud.update_expense(db, expense_id, owner_id, **changes)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found.")
    return ExpenseOut.model_validate(updated)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: int = Path(ge=1, le=MAX_RECORD_ID),
    owner_id: str = Depends(get_current_owner),
    db: Session = Depends(get_db),
) -> None:
    if not crud.delete_expense(db, expense_id, owner_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found.")
