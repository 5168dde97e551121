from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ExpenseCreate(BaseModel):
    description: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    category: Optional[str] = Field(default=None, max_length=50)

    model_config = ConfigDict(str_strip_whitespace=True)


class ExpenseUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    category: Optional[str] = Field(default=None, max_length=50)

    model_config = ConfigDict(str_strip_whitespace=True)


class ExpenseOut(BaseModel):
    id: int
    description: str
    amount: float
    category: str
    occurred_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("category", mode="before")
    @classmethod
    def category_value(cls, value: object) -> object:
        return getattr(value, "value", value)


class PeriodTotalsOut(BaseModel):
    total: float
    count: int


class BudgetOut(BaseModel):
    budget: float
    spent: float
    remaining: float
    percentage: float


class DailyTotalOut(BaseModel):
    date: date
    total: float


class DashboardOut(BaseModel):
    name: str
    currency: str
    today: PeriodTotalsOut
    week: PeriodTotalsOut
    month: PeriodTotalsOut
    expenses: list[ExpenseOut]
    budget: BudgetOut
    categories: dict[str, float]
    daily: list[DailyTotalOut]


class AccessTokenRequest(BaseModel):
    owner_id: str = Field(
        min_length=1, max_length=50, validation_alias=AliasChoices("owner_id", "phone")
    )
    secret: str


class AccessTokenOut(BaseModel):
    token: str
    expires_at: datetime
    url: str


class VerifyPinRequest(BaseModel):
    token: str
    pin: str = Field(pattern=r"^\d{4}$")


class SessionOut(BaseModel):
    session_token: str
    expires_at: datetime


class HasPinOut(BaseModel):
    has_pin: bool
