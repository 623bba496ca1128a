from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from models import TransactionType

if TYPE_CHECKING:  # pragma: no cover
    from models import Category, Transaction
    from services import GoalStatus, Report


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _lower_type(value: object) -> object:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class RegisterIn(ApiModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=200)
    full_name: str = Field(..., min_length=1, max_length=200)
    phone_number: str = Field(..., min_length=1, max_length=40)


class LoginIn(ApiModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class CategoryIn(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: object) -> object:
        return _lower_type(value)


class TransactionIn(ApiModel):
    amount: Decimal
    date: dt.date
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class TransactionUpdateIn(ApiModel):
    """Partial update; the transaction date is not editable."""

    amount: Optional[Decimal] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class GoalIn(ApiModel):
    goal_name: str = Field(..., min_length=1, max_length=200)
    target_amount: Decimal
    target_date: dt.date
    start_date: Optional[dt.date] = None


class GoalUpdateIn(ApiModel):
    target_amount: Optional[Decimal] = None
    target_date: Optional[dt.date] = None


class MessageOut(ApiModel):
    message: str


class AuthOut(ApiModel):
    message: str
    user_id: Optional[int] = None


class TransactionOut(ApiModel):
    id: int
    amount: Decimal
    date: dt.date
    category: str
    description: Optional[str]
    type: TransactionType

    @classmethod
    def from_model(cls, txn: "Transaction") -> "TransactionOut":
        return cls(
            id=txn.id,
            amount=txn.amount,
            date=txn.date,
            category=txn.category,
            description=txn.description,
            type=txn.type,
        )


class TransactionListOut(ApiModel):
    transactions: list[TransactionOut]


class CategoryOut(ApiModel):
    name: str
    type: TransactionType
    custom: bool

    @classmethod
    def from_model(cls, category: "Category") -> "CategoryOut":
        return cls(name=category.name, type=category.type, custom=category.is_custom)


class CategoryListOut(ApiModel):
    categories: list[CategoryOut]


class GoalOut(ApiModel):
    id: int
    goal_name: str
    target_amount: Decimal
    target_date: dt.date
    start_date: dt.date
    current_progress: Decimal
    progress_percentage: float
    remaining_amount: Decimal

    @classmethod
    def from_status(cls, status: "GoalStatus") -> "GoalOut":
        goal, progress = status.goal, status.progress
        return cls(
            id=goal.id,
            goal_name=goal.name,
            target_amount=goal.target_amount,
            target_date=goal.target_date,
            start_date=goal.start_date,
            current_progress=progress.current_progress,
            progress_percentage=progress.progress_percentage,
            remaining_amount=progress.remaining_amount,
        )


class GoalListOut(ApiModel):
    goals: list[GoalOut]


class YearlyReportOut(ApiModel):
    year: int
    total_income: dict[str, Decimal]
    total_expenses: dict[str, Decimal]
    net_savings: Decimal

    @classmethod
    def from_report(cls, report: "Report") -> "YearlyReportOut":
        return cls(
            year=report.year,
            total_income=report.totals.income_by_category,
            total_expenses=report.totals.expense_by_category,
            net_savings=report.totals.net_savings,
        )


class MonthlyReportOut(ApiModel):
    month: int
    year: int
    total_income: dict[str, Decimal]
    total_expenses: dict[str, Decimal]
    net_savings: Decimal

    @classmethod
    def from_report(cls, report: "Report") -> "MonthlyReportOut":
        return cls(
            month=report.month,
            year=report.year,
            total_income=report.totals.income_by_category,
            total_expenses=report.totals.expense_by_category,
            net_savings=report.totals.net_savings,
        )
