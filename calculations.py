from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from models import Transaction, TransactionType


ZERO = Decimal("0.00")
PERCENT_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class GoalProgress:
    current_progress: Decimal
    remaining_amount: Decimal
    progress_percentage: float


@dataclass
class ReportTotals:
    income_by_category: dict[str, Decimal] = field(default_factory=dict)
    expense_by_category: dict[str, Decimal] = field(default_factory=dict)
    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO

    @property
    def net_savings(self) -> Decimal:
        return self.total_income - self.total_expense


def sum_by_type(transactions: Iterable[Transaction]) -> tuple[Decimal, Decimal]:
    income = ZERO
    expense = ZERO
    for txn in transactions:
        if txn.type == TransactionType.income:
            income += txn.amount
        else:
            expense += txn.amount
    return income, expense


def progress_percentage(current: Decimal, target: Decimal) -> float:
    """Share of `target` reached, in percent, rounded half-up to 2 places."""
    ratio = current * 100 / target
    return float(ratio.quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP))


def compute_goal_progress(
    target_amount: Decimal, transactions: Iterable[Transaction]
) -> GoalProgress:
    """
    Net savings from the given transactions measured against a goal target.

    Callers pass the owner's transactions dated on or after the goal's
    start date. Neither progress nor the remaining amount goes below zero.
    """
    income, expense = sum_by_type(transactions)
    current = max(ZERO, income - expense)
    remaining = max(ZERO, target_amount - current)
    return GoalProgress(
        current_progress=current,
        remaining_amount=remaining,
        progress_percentage=progress_percentage(current, target_amount),
    )


def aggregate_transactions(transactions: Iterable[Transaction]) -> ReportTotals:
    totals = ReportTotals()
    for txn in transactions:
        amount = txn.amount
        if txn.type == TransactionType.income:
            bucket = totals.income_by_category
            totals.total_income += amount
        else:
            bucket = totals.expense_by_category
            totals.total_expense += amount
        bucket[txn.category] = bucket.get(txn.category, ZERO) + amount
    return totals
