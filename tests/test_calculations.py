from datetime import date
from decimal import Decimal

import pytest

from calculations import (
    aggregate_transactions,
    compute_goal_progress,
    progress_percentage,
)
from models import Transaction, TransactionType


def _txn(amount: str, category: str, kind: TransactionType) -> Transaction:
    txn = Transaction(
        user_id=1, date=date(2024, 1, 1), category=category, type=kind
    )
    txn.amount = Decimal(amount)
    return txn


def income(amount: str, category: str = "Salary") -> Transaction:
    return _txn(amount, category, TransactionType.income)


def expense(amount: str, category: str = "Food") -> Transaction:
    return _txn(amount, category, TransactionType.expense)


def test_percentage_rounds_half_up() -> None:
    assert progress_percentage(Decimal("4000"), Decimal("10000")) == 40.0
    assert progress_percentage(Decimal("1"), Decimal("3")) == 33.33
    assert progress_percentage(Decimal("2"), Decimal("3")) == 66.67
    # 0.125% rounds away from zero, not to even
    assert progress_percentage(Decimal("0.01"), Decimal("8.00")) == 0.13


@pytest.mark.parametrize(
    "transactions",
    [
        [],
        [expense("50")],
        [income("10"), expense("10.01")],
        [income("100"), expense("40"), expense("70")],
        [income("20000")],
    ],
)
def test_progress_and_remaining_are_never_negative(transactions) -> None:
    progress = compute_goal_progress(Decimal("1000"), transactions)

    assert progress.current_progress >= 0
    assert progress.remaining_amount >= 0
    assert progress.progress_percentage >= 0


def test_progress_over_target_reports_zero_remaining() -> None:
    progress = compute_goal_progress(
        Decimal("500"), [income("900"), expense("100")]
    )

    assert progress.current_progress == Decimal("800.00")
    assert progress.remaining_amount == Decimal("0.00")
    assert progress.progress_percentage == 160.0


def test_aggregation_uses_snapshot_type_not_category_name() -> None:
    # a transaction keeps the type it was written with
    totals = aggregate_transactions(
        [income("40", category="Food"), expense("15", category="Food")]
    )

    assert totals.income_by_category == {"Food": Decimal("40.00")}
    assert totals.expense_by_category == {"Food": Decimal("15.00")}
    assert totals.net_savings == Decimal("25.00")


def test_aggregation_is_exact_for_cent_amounts() -> None:
    totals = aggregate_transactions(
        [expense("0.10"), expense("0.20"), income("0.30", category="Gift")]
    )

    assert totals.expense_by_category == {"Food": Decimal("0.30")}
    assert totals.net_savings == Decimal("0.00")
    assert totals.net_savings == sum(totals.income_by_category.values()) - sum(
        totals.expense_by_category.values()
    )


def test_aggregation_of_nothing_is_zero() -> None:
    totals = aggregate_transactions([])

    assert totals.income_by_category == {}
    assert totals.expense_by_category == {}
    assert totals.net_savings == 0
