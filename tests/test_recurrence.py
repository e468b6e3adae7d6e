from datetime import date
from decimal import Decimal

import pytest

from entities import Frequency, Transaction, TransactionType
from recurrence import (
    calculate_next_date,
    monthly_amount,
    next_occurrence,
    recurring_statistics,
)


def _recurring(
    id: str,
    type: TransactionType,
    amount: str,
    category: str,
    frequency: Frequency,
    day: date = date(2024, 3, 1),
) -> Transaction:
    return Transaction(
        id=id,
        type=type,
        amount=Decimal(amount),
        category=category,
        description=category,
        date=day,
        recurring=True,
        frequency=frequency,
    )


def test_calculate_next_date_snap_to_end():
    assert calculate_next_date(Frequency.monthly, date(2024, 1, 31)) == date(2024, 2, 29)
    assert calculate_next_date(Frequency.yearly, date(2024, 2, 29)) == date(2025, 2, 28)


def test_calculate_next_date_short_intervals():
    assert calculate_next_date(Frequency.daily, date(2024, 12, 31)) == date(2025, 1, 1)
    assert calculate_next_date(Frequency.weekly, date(2024, 2, 26)) == date(2024, 3, 4)


def test_next_occurrence_of_one_off_is_its_date():
    one_off = Transaction(
        id="x",
        type=TransactionType.expense,
        amount=Decimal("5"),
        category="Food",
        description="",
        date=date(2024, 3, 3),
    )
    assert next_occurrence(one_off) == date(2024, 3, 3)


def test_monthly_amount_normalisation():
    weekly = _recurring("w", TransactionType.expense, "100", "Food", Frequency.weekly)
    daily = _recurring("d", TransactionType.expense, "10", "Food", Frequency.daily)
    yearly = _recurring("y", TransactionType.expense, "1200", "Bills", Frequency.yearly)

    assert monthly_amount(weekly) == Decimal("435.00")
    assert monthly_amount(daily) == Decimal("304.40")
    assert float(monthly_amount(yearly)) == pytest.approx(100.0)


def test_recurring_statistics():
    transactions = [
        _recurring("s", TransactionType.income, "3000", "Salary", Frequency.monthly),
        _recurring("g", TransactionType.expense, "100", "Groceries", Frequency.weekly),
        _recurring("c", TransactionType.expense, "10", "Coffee", Frequency.daily),
        Transaction(
            id="one-off",
            type=TransactionType.expense,
            amount=Decimal("999"),
            category="Shopping",
            description="",
            date=date(2024, 3, 2),
        ),
    ]
    stats = recurring_statistics(transactions, upcoming_from=date(2024, 3, 15))

    assert stats["total_monthly_income"] == Decimal("3000")
    assert stats["total_monthly_expenses"] == Decimal("739.40")
    assert stats["net_monthly"] == Decimal("2260.60")
    assert stats["coverage_ratio"] > 100
    assert stats["counts"] == {"income": 1, "expense": 2, "total": 3}
    assert [row["name"] for row in stats["expense_breakdown"]] == [
        "Groceries",
        "Coffee",
    ]
    assert sum(row["percent"] for row in stats["expense_breakdown"]) == pytest.approx(
        100.0
    )
    # The weekly and daily entries next fall before the 15th.
    assert stats["upcoming"] == [{"id": "s", "next_date": date(2024, 4, 1)}]


def test_recurring_statistics_empty():
    stats = recurring_statistics([])
    assert stats["coverage_ratio"] == 100.0
    assert stats["expense_breakdown"] == []
    assert stats["income_breakdown"] == []
    assert stats["upcoming"] == []
    assert stats["counts"]["total"] == 0
