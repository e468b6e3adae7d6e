"""Derived statistics over in-memory transaction lists.

Every function here is pure: no I/O, no clock reads. Callers that need
"now" pass ``today`` explicitly. Empty input resolves to zero values or
empty sequences, never to an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Literal, Sequence

from entities import (
    Budget,
    BudgetPeriod,
    Subscription,
    Transaction,
    TransactionType,
)
from lookups import (
    BUDGET_STATUS_THRESHOLDS,
    CATEGORY_COLORS,
    FALLBACK_COLOR,
    STATUS_COLORS,
    BudgetStatus,
)
from periods import add_months, budget_window, month_end

ZERO = Decimal("0")
NO_CATEGORY = "None"


@dataclass(frozen=True)
class DailySpending:
    day: date
    amount: Decimal


@dataclass(frozen=True)
class MonthlyStats:
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_cash_flow: Decimal = ZERO
    category_breakdown: dict[str, Decimal] = field(default_factory=dict)
    daily_spending: tuple[DailySpending, ...] = ()
    top_category: str = NO_CATEGORY
    transaction_count: int = 0
    avg_daily_spending: Decimal = ZERO


@dataclass(frozen=True)
class Comparison:
    income_change: float
    expense_change: float
    cash_flow_change: float


@dataclass(frozen=True)
class CashFlowPoint:
    month: date
    label: str
    income: Decimal
    expenses: Decimal
    net: Decimal


@dataclass(frozen=True)
class SpendingSlice:
    category: str
    amount: Decimal
    color: str


@dataclass(frozen=True)
class BudgetProgress:
    budget: Budget
    spent: Decimal
    remaining: Decimal
    percent_used: Decimal
    status: BudgetStatus
    color: str


def filter_by_date_range(
    transactions: Iterable[Transaction], start: date, end: date
) -> list[Transaction]:
    return [txn for txn in transactions if start <= txn.date <= end]


def _sum(transactions: Iterable[Transaction]) -> Decimal:
    return sum((txn.amount for txn in transactions), ZERO)


def calculate_total_income(transactions: Iterable[Transaction]) -> Decimal:
    return _sum(txn for txn in transactions if txn.is_income)


def calculate_total_expenses(transactions: Iterable[Transaction]) -> Decimal:
    return _sum(txn for txn in transactions if txn.is_expense)


def category_totals(
    transactions: Iterable[Transaction],
    txn_type: TransactionType = TransactionType.expense,
) -> dict[str, Decimal]:
    """Sum amounts of one transaction type per category, first-seen order."""
    totals: dict[str, Decimal] = {}
    for txn in transactions:
        if txn.type != txn_type:
            continue
        totals[txn.category] = totals.get(txn.category, ZERO) + txn.amount
    return totals


def top_category(breakdown: dict[str, Decimal]) -> str:
    # Highest amount wins; equal amounts go to the alphabetically first name.
    if not breakdown:
        return NO_CATEGORY
    return min(breakdown.items(), key=lambda item: (-item[1], item[0]))[0]


def get_monthly_stats(
    transactions: Iterable[Transaction], start: date, end: date
) -> MonthlyStats:
    filtered = filter_by_date_range(transactions, start, end)
    total_income = calculate_total_income(filtered)
    total_expenses = calculate_total_expenses(filtered)
    breakdown = category_totals(filtered, TransactionType.expense)

    by_day: dict[date, Decimal] = {}
    for txn in filtered:
        if txn.is_expense:
            by_day[txn.date] = by_day.get(txn.date, ZERO) + txn.amount
    daily = tuple(DailySpending(day, by_day[day]) for day in sorted(by_day))

    avg_daily = total_expenses / len(daily) if daily else ZERO
    return MonthlyStats(
        total_income=total_income,
        total_expenses=total_expenses,
        net_cash_flow=total_income - total_expenses,
        category_breakdown=breakdown,
        daily_spending=daily,
        top_category=top_category(breakdown),
        transaction_count=len(filtered),
        avg_daily_spending=avg_daily,
    )


def percent_change(current: Decimal, previous: Decimal) -> float:
    if previous <= 0:
        return 0.0
    return float((current - previous) / previous * 100)


def compare_months(current: MonthlyStats, previous: MonthlyStats) -> Comparison:
    if previous.net_cash_flow != 0:
        cash_flow_change = float(
            (current.net_cash_flow - previous.net_cash_flow)
            / abs(previous.net_cash_flow)
            * 100
        )
    else:
        cash_flow_change = 0.0
    return Comparison(
        income_change=percent_change(current.total_income, previous.total_income),
        expense_change=percent_change(
            current.total_expenses, previous.total_expenses
        ),
        cash_flow_change=cash_flow_change,
    )


def calculate_cash_flow_data(
    transactions: Sequence[Transaction], *, today: date, months_back: int = 6
) -> list[CashFlowPoint]:
    out: list[CashFlowPoint] = []
    for offset in range(months_back - 1, -1, -1):
        first = add_months(today, -offset)
        in_month = filter_by_date_range(transactions, first, month_end(first))
        income = calculate_total_income(in_month)
        expenses = calculate_total_expenses(in_month)
        out.append(
            CashFlowPoint(
                month=first,
                label=first.strftime("%b %Y"),
                income=income,
                expenses=expenses,
                net=income - expenses,
            )
        )
    return out


def calculate_spending_data(
    transactions: Iterable[Transaction],
) -> list[SpendingSlice]:
    totals = category_totals(transactions, TransactionType.expense)
    items = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [
        SpendingSlice(
            category=category,
            amount=amount,
            color=CATEGORY_COLORS.get(category, FALLBACK_COLOR),
        )
        for category, amount in items
    ]


def calculate_budget_spent(
    transactions: Iterable[Transaction],
    category: str,
    period: BudgetPeriod,
    *,
    today: date,
) -> Decimal:
    start, end = budget_window(period, today)
    return _sum(
        txn
        for txn in transactions
        if txn.is_expense and txn.category == category and start <= txn.date <= end
    )


def calculate_subscription_cost(
    subscriptions: Iterable[Subscription],
    period: Literal["monthly", "yearly"] = "monthly",
) -> Decimal:
    total = ZERO
    for sub in subscriptions:
        if not sub.is_active:
            continue
        total += sub.annual_cost if period == "yearly" else sub.monthly_cost
    return total


def savings_rate(total_income: Decimal, net: Decimal) -> Decimal:
    if total_income <= 0:
        return ZERO
    return net / total_income * 100


def share_percent(amount: Decimal, total: Decimal) -> Decimal:
    if total == 0:
        return ZERO
    return amount / total * 100


def budget_percent_used(spent: Decimal, limit: Decimal) -> Decimal:
    if limit <= 0:
        return ZERO
    return spent / limit * 100


def budget_status(percent_used: Decimal) -> BudgetStatus:
    for upper_bound, status in BUDGET_STATUS_THRESHOLDS:
        if percent_used < upper_bound:
            return status
    return BudgetStatus.over_budget


def progress_for_budget(budget: Budget, spent: Decimal) -> BudgetProgress:
    percent = budget_percent_used(spent, budget.limit)
    status = budget_status(percent)
    return BudgetProgress(
        budget=budget,
        spent=spent,
        remaining=budget.limit - spent,
        percent_used=percent,
        status=status,
        color=STATUS_COLORS[status],
    )


def budget_progress(
    budgets: Iterable[Budget],
    transactions: Sequence[Transaction],
    *,
    today: date,
) -> list[BudgetProgress]:
    return [budget.progress(transactions, today=today) for budget in budgets]
