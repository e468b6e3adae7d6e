from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from config import get_settings
from entities import Frequency, Transaction, TransactionType

# Average occurrences per month for each frequency.
MONTHLY_FACTORS: dict[Frequency, Decimal] = {
    Frequency.daily: Decimal("30.44"),
    Frequency.weekly: Decimal("4.35"),
    Frequency.monthly: Decimal("1"),
    Frequency.yearly: Decimal("1") / Decimal("12"),
}


def local_now() -> datetime:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).replace(tzinfo=None)


def local_today() -> date:
    return local_now().date()


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def _add_months(base: date, months: int) -> date:
    total_months = base.month - 1 + months
    year = base.year + total_months // 12
    month = total_months % 12 + 1
    return date(year, month, min(base.day, days_in_month(year, month)))


def calculate_next_date(frequency: Frequency, from_date: date) -> date:
    if frequency == Frequency.daily:
        return from_date + timedelta(days=1)
    if frequency == Frequency.weekly:
        return from_date + timedelta(weeks=1)
    if frequency == Frequency.monthly:
        return _add_months(from_date, 1)
    return _add_months(from_date, 12)


def next_occurrence(txn: Transaction) -> date:
    if not txn.recurring or txn.frequency is None:
        return txn.date
    return calculate_next_date(txn.frequency, txn.date)


def monthly_amount(txn: Transaction) -> Decimal:
    factor = MONTHLY_FACTORS.get(txn.frequency, Decimal("1"))
    return txn.amount * factor


def recurring_statistics(
    transactions: Iterable[Transaction], *, upcoming_from: Optional[date] = None
) -> dict[str, object]:
    recurring = [txn for txn in transactions if txn.recurring]

    total_income = Decimal("0")
    total_expenses = Decimal("0")
    income_by_category: dict[str, Decimal] = {}
    expense_by_category: dict[str, Decimal] = {}
    income_count = 0
    expense_count = 0

    for txn in recurring:
        monthly = monthly_amount(txn)
        if txn.type == TransactionType.income:
            total_income += monthly
            income_count += 1
            income_by_category[txn.category] = (
                income_by_category.get(txn.category, Decimal("0")) + monthly
            )
        else:
            total_expenses += monthly
            expense_count += 1
            expense_by_category[txn.category] = (
                expense_by_category.get(txn.category, Decimal("0")) + monthly
            )

    coverage_ratio = (
        float(total_income / total_expenses * 100) if total_expenses > 0 else 100.0
    )

    def build_breakdown(by_category: dict[str, Decimal], total: Decimal) -> list[dict]:
        if total == 0:
            return []
        items = sorted(by_category.items(), key=lambda x: x[1], reverse=True)
        return [
            {
                "name": name,
                "amount": amount,
                "percent": float(amount / total * 100),
            }
            for name, amount in items
        ]

    upcoming = []
    if upcoming_from is not None:
        for txn in recurring:
            next_date = next_occurrence(txn)
            if next_date >= upcoming_from:
                upcoming.append({"id": txn.id, "next_date": next_date})
        upcoming.sort(key=lambda row: row["next_date"])

    return {
        "total_monthly_income": total_income,
        "total_monthly_expenses": total_expenses,
        "net_monthly": total_income - total_expenses,
        "coverage_ratio": coverage_ratio,
        "expense_breakdown": build_breakdown(expense_by_category, total_expenses),
        "income_breakdown": build_breakdown(income_by_category, total_income),
        "upcoming": upcoming,
        "counts": {
            "income": income_count,
            "expense": expense_count,
            "total": income_count + expense_count,
        },
    }
