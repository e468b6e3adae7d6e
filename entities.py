"""Domain records consumed by the analytics engine and the report builder.

Records are immutable and already carry native types: amounts are
``Decimal`` and dates are ``datetime.date``. Converting storage rows into
these records is the job of the service layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence

from lookups import UNUSED_SUBSCRIPTION_DAYS

if TYPE_CHECKING:  # pragma: no cover
    from analytics import BudgetProgress


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class Frequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class BillingCycle(str, Enum):
    monthly = "monthly"
    yearly = "yearly"


class SubscriptionStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    cancelled = "cancelled"


class BudgetPeriod(str, Enum):
    monthly = "monthly"
    yearly = "yearly"


@dataclass(frozen=True)
class Transaction:
    id: str
    type: TransactionType
    amount: Decimal
    category: str
    description: str
    date: date
    recurring: bool = False
    frequency: Optional[Frequency] = None

    def __post_init__(self) -> None:
        if self.frequency is not None and not self.recurring:
            raise ValueError("Frequency is only allowed on recurring transactions")

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.income

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.expense


@dataclass(frozen=True)
class Subscription:
    id: str
    name: str
    category: str
    cost: Decimal
    billing_cycle: BillingCycle
    next_billing_date: date
    last_used: Optional[date] = None
    status: SubscriptionStatus = SubscriptionStatus.active

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.active

    @property
    def monthly_cost(self) -> Decimal:
        if self.billing_cycle == BillingCycle.yearly:
            return self.cost / 12
        return self.cost

    @property
    def annual_cost(self) -> Decimal:
        return self.monthly_cost * 12

    def days_since_used(self, today: date) -> Optional[int]:
        if self.last_used is None:
            return None
        return (today - self.last_used).days

    def is_unused(self, today: date) -> bool:
        days = self.days_since_used(today)
        return days is None or days >= UNUSED_SUBSCRIPTION_DAYS


@dataclass(frozen=True)
class Budget:
    """A spending limit for one category.

    The amount spent is never stored; ``spent`` recomputes it from the
    transactions handed in, for the budget cycle that contains ``today``.
    """

    id: str
    category: str
    limit: Decimal
    period: BudgetPeriod

    def spent(self, transactions: Sequence[Transaction], *, today: date) -> Decimal:
        from analytics import calculate_budget_spent

        return calculate_budget_spent(
            transactions, self.category, self.period, today=today
        )

    def progress(
        self, transactions: Sequence[Transaction], *, today: date
    ) -> "BudgetProgress":
        from analytics import progress_for_budget

        return progress_for_budget(self, self.spent(transactions, today=today))
