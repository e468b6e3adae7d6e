from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional, get_args

from pydantic import BaseModel, Field, model_validator

from entities import (
    BillingCycle,
    BudgetPeriod,
    Frequency,
    SubscriptionStatus,
    TransactionType,
)

ReportSection = Literal[
    "summary",
    "transactions",
    "income_analysis",
    "expense_analysis",
    "subscriptions",
    "budgets",
]
REPORT_SECTIONS: tuple[str, ...] = get_args(ReportSection)


class ReportOptions(BaseModel):
    start: date
    end: date
    title: Optional[str] = None
    period_label: Optional[str] = None
    sections: list[ReportSection] = Field(
        default_factory=lambda: list(REPORT_SECTIONS)
    )
    transactions_sort: Literal["newest", "oldest"] = "newest"
    generated_at: Optional[datetime] = None
    currency_format: Optional[str] = None
    filename: Optional[str] = Field(default=None, max_length=120)

    @model_validator(mode="after")
    def _check_range(self) -> "ReportOptions":
        if self.start > self.end:
            raise ValueError("Start date must be before end date")
        return self


class TransactionIn(BaseModel):
    type: TransactionType
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=200)
    date: date
    recurring: bool = False
    frequency: Optional[Frequency] = None

    @model_validator(mode="after")
    def _frequency_needs_recurring(self) -> "TransactionIn":
        if self.frequency is not None and not self.recurring:
            raise ValueError("Frequency is only allowed on recurring transactions")
        return self


class SubscriptionIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    category: str = Field(..., min_length=1, max_length=100)
    cost: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    billing_cycle: BillingCycle = BillingCycle.monthly
    next_billing_date: date
    last_used: Optional[date] = None
    status: SubscriptionStatus = SubscriptionStatus.active


class BudgetIn(BaseModel):
    category: str = Field(..., min_length=1, max_length=100)
    limit: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    period: BudgetPeriod = BudgetPeriod.monthly
