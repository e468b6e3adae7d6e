from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from entities import BudgetPeriod

ALL_TIME_START = date(2020, 1, 1)

PERIOD_LABELS = {
    "this_month": "This Month",
    "last_month": "Last Month",
    "last_3_months": "Last 3 Months",
    "last_6_months": "Last 6 Months",
    "this_year": "This Year",
    "all": "All Time",
}


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date
    label: str = ""

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


def month_start(d: date) -> date:
    return d.replace(day=1)


def month_end(d: date) -> date:
    first = month_start(d)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return next_month - date.resolution


def add_months(d: date, count: int) -> date:
    """First day of the month ``count`` months away from ``d``."""
    month_index = (d.year * 12) + (d.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    return date(year, month, 1)


def resolve_period(
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    today: Optional[date] = None,
) -> Period:
    today = today or date.today()
    if period == "custom":
        if not start or not end:
            raise ValueError("Custom period requires start and end dates")
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end)
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        label = f"{start_date.isoformat()} - {end_date.isoformat()}"
        return Period("custom", start_date, end_date, label)
    if period == "last_month":
        first = add_months(today, -1)
        return Period("last_month", first, month_end(first), PERIOD_LABELS[period])
    if period == "last_3_months":
        return Period(
            period, add_months(today, -2), month_end(today), PERIOD_LABELS[period]
        )
    if period == "last_6_months":
        return Period(
            period, add_months(today, -5), month_end(today), PERIOD_LABELS[period]
        )
    if period == "this_year":
        return Period(
            period, date(today.year, 1, 1), month_end(today), PERIOD_LABELS[period]
        )
    if period == "all":
        return Period(period, ALL_TIME_START, month_end(today), PERIOD_LABELS[period])

    # this month
    return Period(
        "this_month", month_start(today), month_end(today), PERIOD_LABELS["this_month"]
    )


def spans_whole_months(period: Period) -> bool:
    return period.start == month_start(period.start) and period.end == month_end(
        period.end
    )


def previous_period(period: Period) -> Period:
    """Window the given period is compared against.

    Whole-month periods step back by the same number of calendar months so
    "This Month" compares with the full previous month. Any other range uses
    the equally long run of days right before it.
    """
    if spans_whole_months(period):
        months = (
            (period.end.year - period.start.year) * 12
            + period.end.month
            - period.start.month
            + 1
        )
        start = add_months(period.start, -months)
        end = period.start - date.resolution
        return Period("previous", start, end, "Previous Period")
    end = period.start - timedelta(days=1)
    start = end - timedelta(days=period.days - 1)
    return Period("previous", start, end, "Previous Period")


def budget_window(budget_period: BudgetPeriod, today: date) -> tuple[date, date]:
    if budget_period == BudgetPeriod.yearly:
        return date(today.year, 1, 1), today
    return month_start(today), today
