from datetime import date

import pytest

from entities import BudgetPeriod
from periods import (
    Period,
    add_months,
    budget_window,
    month_end,
    previous_period,
    resolve_period,
)

TODAY = date(2024, 3, 15)


@pytest.mark.parametrize(
    ("slug", "start", "end"),
    [
        ("this_month", date(2024, 3, 1), date(2024, 3, 31)),
        ("last_month", date(2024, 2, 1), date(2024, 2, 29)),
        ("last_3_months", date(2024, 1, 1), date(2024, 3, 31)),
        ("last_6_months", date(2023, 10, 1), date(2024, 3, 31)),
        ("this_year", date(2024, 1, 1), date(2024, 3, 31)),
        ("all", date(2020, 1, 1), date(2024, 3, 31)),
    ],
)
def test_resolve_presets(slug: str, start: date, end: date) -> None:
    period = resolve_period(slug, None, None, today=TODAY)
    assert (period.slug, period.start, period.end) == (slug, start, end)


def test_unknown_slug_falls_back_to_this_month() -> None:
    period = resolve_period("fortnight", None, None, today=TODAY)
    assert period.slug == "this_month"
    assert period.label == "This Month"


def test_custom_period() -> None:
    period = resolve_period("custom", "2024-01-10", "2024-01-20", today=TODAY)
    assert period.start == date(2024, 1, 10)
    assert period.end == date(2024, 1, 20)
    assert period.days == 11


def test_custom_period_validation() -> None:
    with pytest.raises(ValueError):
        resolve_period("custom", "2024-01-10", None, today=TODAY)
    with pytest.raises(ValueError):
        resolve_period("custom", "2024-02-01", "2024-01-01", today=TODAY)


def test_month_helpers_cross_year() -> None:
    assert add_months(date(2024, 1, 31), -1) == date(2023, 12, 1)
    assert add_months(date(2023, 11, 15), 3) == date(2024, 2, 1)
    assert month_end(date(2023, 12, 5)) == date(2023, 12, 31)


def test_previous_period_for_whole_months() -> None:
    march = resolve_period("this_month", None, None, today=TODAY)
    prev = previous_period(march)
    assert (prev.start, prev.end) == (date(2024, 2, 1), date(2024, 2, 29))

    quarter = resolve_period("last_3_months", None, None, today=TODAY)
    prev = previous_period(quarter)
    assert (prev.start, prev.end) == (date(2023, 10, 1), date(2023, 12, 31))


def test_previous_period_for_arbitrary_range() -> None:
    prev = previous_period(Period("custom", date(2024, 1, 10), date(2024, 1, 20)))
    assert (prev.start, prev.end) == (date(2023, 12, 30), date(2024, 1, 9))
    assert prev.days == 11


def test_budget_window() -> None:
    assert budget_window(BudgetPeriod.monthly, TODAY) == (date(2024, 3, 1), TODAY)
    assert budget_window(BudgetPeriod.yearly, TODAY) == (date(2024, 1, 1), TODAY)
