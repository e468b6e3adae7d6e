"""Spreadsheet-style report generation.

``generate_report`` filters the transactions once and hands the same window
to every sheet builder, so the summary, ledger and analysis sheets always
agree on totals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from analytics import (
    ZERO,
    budget_percent_used,
    budget_status,
    calculate_subscription_cost,
    calculate_total_expenses,
    calculate_total_income,
    category_totals,
    filter_by_date_range,
    savings_rate,
    share_percent,
)
from entities import Budget, Subscription, Transaction, TransactionType
from lookups import BUDGET_STATUS_LABELS, BudgetStatus
from schemas import ReportOptions
from workbook import (
    STYLE_HEADER,
    STYLE_MUTED,
    STYLE_SECTION,
    STYLE_TITLE,
    STYLE_TOTAL,
    Cell,
    Sheet,
    Workbook,
    number,
    text,
)

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "FINANCIAL REPORT"
DEFAULT_CURRENCY_FORMAT = '"$"#,##0.00'
DEFAULT_FILENAME_PREFIX = "FinFlow_Export"
DATE_FORMAT = "%Y-%m-%d"

SHEET_NAMES = {
    "summary": "Summary",
    "transactions": "Transactions",
    "income_analysis": "Income Analysis",
    "expense_analysis": "Expense Analysis",
    "subscriptions": "Subscriptions",
    "budgets": "Budget Report",
}

CENT = Decimal("0.01")
TENTH = Decimal("0.1")


def money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_percent(value: Decimal) -> str:
    rounded = value.quantize(TENTH, rounding=ROUND_HALF_UP)
    if rounded.is_zero():
        # Negative zero would print as "-0.0".
        rounded = abs(rounded)
    return f"{rounded}%"


@dataclass(frozen=True)
class CategoryLine:
    category: str
    amount: Decimal
    percent: Decimal
    count: int
    average: Decimal


@dataclass
class ReportContext:
    options: ReportOptions
    transactions: list[Transaction]
    subscriptions: list[Subscription]
    budgets: list[Budget]
    generated_at: datetime
    currency_format: str
    total_income: Decimal
    total_expenses: Decimal
    expense_by_category: dict[str, Decimal]

    @property
    def net_savings(self) -> Decimal:
        return self.total_income - self.total_expenses

    @property
    def today(self) -> date:
        return self.generated_at.date()

    def amount(self, value: Decimal, style: Optional[str] = None) -> Cell:
        return number(money(value), self.currency_format, style)

    def spent_for(self, category: str) -> Decimal:
        return self.expense_by_category.get(category, ZERO)


def category_lines(
    transactions: Sequence[Transaction], txn_type: TransactionType
) -> list[CategoryLine]:
    totals = category_totals(transactions, txn_type)
    counts: dict[str, int] = {}
    for txn in transactions:
        if txn.type == txn_type:
            counts[txn.category] = counts.get(txn.category, 0) + 1
    grand_total = sum(totals.values(), ZERO)
    lines = [
        CategoryLine(
            category=category,
            amount=amount,
            percent=share_percent(amount, grand_total),
            count=counts[category],
            average=amount / counts[category],
        )
        for category, amount in totals.items()
    ]
    lines.sort(key=lambda line: (-line.amount, line.category))
    return lines


def _status_label(status: BudgetStatus) -> str:
    return BUDGET_STATUS_LABELS[status]


def build_summary_sheet(ctx: ReportContext) -> Sheet:
    opts = ctx.options
    sheet = Sheet(name=SHEET_NAMES["summary"])
    sheet.append(text(opts.title or DEFAULT_TITLE, STYLE_TITLE))
    period_label = opts.period_label or (
        f"{opts.start.strftime(DATE_FORMAT)} to {opts.end.strftime(DATE_FORMAT)}"
    )
    sheet.append(text("Period"), text(period_label))
    sheet.append(text("Generated"), text(ctx.generated_at.strftime("%Y-%m-%d %H:%M")))
    sheet.blank()

    sheet.append(text("KEY METRICS", STYLE_SECTION))
    sheet.append(text("Total Income"), ctx.amount(ctx.total_income))
    sheet.append(text("Total Expenses"), ctx.amount(ctx.total_expenses))
    sheet.append(text("Net Savings"), ctx.amount(ctx.net_savings, STYLE_TOTAL))
    sheet.append(
        text("Savings Rate"),
        text(format_percent(savings_rate(ctx.total_income, ctx.net_savings))),
    )
    sheet.append(text("Transactions"), number(len(ctx.transactions)))

    for title, txn_type in (
        ("INCOME BY CATEGORY", TransactionType.income),
        ("EXPENSES BY CATEGORY", TransactionType.expense),
    ):
        sheet.blank()
        sheet.append(text(title, STYLE_SECTION))
        sheet.append(
            text("Category", STYLE_HEADER),
            text("Amount", STYLE_HEADER),
            text("Percentage", STYLE_HEADER),
        )
        lines = category_lines(ctx.transactions, txn_type)
        if not lines:
            sheet.append(text("No transactions", STYLE_MUTED))
        for line in lines:
            sheet.append(
                text(line.category),
                ctx.amount(line.amount),
                text(format_percent(line.percent)),
            )

    active = [sub for sub in ctx.subscriptions if sub.is_active]
    monthly_cost = calculate_subscription_cost(active, "monthly")
    sheet.blank()
    sheet.append(text("SUBSCRIPTIONS", STYLE_SECTION))
    sheet.append(text("Active Subscriptions"), number(len(active)))
    sheet.append(
        text("Unused Subscriptions"),
        number(sum(1 for sub in active if sub.is_unused(ctx.today))),
    )
    sheet.append(text("Monthly Subscription Cost"), ctx.amount(monthly_cost))
    sheet.append(text("Annual Projection"), ctx.amount(monthly_cost * 12))

    sheet.blank()
    sheet.append(text("BUDGETS", STYLE_SECTION))
    sheet.append(text("Budgets Tracked"), number(len(ctx.budgets)))
    for status, count in _status_tally(ctx).items():
        sheet.append(text(_status_label(status)), number(count))
    return sheet


def build_transactions_sheet(ctx: ReportContext) -> Sheet:
    sheet = Sheet(name=SHEET_NAMES["transactions"])
    sheet.append(
        *(
            text(header, STYLE_HEADER)
            for header in (
                "Date",
                "Description",
                "Category",
                "Type",
                "Amount",
                "Recurring",
                "Frequency",
            )
        )
    )
    newest_first = ctx.options.transactions_sort == "newest"
    ledger = sorted(ctx.transactions, key=lambda t: t.date, reverse=newest_first)
    for txn in ledger:
        sheet.append(
            text(txn.date.strftime(DATE_FORMAT)),
            text(txn.description),
            text(txn.category),
            text(txn.type.value),
            ctx.amount(txn.amount),
            text("Yes" if txn.recurring else "No"),
            text(txn.frequency.value if txn.recurring and txn.frequency else "N/A"),
        )

    sheet.blank()
    padding = [text("") for _ in range(3)]
    sheet.append(
        text("TOTAL INCOME", STYLE_TOTAL), *padding, ctx.amount(ctx.total_income)
    )
    sheet.append(
        text("TOTAL EXPENSES", STYLE_TOTAL), *padding, ctx.amount(ctx.total_expenses)
    )
    sheet.append(
        text("NET", STYLE_TOTAL), *padding, ctx.amount(ctx.net_savings, STYLE_TOTAL)
    )
    return sheet


def build_income_analysis_sheet(ctx: ReportContext) -> Sheet:
    sheet = Sheet(name=SHEET_NAMES["income_analysis"])
    sheet.append(text("INCOME ANALYSIS", STYLE_TITLE))
    sheet.blank()
    sheet.append(
        *(
            text(header, STYLE_HEADER)
            for header in ("Category", "Amount", "Percentage", "Transactions", "Average")
        )
    )
    lines = category_lines(ctx.transactions, TransactionType.income)
    for line in lines:
        sheet.append(
            text(line.category),
            ctx.amount(line.amount),
            text(format_percent(line.percent)),
            number(line.count),
            ctx.amount(line.average),
        )
    sheet.blank()
    count = sum(line.count for line in lines)
    sheet.append(
        text("TOTAL INCOME", STYLE_TOTAL),
        ctx.amount(ctx.total_income, STYLE_TOTAL),
        text(format_percent(Decimal(100) if lines else ZERO)),
        number(count),
        ctx.amount(ctx.total_income / count if count else ZERO),
    )
    return sheet


def build_expense_analysis_sheet(ctx: ReportContext) -> Sheet:
    sheet = Sheet(name=SHEET_NAMES["expense_analysis"])
    sheet.append(text("EXPENSE ANALYSIS", STYLE_TITLE))
    sheet.blank()
    sheet.append(
        *(
            text(header, STYLE_HEADER)
            for header in (
                "Category",
                "Amount",
                "Percentage",
                "Transactions",
                "Average",
                "Budget",
                "% of Budget",
                "Status",
            )
        )
    )
    # First budget wins when several exist for one category.
    budgets_by_category: dict[str, Budget] = {}
    for budget in ctx.budgets:
        budgets_by_category.setdefault(budget.category, budget)

    lines = category_lines(ctx.transactions, TransactionType.expense)
    for line in lines:
        row = [
            text(line.category),
            ctx.amount(line.amount),
            text(format_percent(line.percent)),
            number(line.count),
            ctx.amount(line.average),
        ]
        budget = budgets_by_category.get(line.category)
        if budget is None:
            row.extend([text("No budget", STYLE_MUTED), text(""), text("")])
        else:
            percent = budget_percent_used(line.amount, budget.limit)
            row.extend(
                [
                    ctx.amount(budget.limit),
                    text(format_percent(percent)),
                    text(_status_label(budget_status(percent))),
                ]
            )
        sheet.append(*row)
    sheet.blank()
    count = sum(line.count for line in lines)
    sheet.append(
        text("TOTAL EXPENSES", STYLE_TOTAL),
        ctx.amount(ctx.total_expenses, STYLE_TOTAL),
        text(format_percent(Decimal(100) if lines else ZERO)),
        number(count),
        ctx.amount(ctx.total_expenses / count if count else ZERO),
    )
    return sheet


def build_subscriptions_sheet(ctx: ReportContext) -> Sheet:
    sheet = Sheet(name=SHEET_NAMES["subscriptions"])
    sheet.append(text("ACTIVE SUBSCRIPTIONS", STYLE_TITLE))
    sheet.blank()
    sheet.append(
        *(
            text(header, STYLE_HEADER)
            for header in (
                "Name",
                "Category",
                "Cost",
                "Billing Cycle",
                "Monthly Cost",
                "Annual Cost",
                "Next Billing",
                "Last Used",
                "Unused",
            )
        )
    )
    active = [sub for sub in ctx.subscriptions if sub.is_active]
    for sub in active:
        sheet.append(
            text(sub.name),
            text(sub.category),
            ctx.amount(sub.cost),
            text(sub.billing_cycle.value),
            ctx.amount(sub.monthly_cost),
            ctx.amount(sub.annual_cost),
            text(sub.next_billing_date.strftime(DATE_FORMAT)),
            text(sub.last_used.strftime(DATE_FORMAT) if sub.last_used else "Never"),
            text("Yes" if sub.is_unused(ctx.today) else "No"),
        )
    sheet.blank()
    sheet.append(text("TOTALS", STYLE_SECTION))
    sheet.append(
        text("Total Monthly Cost"),
        ctx.amount(calculate_subscription_cost(active, "monthly"), STYLE_TOTAL),
    )
    sheet.append(
        text("Total Annual Cost"),
        ctx.amount(calculate_subscription_cost(active, "yearly"), STYLE_TOTAL),
    )
    return sheet


def _status_tally(ctx: ReportContext) -> dict[BudgetStatus, int]:
    tally = {status: 0 for status in BudgetStatus}
    for budget in ctx.budgets:
        percent = budget_percent_used(ctx.spent_for(budget.category), budget.limit)
        tally[budget_status(percent)] += 1
    return tally


def build_budget_sheet(ctx: ReportContext) -> Sheet:
    """Budgets measured against the report window rather than the live cycle."""
    sheet = Sheet(name=SHEET_NAMES["budgets"])
    sheet.append(text("BUDGET REPORT", STYLE_TITLE))
    sheet.blank()
    sheet.append(
        *(
            text(header, STYLE_HEADER)
            for header in (
                "Category",
                "Period",
                "Limit",
                "Spent",
                "Remaining",
                "% Used",
                "Status",
            )
        )
    )
    total_limit = ZERO
    total_spent = ZERO
    for budget in ctx.budgets:
        spent = ctx.spent_for(budget.category)
        percent = budget_percent_used(spent, budget.limit)
        total_limit += budget.limit
        total_spent += spent
        sheet.append(
            text(budget.category),
            text(budget.period.value),
            ctx.amount(budget.limit),
            ctx.amount(spent),
            ctx.amount(budget.limit - spent),
            text(format_percent(percent)),
            text(_status_label(budget_status(percent))),
        )
    sheet.blank()
    sheet.append(
        text("TOTAL", STYLE_TOTAL),
        text(""),
        ctx.amount(total_limit, STYLE_TOTAL),
        ctx.amount(total_spent, STYLE_TOTAL),
        ctx.amount(total_limit - total_spent, STYLE_TOTAL),
        text(format_percent(budget_percent_used(total_spent, total_limit))),
    )
    sheet.blank()
    sheet.append(text("STATUS SUMMARY", STYLE_SECTION))
    for status, count in _status_tally(ctx).items():
        sheet.append(text(_status_label(status)), number(count))
    return sheet


SHEET_BUILDERS = {
    "summary": build_summary_sheet,
    "transactions": build_transactions_sheet,
    "income_analysis": build_income_analysis_sheet,
    "expense_analysis": build_expense_analysis_sheet,
    "subscriptions": build_subscriptions_sheet,
    "budgets": build_budget_sheet,
}


def default_filename(generated_at: datetime, prefix: str = DEFAULT_FILENAME_PREFIX) -> str:
    return f"{prefix}_{generated_at.strftime(DATE_FORMAT)}.xlsx"


def generate_report(
    options: ReportOptions,
    transactions: Sequence[Transaction],
    subscriptions: Sequence[Subscription] = (),
    budgets: Sequence[Budget] = (),
    *,
    generated_at: datetime,
) -> Workbook:
    generated_at = options.generated_at or generated_at

    filtered = filter_by_date_range(transactions, options.start, options.end)
    ctx = ReportContext(
        options=options,
        transactions=filtered,
        subscriptions=list(subscriptions),
        budgets=list(budgets),
        generated_at=generated_at,
        currency_format=options.currency_format or DEFAULT_CURRENCY_FORMAT,
        total_income=calculate_total_income(filtered),
        total_expenses=calculate_total_expenses(filtered),
        expense_by_category=category_totals(filtered, TransactionType.expense),
    )

    book = Workbook(filename=options.filename or default_filename(generated_at))
    for section in SHEET_BUILDERS:
        if section in options.sections:
            book.add_sheet(SHEET_BUILDERS[section](ctx))

    logger.info(
        f"report_built: start={options.start} end={options.end} "
        f"sheets={len(book.sheets)} transactions={len(filtered)}"
    )
    return book
