"""Static lookup tables shared by the dashboard payloads and the export.

Bump ``LOOKUP_VERSION`` whenever a colour or threshold changes so cached
dashboards and generated reports can be told apart.
"""

from decimal import Decimal
from enum import Enum

LOOKUP_VERSION = "2024.11"

CATEGORY_COLORS: dict[str, str] = {
    "Food": "hsl(var(--chart-1))",
    "Transport": "hsl(var(--chart-2))",
    "Entertainment": "hsl(var(--chart-3))",
    "Shopping": "hsl(var(--chart-4))",
    "Bills": "hsl(var(--chart-5))",
    "Healthcare": "hsl(142, 71%, 45%)",
    "Education": "hsl(262, 83%, 58%)",
    "Other": "hsl(0, 0%, 50%)",
}
FALLBACK_COLOR = CATEGORY_COLORS["Other"]


class BudgetStatus(str, Enum):
    on_track = "on_track"
    alert = "alert"
    warning = "warning"
    over_budget = "over_budget"


# (exclusive upper bound in percent, status); at or above the last bound the
# budget is over.
BUDGET_STATUS_THRESHOLDS: tuple[tuple[Decimal, BudgetStatus], ...] = (
    (Decimal("70"), BudgetStatus.on_track),
    (Decimal("90"), BudgetStatus.alert),
    (Decimal("100"), BudgetStatus.warning),
)

BUDGET_STATUS_LABELS: dict[BudgetStatus, str] = {
    BudgetStatus.on_track: "On Track",
    BudgetStatus.alert: "Alert",
    BudgetStatus.warning: "Warning",
    BudgetStatus.over_budget: "Over Budget",
}

# Progress bar colours on the dashboard.
STATUS_COLORS: dict[BudgetStatus, str] = {
    BudgetStatus.on_track: "green",
    BudgetStatus.alert: "yellow",
    BudgetStatus.warning: "red",
    BudgetStatus.over_budget: "red",
}

UNUSED_SUBSCRIPTION_DAYS = 30
