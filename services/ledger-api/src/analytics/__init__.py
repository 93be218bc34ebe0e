"""
Pure aggregation over transaction and budget snapshots.

Nothing in this package performs I/O or keeps state between calls; report
routes load records from the store, coerce them into the dataclasses defined
here, and hand them to the functions below.
"""

from .aggregation import (
    BudgetUtilization,
    CategoryShare,
    DashboardView,
    YearOverview,
    budget_utilization,
    budgets_for_period,
    build_dashboard,
    build_year_overview,
    category_breakdown,
    monthly_expense_series,
    monthly_income_series,
    period_expenses,
    period_income,
    running_balance_series,
    sort_chronological,
    sort_recent,
    top_categories,
    total_balance,
    utilization_for_budget,
)
from .categories import (
    CATEGORY_LABELS,
    DEFAULT_LANGUAGE,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    SUPPORTED_LANGUAGES,
    category_label,
    normalize_language,
)
from .records import (
    UNCATEGORIZED,
    Budget,
    Transaction,
    category_key,
    coerce_amount,
    coerce_budget,
    coerce_transaction,
    parse_combined_date,
)

__all__ = [
    "Budget",
    "BudgetUtilization",
    "CATEGORY_LABELS",
    "CategoryShare",
    "DEFAULT_LANGUAGE",
    "DashboardView",
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "SUPPORTED_LANGUAGES",
    "Transaction",
    "UNCATEGORIZED",
    "YearOverview",
    "budget_utilization",
    "budgets_for_period",
    "build_dashboard",
    "build_year_overview",
    "category_breakdown",
    "category_key",
    "category_label",
    "coerce_amount",
    "coerce_budget",
    "coerce_transaction",
    "monthly_expense_series",
    "monthly_income_series",
    "normalize_language",
    "parse_combined_date",
    "period_expenses",
    "period_income",
    "running_balance_series",
    "sort_chronological",
    "sort_recent",
    "top_categories",
    "total_balance",
    "utilization_for_budget",
]
