from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from .records import Budget, Transaction

MONTHS_PER_YEAR = 12
DEFAULT_RECENT_LIMIT = 8
DEFAULT_TOP_CATEGORIES = 8


@dataclass(slots=True)
class CategoryShare:
    category: str
    amount: float
    share: float


@dataclass(slots=True)
class BudgetUtilization:
    budget: Budget
    spent: float
    percentage: float
    display_percentage: float
    over_budget: bool


@dataclass(slots=True)
class DashboardView:
    month: int
    year: int
    total_balance: float
    income: float
    expenses: float
    category_breakdown: Dict[str, float]
    budgets: List[BudgetUtilization]
    recent_transactions: List[Transaction]


@dataclass(slots=True)
class YearOverview:
    year: int
    income: List[float]
    expenses: List[float]
    balance: List[float]


def total_balance(transactions: Iterable[Transaction]) -> float:
    """Sum of every transaction amount regardless of period."""
    return float(sum(tx.amount for tx in transactions))


def period_income(transactions: Iterable[Transaction], month: int, year: int) -> float:
    """Sum of positive amounts dated in the (month, year) period."""
    return float(sum(tx.amount for tx in transactions if tx.amount > 0 and tx.in_period(month, year)))


def period_expenses(transactions: Iterable[Transaction], month: int, year: int) -> float:
    """Sum of absolute negative amounts dated in the (month, year) period."""
    return float(sum(abs(tx.amount) for tx in transactions if tx.amount < 0 and tx.in_period(month, year)))


def category_breakdown(transactions: Iterable[Transaction], month: int, year: int) -> Dict[str, float]:
    """
    Group the period's expenses by canonical (lower-cased) category.

    Args:
        transactions: Snapshot of transactions; only negative amounts in the period count.
        month: Target month, 1-12.
        year: Target year.
    Returns:
        Dict mapping category keys to absolute spend, in first-seen order.
    """
    totals: Dict[str, float] = {}
    for tx in transactions:
        if tx.amount >= 0 or not tx.in_period(month, year):
            continue
        key = tx.category_key
        totals[key] = totals.get(key, 0.0) + abs(tx.amount)
    return totals


def top_categories(breakdown: Dict[str, float], limit: int = DEFAULT_TOP_CATEGORIES) -> List[CategoryShare]:
    """
    Largest categories of a breakdown with their share of the shown total.

    Shares are computed over the truncated list so they sum to 1 whenever any
    spend is shown.
    """
    ranked = sorted(breakdown.items(), key=lambda item: item[1], reverse=True)[: max(0, limit)]
    shown_total = sum(amount for _, amount in ranked)
    return [
        CategoryShare(category=key, amount=amount, share=amount / shown_total if shown_total > 0 else 0.0)
        for key, amount in ranked
    ]


def budgets_for_period(budgets: Iterable[Budget], month: int, year: int) -> List[Budget]:
    """Every budget for the period; duplicates per category are all returned."""
    return [budget for budget in budgets if budget.in_period(month, year)]


def utilization_for_budget(budget: Budget, breakdown: Dict[str, float]) -> BudgetUtilization:
    spent = breakdown.get(budget.category_key, 0.0)
    percentage = spent / budget.amount * 100 if budget.amount > 0 else 0.0
    return BudgetUtilization(
        budget=budget,
        spent=spent,
        percentage=percentage,
        display_percentage=min(percentage, 100.0),
        over_budget=percentage > 100,
    )


def budget_utilization(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    month: int,
    year: int,
) -> List[BudgetUtilization]:
    """
    Compare each period budget against the period's category spend.

    `percentage` may exceed 100 and drives `over_budget`; `display_percentage`
    is capped at 100 for progress bars.
    """
    breakdown = category_breakdown(transactions, month, year)
    return [utilization_for_budget(budget, breakdown) for budget in budgets_for_period(budgets, month, year)]


def sort_recent(transactions: Iterable[Transaction], limit: int | None = None) -> List[Transaction]:
    """Newest first by (year, month, day); same-day transactions keep their input order."""
    ordered = sorted(transactions, key=lambda tx: tx.sort_key, reverse=True)
    if limit is not None:
        return ordered[: max(0, limit)]
    return ordered


def sort_chronological(transactions: Iterable[Transaction]) -> List[Transaction]:
    return sorted(transactions, key=lambda tx: tx.sort_key)


def monthly_income_series(transactions: Sequence[Transaction], year: int) -> List[float]:
    return [period_income(transactions, month, year) for month in range(1, MONTHS_PER_YEAR + 1)]


def monthly_expense_series(transactions: Sequence[Transaction], year: int) -> List[float]:
    return [period_expenses(transactions, month, year) for month in range(1, MONTHS_PER_YEAR + 1)]


def running_balance_series(transactions: Iterable[Transaction], year: int) -> List[float]:
    """
    End-of-month running balance for each month of `year`.

    Transactions are accumulated in chronological order. A month's value is the
    running total after the last transaction dated in or before it, so months
    without activity repeat the previous month. Anything dated before `year`
    (undated transactions sort first) forms the opening balance.
    """
    month_end: Dict[int, float] = {}
    opening = 0.0
    running = 0.0
    for tx in sort_chronological(transactions):
        if tx.year is not None and tx.year > year:
            break
        running += tx.amount
        if tx.year == year and tx.month is not None:
            month_end[tx.month] = running
        else:
            opening = running

    series: List[float] = []
    carried = opening
    for month in range(1, MONTHS_PER_YEAR + 1):
        carried = month_end.get(month, carried)
        series.append(carried)
    return series


def build_dashboard(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
    month: int,
    year: int,
    recent_limit: int = DEFAULT_RECENT_LIMIT,
) -> DashboardView:
    breakdown = category_breakdown(transactions, month, year)
    return DashboardView(
        month=month,
        year=year,
        total_balance=total_balance(transactions),
        income=period_income(transactions, month, year),
        expenses=period_expenses(transactions, month, year),
        category_breakdown=breakdown,
        budgets=[utilization_for_budget(budget, breakdown) for budget in budgets_for_period(budgets, month, year)],
        recent_transactions=sort_recent(transactions, limit=recent_limit),
    )


def build_year_overview(transactions: Sequence[Transaction], year: int) -> YearOverview:
    return YearOverview(
        year=year,
        income=monthly_income_series(transactions, year),
        expenses=monthly_expense_series(transactions, year),
        balance=running_balance_series(transactions, year),
    )


__all__ = [
    "BudgetUtilization",
    "CategoryShare",
    "DashboardView",
    "YearOverview",
    "budget_utilization",
    "budgets_for_period",
    "build_dashboard",
    "build_year_overview",
    "category_breakdown",
    "monthly_expense_series",
    "monthly_income_series",
    "period_expenses",
    "period_income",
    "running_balance_series",
    "sort_chronological",
    "sort_recent",
    "top_categories",
    "total_balance",
    "utilization_for_budget",
]
