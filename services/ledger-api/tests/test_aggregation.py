"""Tests for the aggregation engine: balances, period sums, breakdowns, utilization, and series."""

import random

import pytest
from analytics import (
    Budget,
    Transaction,
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
)


def make_tx(
    amount: float,
    category: str = "food",
    month: int | None = 1,
    year: int | None = 2026,
    day: int | None = 1,
    tx_id: str | None = None,
) -> Transaction:
    """Create a Transaction instance for testing."""
    return Transaction(id=tx_id, amount=amount, category=category, day=day, month=month, year=year)


def make_budget(category: str, amount: float, month: int = 1, year: int = 2026, budget_id: str = "b-1") -> Budget:
    """Create a Budget instance for testing."""
    return Budget(id=budget_id, category=category, amount=amount, month=month, year=year)


@pytest.fixture
def scenario_transactions() -> list[Transaction]:
    return [
        make_tx(5000, category="job", month=1),
        make_tx(-1200, category="food", month=1),
        make_tx(-300, category="food", month=2),
    ]


# =============================================================================
# Totals and period sums
# =============================================================================


class TestTotals:
    def test_total_balance_is_sum_of_amounts(self, scenario_transactions):
        assert total_balance(scenario_transactions) == pytest.approx(3500.0)

    def test_total_balance_is_order_independent(self):
        transactions = [make_tx(amount) for amount in (120.5, -40.25, 1000, -999.75, 3)]
        shuffled = list(transactions)
        random.Random(7).shuffle(shuffled)

        assert total_balance(shuffled) == pytest.approx(total_balance(transactions))
        assert total_balance(transactions) == pytest.approx(sum(tx.amount for tx in transactions))

    def test_total_balance_of_empty_snapshot_is_zero(self):
        assert total_balance([]) == 0.0

    def test_period_income_and_expenses_filter_by_period(self, scenario_transactions):
        assert period_income(scenario_transactions, 1, 2026) == pytest.approx(5000.0)
        assert period_expenses(scenario_transactions, 1, 2026) == pytest.approx(1200.0)
        assert period_expenses(scenario_transactions, 2, 2026) == pytest.approx(300.0)
        assert period_income(scenario_transactions, 1, 2025) == 0.0

    def test_zero_amounts_count_toward_neither_side(self):
        transactions = [make_tx(0), make_tx(0, category="job"), make_tx(250, category="job")]

        assert period_income(transactions, 1, 2026) == pytest.approx(250.0)
        assert period_expenses(transactions, 1, 2026) == 0.0
        assert category_breakdown(transactions, 1, 2026) == {}

    def test_undated_transactions_only_affect_total_balance(self):
        transactions = [make_tx(100, month=None, year=None), make_tx(-40)]

        assert total_balance(transactions) == pytest.approx(60.0)
        assert period_income(transactions, 1, 2026) == 0.0
        assert period_expenses(transactions, 1, 2026) == pytest.approx(40.0)


# =============================================================================
# Category breakdown
# =============================================================================


class TestCategoryBreakdown:
    def test_recasing_collapses_into_one_bucket(self):
        transactions = [make_tx(-10, "Food"), make_tx(-20, "food"), make_tx(-30, "FOOD")]

        assert category_breakdown(transactions, 1, 2026) == {"food": pytest.approx(60.0)}

    def test_only_expenses_in_period_are_grouped(self, scenario_transactions):
        assert category_breakdown(scenario_transactions, 1, 2026) == {"food": pytest.approx(1200.0)}

    def test_surrounding_whitespace_is_ignored(self):
        transactions = [make_tx(-5, " Health "), make_tx(-5, "health")]

        assert category_breakdown(transactions, 1, 2026) == {"health": pytest.approx(10.0)}

    def test_top_categories_rank_and_share(self):
        breakdown = {"food": 300.0, "housing": 600.0, "health": 100.0}

        ranked = top_categories(breakdown)

        assert [entry.category for entry in ranked] == ["housing", "food", "health"]
        assert [entry.share for entry in ranked] == pytest.approx([0.6, 0.3, 0.1])

    def test_top_categories_truncates(self):
        breakdown = {f"cat{index}": float(index) for index in range(1, 11)}

        ranked = top_categories(breakdown, limit=3)

        assert [entry.category for entry in ranked] == ["cat10", "cat9", "cat8"]
        assert sum(entry.share for entry in ranked) == pytest.approx(1.0)

    def test_top_categories_of_empty_breakdown(self):
        assert top_categories({}) == []


# =============================================================================
# Budget utilization
# =============================================================================


class TestBudgetUtilization:
    def test_under_budget(self):
        transactions = [make_tx(-850, "food")]
        [entry] = budget_utilization([make_budget("food", 1000)], transactions, 1, 2026)

        assert entry.spent == pytest.approx(850.0)
        assert entry.percentage == pytest.approx(85.0)
        assert entry.display_percentage == pytest.approx(85.0)
        assert entry.over_budget is False

    def test_over_budget_keeps_raw_percentage(self):
        transactions = [make_tx(-1200, "food")]
        [entry] = budget_utilization([make_budget("food", 1000)], transactions, 1, 2026)

        assert entry.percentage == pytest.approx(120.0)
        assert entry.display_percentage == pytest.approx(100.0)
        assert entry.over_budget is True

    def test_exactly_on_budget_is_not_over(self):
        [entry] = budget_utilization([make_budget("food", 500)], [make_tx(-500, "food")], 1, 2026)

        assert entry.percentage == pytest.approx(100.0)
        assert entry.over_budget is False

    def test_budget_category_matches_case_insensitively(self):
        [entry] = budget_utilization([make_budget("Food", 100)], [make_tx(-50, "FOOD")], 1, 2026)

        assert entry.spent == pytest.approx(50.0)

    def test_zero_amount_budget_reports_zero_percent(self):
        [entry] = budget_utilization([make_budget("food", 0)], [make_tx(-50, "food")], 1, 2026)

        assert entry.spent == pytest.approx(50.0)
        assert entry.percentage == 0.0
        assert entry.over_budget is False

    def test_budget_without_spend(self):
        [entry] = budget_utilization([make_budget("health", 200)], [make_tx(-50, "food")], 1, 2026)

        assert entry.spent == 0.0
        assert entry.percentage == 0.0

    def test_only_budgets_in_period_are_reported(self):
        budgets = [make_budget("food", 100, month=1), make_budget("food", 100, month=2, budget_id="b-2")]

        entries = budget_utilization(budgets, [], 2, 2026)

        assert [entry.budget.id for entry in entries] == ["b-2"]

    def test_duplicate_budgets_are_all_returned_in_input_order(self):
        budgets = [
            make_budget("food", 1000, budget_id="b-1"),
            make_budget("FOOD", 2000, budget_id="b-2"),
        ]

        assert [budget.id for budget in budgets_for_period(budgets, 1, 2026)] == ["b-1", "b-2"]
        entries = budget_utilization(budgets, [make_tx(-500, "food")], 1, 2026)
        assert [entry.percentage for entry in entries] == pytest.approx([50.0, 25.0])


# =============================================================================
# Ordering
# =============================================================================


class TestOrdering:
    def test_sort_recent_newest_first(self):
        transactions = [
            make_tx(1, day=5, month=1, tx_id="a"),
            make_tx(2, day=1, month=3, tx_id="b"),
            make_tx(3, day=20, month=2, tx_id="c"),
            make_tx(4, day=1, month=1, year=2027, tx_id="d"),
        ]

        assert [tx.id for tx in sort_recent(transactions)] == ["d", "b", "c", "a"]

    def test_sort_recent_is_stable_for_same_day(self):
        transactions = [make_tx(amount, day=3, tx_id=str(amount)) for amount in (1, 2, 3)]

        assert [tx.id for tx in sort_recent(transactions)] == ["1", "2", "3"]

    def test_sort_recent_limit(self):
        transactions = [make_tx(1, day=day, tx_id=str(day)) for day in range(1, 11)]

        assert [tx.id for tx in sort_recent(transactions, limit=3)] == ["10", "9", "8"]

    def test_sort_chronological_places_undated_first(self):
        transactions = [make_tx(1, tx_id="dated"), make_tx(2, month=None, year=None, day=None, tx_id="undated")]

        assert [tx.id for tx in sort_chronological(transactions)] == ["undated", "dated"]

    def test_sorting_does_not_mutate_input(self):
        transactions = [make_tx(1, day=1, tx_id="a"), make_tx(2, day=2, tx_id="b")]

        sort_recent(transactions)

        assert [tx.id for tx in transactions] == ["a", "b"]


# =============================================================================
# Monthly series
# =============================================================================


class TestSeries:
    def test_concrete_scenario(self, scenario_transactions):
        assert monthly_income_series(scenario_transactions, 2026) == [5000.0] + [0.0] * 11
        assert monthly_expense_series(scenario_transactions, 2026) == [1200.0, 300.0] + [0.0] * 10
        assert running_balance_series(scenario_transactions, 2026) == [3800.0] + [3500.0] * 11

    def test_series_are_zero_filled_for_other_years(self, scenario_transactions):
        assert monthly_income_series(scenario_transactions, 2025) == [0.0] * 12
        assert monthly_expense_series(scenario_transactions, 2025) == [0.0] * 12
        assert running_balance_series(scenario_transactions, 2025) == [0.0] * 12

    def test_running_balance_carries_forward_through_empty_months(self):
        transactions = [make_tx(100, month=2), make_tx(-30, month=5), make_tx(10, month=5, day=9)]

        series = running_balance_series(transactions, 2026)

        assert series[0] == 0.0
        assert series[1] == pytest.approx(100.0)
        assert series[2] == series[1]
        assert series[3] == series[1]
        assert series[4] == pytest.approx(80.0)
        assert series[5:] == [pytest.approx(80.0)] * 7

    def test_running_balance_can_decrease(self):
        transactions = [make_tx(500, month=1), make_tx(-800, month=2)]

        assert running_balance_series(transactions, 2026)[:2] == [500.0, -300.0]

    def test_running_balance_opens_with_prior_years(self):
        transactions = [
            make_tx(1000, month=12, year=2025),
            make_tx(-200, month=3, year=2026),
            make_tx(5000, month=1, year=2027),
        ]

        series = running_balance_series(transactions, 2026)

        assert series[:2] == [1000.0, 1000.0]
        assert series[2:] == [800.0] * 10

    def test_running_balance_ignores_input_order(self):
        ordered = [make_tx(100, month=1), make_tx(-50, month=2), make_tx(25, month=4)]
        reversed_input = list(reversed(ordered))

        assert running_balance_series(reversed_input, 2026) == running_balance_series(ordered, 2026)

    def test_year_overview_bundles_series(self, scenario_transactions):
        overview = build_year_overview(scenario_transactions, 2026)

        assert overview.year == 2026
        assert overview.income[0] == 5000.0
        assert overview.expenses[:2] == [1200.0, 300.0]
        assert overview.balance[:3] == [3800.0, 3500.0, 3500.0]


# =============================================================================
# Dashboard
# =============================================================================


def test_build_dashboard_combines_views(scenario_transactions):
    budgets = [make_budget("food", 1000)]

    view = build_dashboard(scenario_transactions, budgets, 1, 2026, recent_limit=2)

    assert view.total_balance == pytest.approx(3500.0)
    assert view.income == pytest.approx(5000.0)
    assert view.expenses == pytest.approx(1200.0)
    assert view.category_breakdown == {"food": pytest.approx(1200.0)}
    [utilization] = view.budgets
    assert utilization.spent == pytest.approx(1200.0)
    assert utilization.percentage == pytest.approx(120.0)
    assert utilization.over_budget is True
    assert len(view.recent_transactions) == 2
    assert view.recent_transactions[0].month == 2
