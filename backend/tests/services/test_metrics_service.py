"""
Tests for backend/fintrack/services/metrics_service.py

Covers range filtering, summary totals, category breakdown, monthly
aggregates, budget forecasting, the financial health score, goal progress
and the tax-deductible expense filter.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from fintrack.schemas.records import TransactionType
from fintrack.services.metrics_service import (
    budget_forecast,
    category_breakdown,
    filter_by_range,
    financial_health_score,
    goal_progress,
    monthly_aggregates,
    summary_metrics,
    tax_deductible_expenses,
)

from factories import make_budget, make_goal, make_range, make_txn


# ---------------------------------------------------------------------------
# filter_by_range
# ---------------------------------------------------------------------------


class TestFilterByRange:
    """Tests for filter_by_range()"""

    def test_both_ends_are_inclusive(self):
        """Records on the first and last instant of the range are kept."""
        first = make_txn(10, date="2025-03-01T00:00:00")
        last = make_txn(20, date="2025-03-31T23:59:59.999999")
        result = filter_by_range([first, last], make_range())
        assert result == [first, last]

    def test_end_day_is_widened_to_whole_day(self):
        """A range ending at midnight still covers the rest of that day."""
        late = make_txn(10, date="2025-03-31T18:45:00")
        result = filter_by_range([late], make_range("2025-03-01", "2025-03-31T00:00:00"))
        assert result == [late]

    def test_outside_records_dropped(self):
        before = make_txn(10, date="2025-02-28T23:59:59")
        after = make_txn(10, date="2025-04-01T00:00:00")
        inside = make_txn(10, date="2025-03-15")
        assert filter_by_range([before, inside, after], make_range()) == [inside]

    def test_idempotent(self, march_transactions):
        """Filtering an already filtered list by the same range changes nothing."""
        extra = make_txn(99, date="2025-05-01")
        window = make_range()
        once = filter_by_range(march_transactions + [extra], window)
        twice = filter_by_range(once, window)
        assert once == twice

    def test_preserves_input_order(self, march_transactions):
        result = filter_by_range(march_transactions, make_range())
        assert [t.id for t in result] == ["t1", "t2", "t3"]


# ---------------------------------------------------------------------------
# summary_metrics
# ---------------------------------------------------------------------------


class TestSummaryMetrics:
    """Tests for summary_metrics()"""

    def test_totals_and_savings_rate(self, march_transactions):
        result = summary_metrics(march_transactions)
        assert result.total_income == Decimal("1000")
        assert result.total_expense == Decimal("80")
        assert result.net_savings == Decimal("920")
        assert result.savings_rate == Decimal("92")

    def test_net_savings_is_exact_difference(self):
        """Decimal arithmetic keeps cents exact."""
        records = [
            make_txn("0.10", "income"),
            make_txn("0.20", "income"),
            make_txn("0.30", "expense"),
        ]
        result = summary_metrics(records)
        assert result.net_savings == result.total_income - result.total_expense
        assert result.net_savings == Decimal("0")

    def test_no_income_gives_zero_rate(self):
        """Edge case: savings rate is 0 rather than a division error."""
        result = summary_metrics([make_txn(25, "expense")])
        assert result.savings_rate == Decimal("0")
        assert result.net_savings == Decimal("-25")

    def test_empty_records(self):
        result = summary_metrics([])
        assert result.total_income == 0
        assert result.total_expense == 0
        assert result.savings_rate == 0

    def test_overspending_gives_negative_rate(self):
        result = summary_metrics([make_txn(100, "income"), make_txn(150, "expense")])
        assert result.savings_rate == Decimal("-50")


# ---------------------------------------------------------------------------
# category_breakdown
# ---------------------------------------------------------------------------


class TestCategoryBreakdown:
    """Tests for category_breakdown()"""

    def test_groups_by_category_and_type(self, march_transactions):
        rows = category_breakdown(march_transactions)
        assert [(r.category, r.type, r.count, r.amount) for r in rows] == [
            ("Salary", TransactionType.INCOME, 1, Decimal("1000")),
            ("Food", TransactionType.EXPENSE, 2, Decimal("80")),
        ]

    def test_income_rows_have_no_percent(self, march_transactions):
        rows = category_breakdown(march_transactions)
        income = next(r for r in rows if r.type == TransactionType.INCOME)
        assert income.percent_of_type_total is None

    def test_expense_percentages_sum_to_100(self):
        records = [
            make_txn(10, category="Food"),
            make_txn(20, category="Transport"),
            make_txn(40, category="Rent"),
            make_txn(500, "income", category="Salary"),
        ]
        rows = category_breakdown(records)
        total = sum(r.percent_of_type_total for r in rows if r.percent_of_type_total is not None)
        assert abs(total - Decimal("100")) <= Decimal("0.1")

    def test_percent_relative_to_expense_only(self):
        records = [make_txn(25, category="Food"), make_txn(75, category="Rent"),
                   make_txn(1000, "income", category="Salary")]
        by_category = {r.category: r for r in category_breakdown(records)}
        assert by_category["Food"].percent_of_type_total == Decimal("25")
        assert by_category["Rent"].percent_of_type_total == Decimal("75")

    def test_ties_broken_by_category_name(self):
        records = [make_txn(50, category="Food"), make_txn(50, category="Bills")]
        rows = category_breakdown(records)
        assert [r.category for r in rows] == ["Bills", "Food"]

    def test_same_category_different_types_are_separate_rows(self):
        records = [make_txn(40, "expense", "Gifts"), make_txn(60, "income", "Gifts")]
        rows = category_breakdown(records)
        assert len(rows) == 2
        assert rows[0].type == TransactionType.INCOME

    def test_empty(self):
        assert category_breakdown([]) == []


# ---------------------------------------------------------------------------
# monthly_aggregates
# ---------------------------------------------------------------------------


class TestMonthlyAggregates:
    """Tests for monthly_aggregates()"""

    def test_sorted_chronologically(self):
        records = [
            make_txn(30, date="2025-03-04"),
            make_txn(500, "income", date="2024-12-20"),
            make_txn(10, date="2025-01-15"),
        ]
        rows = monthly_aggregates(records)
        assert [r.month_key for r in rows] == ["2024-12", "2025-01", "2025-03"]

    def test_single_month_totals(self, march_transactions):
        rows = monthly_aggregates(march_transactions)
        assert len(rows) == 1
        row = rows[0]
        assert row.month_key == "2025-03"
        assert row.income == Decimal("1000")
        assert row.expense == Decimal("80")
        assert row.net_savings == Decimal("920")

    def test_month_with_only_expenses(self):
        rows = monthly_aggregates([make_txn(12, date="2025-02-02")])
        assert rows[0].income == 0
        assert rows[0].net_savings == Decimal("-12")


# ---------------------------------------------------------------------------
# budget_forecast
# ---------------------------------------------------------------------------


class TestBudgetForecast:
    """Tests for budget_forecast()"""

    def test_linear_run_rate_projection(self):
        """500 spent by day 10 of a 30-day month projects to 1500."""
        txns = [
            make_txn(300, category="Food", date="2025-06-02"),
            make_txn(200, category="Food", date="2025-06-09"),
        ]
        budgets = [make_budget("Food", "2025-06", 1000)]

        rows = budget_forecast(txns, budgets, datetime(2025, 6, 10))

        assert len(rows) == 1
        row = rows[0]
        assert row.spent_so_far == Decimal("500")
        assert row.projected_total == Decimal("1500")
        assert row.over_budget is True

    def test_no_spending_never_over_budget(self):
        rows = budget_forecast([], [make_budget("Food", "2025-06", 100)], datetime(2025, 6, 10))
        assert rows[0].projected_total == 0
        assert rows[0].over_budget is False

    def test_only_budgets_for_as_of_month(self):
        budgets = [make_budget("Food", "2025-05", 100), make_budget("Food", "2025-06", 100)]
        rows = budget_forecast([], budgets, datetime(2025, 6, 10))
        assert len(rows) == 1

    def test_zero_budget_excluded(self):
        budgets = [make_budget("Food", "2025-06", 0), make_budget("Rent", "2025-06", 900)]
        rows = budget_forecast([], budgets, datetime(2025, 6, 10))
        assert [r.category for r in rows] == ["Rent"]

    def test_spending_after_as_of_ignored(self):
        txns = [
            make_txn(100, category="Food", date="2025-06-05"),
            make_txn(900, category="Food", date="2025-06-20"),
        ]
        rows = budget_forecast(txns, [make_budget("Food", "2025-06", 1000)], datetime(2025, 6, 10))
        assert rows[0].spent_so_far == Decimal("100")

    def test_income_not_counted_as_spending(self):
        txns = [make_txn(400, "income", category="Food", date="2025-06-05")]
        rows = budget_forecast(txns, [make_budget("Food", "2025-06", 100)], datetime(2025, 6, 10))
        assert rows[0].spent_so_far == 0

    def test_last_day_projection_equals_spent(self):
        txns = [make_txn(250, category="Fun", date="2025-06-30")]
        rows = budget_forecast(txns, [make_budget("Fun", "2025-06", 200)], datetime(2025, 6, 30))
        assert rows[0].projected_total == Decimal("250")
        assert rows[0].over_budget is True

    def test_sorted_most_at_risk_first(self):
        txns = [
            make_txn(100, category="Food", date="2025-06-05"),
            make_txn(100, category="Fun", date="2025-06-05"),
        ]
        budgets = [
            make_budget("Food", "2025-06", 1000),
            make_budget("Fun", "2025-06", 200),
            make_budget("Rent", "2025-06", 800),
        ]
        rows = budget_forecast(txns, budgets, datetime(2025, 6, 10))
        assert [r.category for r in rows] == ["Fun", "Food", "Rent"]


# ---------------------------------------------------------------------------
# financial_health_score
# ---------------------------------------------------------------------------


class TestFinancialHealthScore:
    """Tests for financial_health_score()"""

    def test_empty_history_scores_fair(self):
        """No records and no budgets: 0*0.3 + 100*0.3 + 100*0.2 + 0*0.2 = 50."""
        result = financial_health_score([], [], "2025-03", "2025-02")

        assert result.score == 50
        assert result.status == "Fair"
        assert result.component_scores["savings"] == 0
        assert result.component_scores["budget_adherence"] == 100
        assert result.component_scores["trend"] == 100
        assert result.component_scores["activity"] == 0

    def test_excellent_month(self):
        txns = [make_txn(1000, "income", "Salary", "2025-03-01")]
        txns += [make_txn(25, "expense", "Food", f"2025-03-0{d}") for d in range(2, 6)]
        txns.append(make_txn(200, "expense", "Food", "2025-02-10"))
        budgets = [make_budget("Food", "2025-03", 200)]

        result = financial_health_score(txns, budgets, "2025-03", "2025-02")

        assert result.component_scores == {
            "savings": 100.0,
            "budget_adherence": 100.0,
            "trend": 100.0,
            "activity": 100.0,
        }
        assert result.score == 100
        assert result.status == "Excellent"

    def test_mixed_month(self):
        """Savings 100, adherence 50, trend 50, activity 40 -> 63 (Good)."""
        txns = [
            make_txn(1000, "income", "Salary", "2025-03-01"),
            make_txn(150, "expense", "Food", "2025-03-08"),
            make_txn(100, "expense", "Food", "2025-02-08"),
        ]
        budgets = [make_budget("Food", "2025-03", 100), make_budget("Rent", "2025-03", 500)]

        result = financial_health_score(txns, budgets, "2025-03", "2025-02")

        assert result.component_scores["savings"] == pytest.approx(100.0)
        assert result.component_scores["budget_adherence"] == pytest.approx(50.0)
        assert result.component_scores["trend"] == pytest.approx(50.0)
        assert result.component_scores["activity"] == pytest.approx(40.0)
        assert result.score == 63
        assert result.status == "Good"

    def test_spending_from_nothing_zeroes_trend(self):
        txns = [make_txn(10, "expense", date="2025-03-03")]
        result = financial_health_score(txns, [], "2025-03", "2025-02")
        assert result.component_scores["trend"] == 0

    def test_trend_clamped_at_zero(self):
        txns = [
            make_txn(10, "expense", date="2025-02-03"),
            make_txn(100, "expense", date="2025-03-03"),
        ]
        result = financial_health_score(txns, [], "2025-03", "2025-02")
        assert result.component_scores["trend"] == 0

    def test_negative_savings_clamped(self):
        txns = [make_txn(100, "income", date="2025-03-01"), make_txn(300, date="2025-03-02")]
        result = financial_health_score(txns, [], "2025-03", "2025-02")
        assert result.component_scores["savings"] == 0

    def test_needs_improvement_bucket(self):
        txns = [
            make_txn(100, "expense", "Food", "2025-03-03"),
            make_txn(10, "expense", "Food", "2025-02-03"),
        ]
        budgets = [make_budget("Food", "2025-03", 50)]
        result = financial_health_score(txns, budgets, "2025-03", "2025-02")
        # savings 0, adherence 0, trend 0, activity 20 -> 4
        assert result.score == 4
        assert result.status == "Needs Improvement"


# ---------------------------------------------------------------------------
# goal_progress
# ---------------------------------------------------------------------------


class TestGoalProgress:
    """Tests for goal_progress()"""

    def _goal(self, **overrides):
        params = dict(
            name="Vacation",
            target=1000,
            initial=100,
            target_date="2025-09-30",
            contributions=[("2025-02-10", 200), ("2025-03-05", 100), ("2025-04-10", 50)],
        )
        params.update(overrides)
        return make_goal(**params)

    def test_progress_as_of_range_end(self):
        rows = goal_progress([self._goal()], make_range())
        row = rows[0]
        assert row.saved_to_date == Decimal("400")
        assert row.contributed_in_period == Decimal("100")
        assert row.remaining == Decimal("600")
        assert row.percent_complete == Decimal("40")
        assert row.monthly_target == Decimal("100")  # 600 over Apr..Sep

    def test_reached_goal_needs_nothing_more(self):
        rows = goal_progress([self._goal(target=300)], make_range())
        assert rows[0].remaining == 0
        assert rows[0].monthly_target == 0

    def test_no_target_date(self):
        rows = goal_progress([self._goal(target_date=None)], make_range())
        assert rows[0].monthly_target == 0

    def test_overdue_goal_due_in_one_month(self):
        rows = goal_progress([self._goal(target_date="2025-01-31")], make_range())
        assert rows[0].monthly_target == rows[0].remaining

    def test_inactive_goals_skipped(self):
        rows = goal_progress([self._goal(is_active=False)], make_range())
        assert rows == []

    def test_ordered_by_percent_complete(self):
        goals = [
            make_goal(name="Car", target=10000, initial=1000),
            make_goal(name="Laptop", target=2000, initial=1500),
        ]
        rows = goal_progress(goals, make_range())
        assert [r.name for r in rows] == ["Laptop", "Car"]


# ---------------------------------------------------------------------------
# tax_deductible_expenses
# ---------------------------------------------------------------------------


class TestTaxDeductibleExpenses:
    """Tests for tax_deductible_expenses()"""

    def test_filters_by_category_case_insensitive(self):
        records = [
            make_txn(80, category="Medical", date="2025-03-09"),
            make_txn(20, category="Food"),
            make_txn(40, category="charity", date="2025-03-02"),
        ]
        result = tax_deductible_expenses(records, ["medical", "Charity"])
        assert [r.category for r in result] == ["charity", "Medical"]

    def test_empty_set_means_all_expenses(self):
        records = [make_txn(10, category="Food"), make_txn(900, "income", category="Salary")]
        result = tax_deductible_expenses(records, [])
        assert [r.category for r in result] == ["Food"]

    def test_ordered_by_category_then_date(self):
        records = [
            make_txn(5, category="Office", date="2025-03-20", id="b"),
            make_txn(5, category="Office", date="2025-03-02", id="a"),
        ]
        result = tax_deductible_expenses(records)
        assert [r.id for r in result] == ["a", "b"]
