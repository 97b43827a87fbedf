"""
Tests for category budgets.
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from planboard.aggregation import (
    budget_insights,
    budget_status,
    budget_window,
    build_budget_report,
    calculate_spent,
    normalize_budgets,
    summarize_reports,
)
from planboard.config import BudgetSettings
from planboard.models.finance import Budget, BudgetPeriod, BudgetStatus
from planboard.periods import month_window


NOW = datetime(2025, 2, 15, 12, 0)


def _expense(amount, category, date="2025-02-10"):
    return {"amount": amount, "type": "expense", "category": category, "date": date}


class TestBudgetWindow:
    """Tests for budget_window."""

    def test_monthly(self):
        """Test monthly budgets use the calendar month."""
        assert budget_window(BudgetPeriod.MONTHLY, NOW) == month_window(NOW)

    def test_weekly_is_rolling(self):
        """Test weekly budgets cover the seven days up to now."""
        window = budget_window(BudgetPeriod.WEEKLY, NOW)
        assert window.start == NOW - timedelta(days=7)
        assert window.end == NOW

    def test_yearly(self):
        """Test yearly budgets use the calendar year."""
        window = budget_window(BudgetPeriod.YEARLY, NOW)
        assert window.start == datetime(2025, 1, 1)


class TestSpending:
    """Tests for calculate_spent and budget_status."""

    def test_calculate_spent_only_counts_category_expenses(self):
        """Test income, other categories and other months are ignored."""
        rows = [
            _expense(40, "Courses"),
            _expense(10, "Courses", "2025-02-14"),
            _expense(99, "Loisirs"),
            _expense(77, "Courses", "2025-01-30"),
            {"amount": 500, "type": "income", "category": "Courses", "date": "2025-02-10"},
            {"amount": "oops", "type": "expense", "category": "Courses", "date": "2025-02-10"},
        ]
        spent = calculate_spent(rows, "Courses", month_window(NOW))
        assert spent == Decimal("50")

    @pytest.mark.parametrize("percentage,expected", [
        (0.0, BudgetStatus.GOOD),
        (49.9, BudgetStatus.GOOD),
        (50.0, BudgetStatus.MODERATE),
        (79.9, BudgetStatus.MODERATE),
        (80.0, BudgetStatus.WARNING),
        (100.0, BudgetStatus.EXCEEDED),
        (250.0, BudgetStatus.EXCEEDED),
    ])
    def test_budget_status_thresholds(self, percentage, expected):
        """Test the default status thresholds."""
        assert budget_status(percentage, BudgetSettings()) == expected

    def test_budget_status_custom_thresholds(self):
        """Test thresholds come from settings."""
        settings = BudgetSettings(moderate_threshold=30, warning_threshold=60, exceeded_threshold=90)
        assert budget_status(65.0, settings) == BudgetStatus.WARNING


class TestBudgetReport:
    """Tests for build_budget_report."""

    def test_report_from_rows(self):
        """Test spending, remaining and status for one budget."""
        budget = {"category": "Courses", "amount": 200, "period": "monthly"}
        rows = [_expense(100, "Courses"), _expense(50, "Courses", "2025-02-01")]
        report = build_budget_report(budget, rows, NOW, BudgetSettings())
        assert report.spent == Decimal("150")
        assert report.remaining == Decimal("50")
        assert report.percentage == 75.0
        assert report.status == BudgetStatus.MODERATE
        assert report.window == month_window(NOW)

    def test_weekly_report_ignores_older_spending(self):
        """Test a weekly budget only sees the last seven days."""
        budget = Budget(category="Courses", amount=100, period=BudgetPeriod.WEEKLY)
        rows = [
            _expense(30, "Courses", "2025-02-14"),
            _expense(60, "Courses", "2025-02-03"),
        ]
        report = build_budget_report(budget, rows, NOW, BudgetSettings())
        assert report.spent == Decimal("30")

    def test_overspent_budget(self):
        """Test a negative remaining amount when overspent."""
        budget = Budget(category="Courses", amount=100)
        report = build_budget_report(budget, [_expense(130, "Courses")], NOW, BudgetSettings())
        assert report.remaining == Decimal("-30")
        assert report.status == BudgetStatus.EXCEEDED

    def test_invalid_budget_row(self):
        """Test a budget row with a zero amount is rejected."""
        with pytest.raises(ValueError):
            build_budget_report({"category": "Courses", "amount": 0}, [], NOW)


class TestNormalizeBudgets:
    """Tests for normalize_budgets."""

    def test_invalid_rows_are_counted(self):
        """Test invalid budget rows are skipped and counted as malformed."""
        budget = Budget(category="Courses", amount=200)
        rows = [
            budget,
            {"category": "Loisirs", "amount": 100, "period": "weekly"},
            {"category": "Sorties", "amount": 0},
            {"category": "", "amount": 50},
            "Transport",
        ]
        valid, skipped = normalize_budgets(rows)
        assert valid[0] is budget
        assert [b.category for b in valid] == ["Courses", "Loisirs"]
        assert valid[1].period == BudgetPeriod.WEEKLY
        assert skipped == {"malformed": 3}

    def test_all_valid(self):
        """Test nothing is reported when every row is valid."""
        _, skipped = normalize_budgets([{"category": "Courses", "amount": 200}])
        assert skipped == {}


class TestBudgetInsights:
    """Tests for budget_insights."""

    def test_totals_across_budgets(self):
        """Test totals and status counts across budgets."""
        budgets = [
            {"category": "Courses", "amount": 200},
            {"category": "Loisirs", "amount": 100},
        ]
        rows = [_expense(250, "Courses"), _expense(85, "Loisirs")]
        insights = budget_insights(budgets, rows, NOW, BudgetSettings())
        assert insights.total_budget == Decimal("300")
        assert insights.total_spent == Decimal("335")
        assert insights.remaining == Decimal("-35")
        assert insights.exceeded_count == 1
        assert insights.warning_count == 1
        assert insights.percentage == pytest.approx(111.6667, rel=1e-4)

    def test_no_budgets(self):
        """Test the percentage is zero without budgets."""
        insights = budget_insights([], [_expense(10, "Courses")], NOW)
        assert insights.total_budget == 0
        assert insights.percentage == 0.0
        assert insights.exceeded_count == 0

    def test_invalid_budget_rows_are_left_out(self):
        """Test a malformed budget row does not abort the totals."""
        budgets = [
            {"category": "Courses", "amount": 200},
            {"category": "Loisirs", "amount": 0},
        ]
        insights = budget_insights(budgets, [_expense(50, "Courses")], NOW, BudgetSettings())
        assert insights.total_budget == Decimal("200")
        assert insights.total_spent == Decimal("50")

    def test_summarize_prebuilt_reports(self):
        """Test totals are taken from the given reports and their statuses."""
        settings = BudgetSettings(moderate_threshold=10, warning_threshold=20, exceeded_threshold=30)
        rows = [_expense(50, "Courses")]
        reports = [
            build_budget_report({"category": "Courses", "amount": 200}, rows, NOW, settings),
            build_budget_report({"category": "Loisirs", "amount": 100}, rows, NOW, settings),
        ]
        insights = summarize_reports(reports)
        assert insights.total_budget == Decimal("300")
        assert insights.total_spent == Decimal("50")
        # 50 of 200 is 25%, a warning under these thresholds
        assert insights.warning_count == 1
        assert insights.exceeded_count == 0
