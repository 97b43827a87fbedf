"""
Category budgets.

Spending for a budget is the sum of expense transactions of its category
inside the budget's current window:
- monthly: the calendar month containing `now`
- weekly:  the seven days leading up to `now`
- yearly:  the calendar year containing `now`
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional, Union

import structlog
from pydantic import ValidationError

from planboard.aggregation.aggregator import (
    HUNDRED,
    SKIP_MALFORMED,
    ZERO,
    normalize_transactions,
)
from planboard.config import BudgetSettings, get_settings
from planboard.models.finance import (
    Budget,
    BudgetInsights,
    BudgetPeriod,
    BudgetReport,
    BudgetStatus,
    Transaction,
    TransactionType,
)
from planboard.periods.windows import TimeWindow, month_window, rolling_window, year_window


logger = structlog.get_logger(__name__)


def budget_window(period: BudgetPeriod, now: datetime) -> TimeWindow:
    if period == BudgetPeriod.WEEKLY:
        return rolling_window(now, days=7)
    if period == BudgetPeriod.YEARLY:
        return year_window(now)
    return month_window(now)


def calculate_spent(
    transactions: Iterable[Union[Transaction, dict]],
    category: str,
    window: TimeWindow,
) -> Decimal:
    """Expenses of one category inside the window."""
    valid, _ = normalize_transactions(transactions)
    return sum(
        (
            t.amount for t in valid
            if t.type == TransactionType.EXPENSE
            and t.category == category
            and window.contains(t.date)
        ),
        ZERO,
    )


def budget_status(
    percentage: float,
    settings: Optional[BudgetSettings] = None,
) -> BudgetStatus:
    settings = settings or get_settings().budgets
    if percentage >= settings.exceeded_threshold:
        return BudgetStatus.EXCEEDED
    if percentage >= settings.warning_threshold:
        return BudgetStatus.WARNING
    if percentage >= settings.moderate_threshold:
        return BudgetStatus.MODERATE
    return BudgetStatus.GOOD


def normalize_budgets(records: Iterable[Any]) -> tuple[list[Budget], dict[str, int]]:
    """
    Validate raw rows into Budget models.

    Returns:
        (valid budgets in input order, {skip_reason: count})
    """
    valid: list[Budget] = []
    skipped: dict[str, int] = {}

    for record in records:
        if isinstance(record, Budget):
            valid.append(record)
            continue
        if not isinstance(record, dict):
            skipped[SKIP_MALFORMED] = skipped.get(SKIP_MALFORMED, 0) + 1
            continue
        try:
            valid.append(Budget.model_validate(record))
        except ValidationError:
            skipped[SKIP_MALFORMED] = skipped.get(SKIP_MALFORMED, 0) + 1

    if skipped:
        logger.warning("budgets_skipped", reasons=skipped)
    return valid, skipped


def build_budget_report(
    budget: Union[Budget, dict],
    transactions: Iterable[Union[Transaction, dict]],
    now: datetime,
    settings: Optional[BudgetSettings] = None,
) -> BudgetReport:
    """
    Spending against one budget for its current window.

    Raises:
        ValidationError: budget is a dict that is not a valid budget
    """
    if isinstance(budget, dict):
        budget = Budget.model_validate(budget)

    window = budget_window(budget.period, now)
    spent = calculate_spent(transactions, budget.category, window)
    percentage = float(spent / budget.amount * HUNDRED)

    return BudgetReport(
        budget=budget,
        window=window,
        spent=spent,
        remaining=budget.amount - spent,
        percentage=percentage,
        status=budget_status(percentage, settings),
    )


def summarize_reports(reports: Iterable[BudgetReport]) -> BudgetInsights:
    """Totals across reports. The percentage is 0 when there is no budget."""
    reports = list(reports)
    total_budget = sum((r.budget.amount for r in reports), ZERO)
    total_spent = sum((r.spent for r in reports), ZERO)
    percentage = float(total_spent / total_budget * HUNDRED) if total_budget > 0 else 0.0

    return BudgetInsights(
        total_budget=total_budget,
        total_spent=total_spent,
        remaining=total_budget - total_spent,
        percentage=percentage,
        exceeded_count=sum(1 for r in reports if r.status == BudgetStatus.EXCEEDED),
        warning_count=sum(1 for r in reports if r.status == BudgetStatus.WARNING),
    )


def budget_insights(
    budgets: Iterable[Union[Budget, dict]],
    transactions: Iterable[Union[Transaction, dict]],
    now: datetime,
    settings: Optional[BudgetSettings] = None,
) -> BudgetInsights:
    """Totals across the valid budgets; malformed budget rows are left out."""
    valid_budgets, _ = normalize_budgets(budgets)
    # Validate rows once for all reports
    valid, _ = normalize_transactions(transactions)
    reports = [build_budget_report(b, valid, now, settings) for b in valid_budgets]
    return summarize_reports(reports)
