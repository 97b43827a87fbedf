"""Period aggregation and category budgets."""

from planboard.aggregation.aggregator import (
    PeriodAggregator,
    aggregate,
    normalize_transactions,
)
from planboard.aggregation.budgets import (
    budget_insights,
    budget_status,
    budget_window,
    build_budget_report,
    calculate_spent,
    normalize_budgets,
    summarize_reports,
)

__all__ = [
    "PeriodAggregator",
    "aggregate",
    "budget_insights",
    "budget_status",
    "budget_window",
    "build_budget_report",
    "calculate_spent",
    "normalize_budgets",
    "normalize_transactions",
    "summarize_reports",
]
