"""
Period Aggregator

Turns a snapshot of transactions into the figures of a finance overview:
income, expenses, balance, share of the monthly budget used, and category
breakdowns for both income and expenses.

GUARANTEES:
- Read-only over the input; nothing is mutated or persisted
- A malformed record is skipped and counted, never fatal to the batch
- Sums are exact Decimal sums; rounding is left to presentation
- Categories come out by descending amount, ties in first-seen order
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional, Union

import structlog
from pydantic import ValidationError

from planboard.config import BudgetSettings, get_settings
from planboard.models.finance import (
    CategoryShare,
    PeriodSummary,
    Transaction,
    TransactionType,
    to_money,
)
from planboard.periods.parsing import align
from planboard.periods.windows import TimeWindow, month_window


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

SKIP_INVALID_DATE = "invalid_date"
SKIP_MALFORMED = "malformed"


def normalize_transactions(
    records: Iterable[Any],
) -> tuple[list[Transaction], dict[str, int]]:
    """
    Validate raw rows into Transaction models.

    Returns:
        (valid transactions in input order, {skip_reason: count})
    """
    valid: list[Transaction] = []
    skipped: dict[str, int] = {}

    for record in records:
        if isinstance(record, Transaction):
            valid.append(record)
            continue
        if not isinstance(record, dict):
            skipped[SKIP_MALFORMED] = skipped.get(SKIP_MALFORMED, 0) + 1
            continue
        try:
            valid.append(Transaction.model_validate(record))
        except ValidationError as e:
            date_error = any(err["loc"][:1] == ("date",) for err in e.errors())
            reason = SKIP_INVALID_DATE if date_error else SKIP_MALFORMED
            skipped[reason] = skipped.get(reason, 0) + 1

    return valid, skipped


def _breakdown(totals: dict[str, Decimal], partition_total: Decimal) -> list[CategoryShare]:
    # sorted() is stable: equal amounts keep first-seen order
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryShare(
            category=category,
            amount=amount,
            share=float(amount / partition_total * HUNDRED) if partition_total > 0 else 0.0,
        )
        for category, amount in ordered
    ]


def aggregate(
    transactions: Iterable[Union[Transaction, dict]],
    period_start: datetime,
    period_end: datetime,
    monthly_budget: Union[Decimal, float, int, str],
) -> PeriodSummary:
    """
    Summarise the transactions dated within [period_start, period_end].

    Args:
        transactions: Transaction models or raw backend rows
        period_start: Inclusive start of the period
        period_end: Inclusive end of the period
        monthly_budget: Budget the expenses are compared with. A zero
                        budget leaves budget_used_pct undefined (None).

    Raises:
        ValueError: period_end is before period_start, or the budget is
                    negative or not a number
    """
    period_end = align(period_end, period_start)
    if period_end < period_start:
        raise ValueError("Period end cannot be before start")

    budget = to_money(monthly_budget)
    if budget < 0:
        raise ValueError("Monthly budget cannot be negative")

    valid, skipped = normalize_transactions(transactions)

    income: dict[str, Decimal] = {}
    expenses: dict[str, Decimal] = {}
    total_income = ZERO
    total_expenses = ZERO
    count = 0
    recurring = 0

    for t in valid:
        ts = align(t.date, period_start)
        if not period_start <= ts <= period_end:
            continue
        count += 1
        if t.is_recurring_item:
            recurring += 1
        if t.type == TransactionType.INCOME:
            income[t.category] = income.get(t.category, ZERO) + t.amount
            total_income += t.amount
        else:
            expenses[t.category] = expenses.get(t.category, ZERO) + t.amount
            total_expenses += t.amount

    if budget > 0:
        budget_used_pct: Optional[float] = float(total_expenses / budget * HUNDRED)
    else:
        budget_used_pct = None

    return PeriodSummary(
        period_start=period_start,
        period_end=period_end,
        monthly_budget=budget,
        total_income=total_income,
        total_expenses=total_expenses,
        balance=total_income - total_expenses,
        budget_used_pct=budget_used_pct,
        budget_defined=budget > 0,
        expense_categories=_breakdown(expenses, total_expenses),
        income_categories=_breakdown(income, total_income),
        transaction_count=count,
        recurring_count=recurring,
        skipped_count=sum(skipped.values()),
        skipped_reasons=skipped,
    )


class PeriodAggregator:
    """
    Settings-bound aggregator.

    Falls back to the configured default monthly budget when the caller
    has none (the user's profile has no budget set).
    """

    def __init__(self, settings: Optional[BudgetSettings] = None):
        self._settings = settings or get_settings().budgets

    @property
    def settings(self) -> BudgetSettings:
        return self._settings

    def summarize(
        self,
        transactions: Iterable[Union[Transaction, dict]],
        window: TimeWindow,
        monthly_budget: Optional[Union[Decimal, float, int]] = None,
    ) -> PeriodSummary:
        if monthly_budget is None:
            monthly_budget = self._settings.default_monthly_budget

        summary = aggregate(transactions, window.start, window.end, monthly_budget)

        if summary.skipped_count:
            logger.warning(
                "transactions_skipped",
                skipped_count=summary.skipped_count,
                reasons=summary.skipped_reasons,
            )
        logger.debug(
            "period_aggregated",
            period_start=window.start.isoformat(),
            period_end=window.end.isoformat(),
            transaction_count=summary.transaction_count,
        )
        return summary

    def month(
        self,
        transactions: Iterable[Union[Transaction, dict]],
        day: datetime,
        monthly_budget: Optional[Union[Decimal, float, int]] = None,
    ) -> PeriodSummary:
        """Summary of the calendar month containing `day`."""
        return self.summarize(transactions, month_window(day), monthly_budget)
