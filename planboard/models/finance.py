"""
Finance Models

Transactions and budgets as read from the backend, plus the read-only
summaries the aggregator produces from them.

Amounts are Decimal end to end. Sums are exact; rounding to cents happens
only in the to_display_dict() helpers used for presentation.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from planboard.models.subscription import EntitlementResult
from planboard.periods.parsing import parse_timestamp
from planboard.periods.windows import TimeWindow


CENT = Decimal("0.01")

# Suffixes the dashboard appends to titles of generated recurring items
RECURRING_TITLE_MARKERS = ("(Mensuel)", "(Hebdomadaire)", "(Annuel)", "(Quotidien)")


def to_money(value) -> Decimal:
    """Convert an amount to Decimal without binary float artefacts."""
    if isinstance(value, bool):
        raise ValueError("amount must be a number")
    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, float):
            amount = Decimal(str(value))
        else:
            amount = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"amount is not a number: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"amount must be finite: {value!r}")
    return amount


def round_money(value: Decimal) -> float:
    """Presentation rounding to cents."""
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class RecurrenceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class BudgetPeriod(str, Enum):
    """Period a category budget applies to."""
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    YEARLY = "yearly"


class BudgetStatus(str, Enum):
    """How far spending has progressed through a budget."""
    GOOD = "good"
    MODERATE = "moderate"
    WARNING = "warning"
    EXCEEDED = "exceeded"


# =============================================================================
# BACKEND RECORDS
# =============================================================================

class Transaction(BaseModel):
    """
    A row of the backend `transactions` table.

    Transactions are immutable once read: aggregation works on a snapshot.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: Optional[str] = None
    user_id: Optional[str] = None
    title: str = Field(
        default="",
        max_length=200,
        description="Label shown in the transaction list"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Unsigned amount; the direction comes from `type`"
    )
    type: TransactionType
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-text category label"
    )
    date: datetime

    # Recurrence metadata (informational)
    is_recurring: bool = False
    recurrence_type: Optional[RecurrenceType] = None
    recurrence_interval: Optional[int] = Field(default=None, ge=1)
    next_occurrence: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, v):
        return to_money(v)

    @field_validator('date', mode='before')
    @classmethod
    def parse_date(cls, v):
        return parse_timestamp(v)

    @field_validator('next_occurrence', 'end_date', mode='before')
    @classmethod
    def parse_optional_dates(cls, v):
        if v is None or v == "":
            return None
        return parse_timestamp(v)

    @property
    def is_recurring_item(self) -> bool:
        """Flagged recurring, or generated from a recurring template."""
        if self.is_recurring:
            return True
        return any(marker in self.title for marker in RECURRING_TITLE_MARKERS)

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type == TransactionType.INCOME else -self.amount


class Budget(BaseModel):
    """A per-category spending budget."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: Optional[str] = None
    user_id: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Budgeted amount for one period"
    )
    period: BudgetPeriod = BudgetPeriod.MONTHLY

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, v):
        return to_money(v)


# =============================================================================
# AGGREGATION RESULTS
# =============================================================================

class CategoryShare(BaseModel):
    """One category of a breakdown with its share of the partition total."""

    model_config = ConfigDict(frozen=True)

    category: str
    amount: Decimal
    share: float = Field(
        ...,
        ge=0,
        description="Percentage of the partition total (0 when the total is 0)"
    )


class PeriodSummary(BaseModel):
    """
    Income, expenses and budget use over one period.

    Category lists are ordered by descending amount; equal amounts keep the
    order in which the categories were first seen.
    """

    model_config = ConfigDict(frozen=True)

    period_start: datetime
    period_end: datetime
    monthly_budget: Decimal

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")

    # None when the budget is zero: the percentage is undefined
    budget_used_pct: Optional[float] = None
    budget_defined: bool = True

    expense_categories: list[CategoryShare] = Field(default_factory=list)
    income_categories: list[CategoryShare] = Field(default_factory=list)

    transaction_count: int = Field(default=0, ge=0)
    recurring_count: int = Field(default=0, ge=0)
    skipped_count: int = Field(default=0, ge=0)
    skipped_reasons: dict[str, int] = Field(default_factory=dict)

    @property
    def expense_totals(self) -> dict[str, Decimal]:
        return {c.category: c.amount for c in self.expense_categories}

    @property
    def income_totals(self) -> dict[str, Decimal]:
        return {c.category: c.amount for c in self.income_categories}

    @property
    def is_over_budget(self) -> bool:
        return self.budget_defined and self.total_expenses > self.monthly_budget

    def to_display_dict(self) -> dict:
        """
        Presentation form: amounts rounded to cents, percentages to 0.1.
        """
        def categories(shares: list[CategoryShare]) -> list[dict]:
            return [
                {
                    "category": c.category,
                    "amount": round_money(c.amount),
                    "share": round(c.share, 1),
                }
                for c in shares
            ]

        return {
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "total_income": round_money(self.total_income),
            "total_expenses": round_money(self.total_expenses),
            "balance": round_money(self.balance),
            "budget_used_pct": (
                round(self.budget_used_pct, 1)
                if self.budget_used_pct is not None
                else None
            ),
            "expense_categories": categories(self.expense_categories),
            "income_categories": categories(self.income_categories),
            "transaction_count": self.transaction_count,
            "recurring_count": self.recurring_count,
            "skipped_count": self.skipped_count,
        }


class BudgetReport(BaseModel):
    """Spending against a single category budget."""

    model_config = ConfigDict(frozen=True)

    budget: Budget
    window: TimeWindow
    spent: Decimal
    remaining: Decimal
    percentage: float
    status: BudgetStatus


class BudgetInsights(BaseModel):
    """Totals across all of a user's budgets."""

    model_config = ConfigDict(frozen=True)

    total_budget: Decimal
    total_spent: Decimal
    remaining: Decimal
    percentage: float
    exceeded_count: int = 0
    warning_count: int = 0


class FinanceOverview(BaseModel):
    """Everything the finance dashboard shows for one month."""

    model_config = ConfigDict(frozen=True)

    entitlement: EntitlementResult
    summary: PeriodSummary
    budgets: list[BudgetReport] = Field(default_factory=list)
    insights: BudgetInsights
