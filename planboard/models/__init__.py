"""
Data Models Package

This package contains all Pydantic models used by Planboard.
Every row read from the backend is validated into one of these schemas.
"""

from planboard.models.subscription import (
    EntitlementNotice,
    EntitlementResult,
    PlanType,
    Subscription,
    SubscriptionStatus,
    Tier,
)
from planboard.models.finance import (
    Budget,
    BudgetInsights,
    BudgetPeriod,
    BudgetReport,
    BudgetStatus,
    CategoryShare,
    FinanceOverview,
    PeriodSummary,
    RecurrenceType,
    Transaction,
    TransactionType,
)
from planboard.models.calendar import (
    Event,
    Task,
    TaskPriority,
)
from planboard.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Subscription models
    "EntitlementNotice",
    "EntitlementResult",
    "PlanType",
    "Subscription",
    "SubscriptionStatus",
    "Tier",
    # Finance models
    "Budget",
    "BudgetInsights",
    "BudgetPeriod",
    "BudgetReport",
    "BudgetStatus",
    "CategoryShare",
    "FinanceOverview",
    "PeriodSummary",
    "RecurrenceType",
    "Transaction",
    "TransactionType",
    # Calendar models
    "Event",
    "Task",
    "TaskPriority",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
