"""
In-Memory Storage Implementation

Implements the data source and audit interfaces over plain lists. Used for
tests and for running the flows without a backend. Rows are kept exactly as
given, so malformed rows reach the engine the same way they would from the
real backend.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from planboard.models.audit import AuditEvent
from planboard.models.calendar import Event
from planboard.models.subscription import Subscription
from planboard.periods.parsing import InvalidDate, align, parse_timestamp
from planboard.services.storage.interface import (
    AuditStorageInterface,
    DataSourceInterface,
    StorageError,
)


def _in_range(
    raw,
    date_from: Optional[datetime],
    date_to: Optional[datetime],
) -> bool:
    """Coarse range filter; rows with unreadable dates are passed through."""
    if date_from is None and date_to is None:
        return True
    try:
        ts = parse_timestamp(raw)
    except InvalidDate:
        return True
    if date_from is not None and align(ts, date_from) < date_from:
        return False
    if date_to is not None and align(ts, date_to) > date_to:
        return False
    return True


class InMemoryDataSource(DataSourceInterface):
    """Data source backed by dictionaries of rows keyed by user id."""

    def __init__(
        self,
        subscriptions: Optional[list[dict]] = None,
        transactions: Optional[list[dict]] = None,
        events: Optional[list[dict]] = None,
        tasks: Optional[list[dict]] = None,
        budgets: Optional[list[dict]] = None,
        monthly_budgets: Optional[dict[str, float]] = None,
    ):
        self._subscriptions = list(subscriptions or [])
        self._transactions = list(transactions or [])
        self._events = list(events or [])
        self._tasks = list(tasks or [])
        self._budgets = list(budgets or [])
        self._monthly_budgets = dict(monthly_budgets or {})
        self.fail_writes = False

    @staticmethod
    def _owned(rows: list[dict], user_id: str) -> list[dict]:
        return [row for row in rows if row.get("user_id") == user_id]

    async def get_subscriptions(self, user_id: str) -> list[dict]:
        return self._owned(self._subscriptions, user_id)

    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[dict]:
        return [
            row for row in self._owned(self._transactions, user_id)
            if _in_range(row.get("date"), date_from, date_to)
        ]

    async def list_events(
        self,
        user_id: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[dict]:
        rows = sorted(
            self._owned(self._events, user_id),
            key=lambda row: str(row.get("start_time", "")),
        )
        return [
            row for row in rows
            if _in_range(row.get("start_time"), date_from, date_to)
        ]

    async def list_tasks(self, user_id: str) -> list[dict]:
        return self._owned(self._tasks, user_id)

    async def list_budgets(self, user_id: str) -> list[dict]:
        return self._owned(self._budgets, user_id)

    async def get_monthly_budget(self, user_id: str) -> Optional[float]:
        return self._monthly_budgets.get(user_id)

    async def create_event(self, event: Event) -> Event:
        if self.fail_writes:
            raise StorageError("Backend rejected the insert")
        stored = event.model_copy(update={"id": event.id or str(uuid4())})
        self._events.append(stored.model_dump(mode="json"))
        return stored

    async def save_subscription(self, subscription: Subscription) -> Subscription:
        if self.fail_writes:
            raise StorageError("Backend rejected the write")
        stored = subscription.model_copy(update={"id": subscription.id or str(uuid4())})
        row = stored.model_dump(mode="json")
        self._subscriptions = [
            existing for existing in self._subscriptions
            if existing.get("id") != stored.id
        ]
        self._subscriptions.append(row)
        return stored


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
