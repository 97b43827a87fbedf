"""
Abstract Data Source Interface

Persistence, authentication and row-level security belong to the hosted
backend. The engine only sees the backend through this interface:
1. Reads of already user-scoped rows (subscriptions, transactions,
   events, tasks, budgets)
2. The create operation gated by the free-tier quota, and subscription
   writes computed by the lifecycle helpers

Implementations receive a coarse date range and may return rows slightly
outside it; precise period filtering is done by the engine.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from planboard.models.audit import AuditEvent
from planboard.models.calendar import Event
from planboard.models.subscription import Subscription


class DataSourceInterface(ABC):
    """
    Abstract interface for reading backend rows.

    Rows are returned raw (dicts as delivered by the backend). Validation
    into models happens in the engine, so one malformed row never fails a
    whole fetch.
    """

    @abstractmethod
    async def get_subscriptions(self, user_id: str) -> list[dict]:
        """
        Get the subscription rows of a user.

        Returns:
            Zero or more rows; the engine selects the current one
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[dict]:
        """
        List transaction rows of a user, optionally within a coarse range.
        """
        pass

    @abstractmethod
    async def list_events(
        self,
        user_id: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[dict]:
        """
        List calendar event rows of a user, optionally by start time.
        """
        pass

    @abstractmethod
    async def list_tasks(self, user_id: str) -> list[dict]:
        """List task rows of a user."""
        pass

    @abstractmethod
    async def list_budgets(self, user_id: str) -> list[dict]:
        """List category budget rows of a user."""
        pass

    @abstractmethod
    async def get_monthly_budget(self, user_id: str) -> Optional[float]:
        """
        Get the monthly budget stored on the user's profile.

        Returns:
            The budget, or None when the profile has none
        """
        pass

    @abstractmethod
    async def create_event(self, event: Event) -> Event:
        """
        Persist a new calendar event.

        Returns:
            The stored event (with its backend-assigned id)

        Raises:
            StorageError: If the backend rejects the insert
        """
        pass

    @abstractmethod
    async def save_subscription(self, subscription: Subscription) -> Subscription:
        """
        Insert or update a subscription row (matched on id).

        Returns:
            The stored row

        Raises:
            StorageError: If the backend rejects the write
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for backend operations."""
    pass
