"""
Free-Tier Quota Gate

A free-tier user may hold at most `free_event_limit` active calendar events.
Creating one more while premium is not active is refused with QuotaExceeded
before the create call reaches the backend. Premium, trial and beta tiers
are unlimited. Edits of existing records are never gated.

WARNING: this gate runs in the client only. The backend has no matching
constraint, so a user calling the backend directly can bypass it. Until the
backend enforces the limit itself (and `server_side_quota_enforced` is set),
QuotaGate logs a warning when it is created.
"""

from datetime import datetime
from typing import Any, Iterable, Optional, Union

import structlog
from pydantic import ValidationError

from planboard.config import EntitlementSettings, get_settings
from planboard.models.calendar import Event, Task
from planboard.models.subscription import EntitlementResult


logger = structlog.get_logger(__name__)


class QuotaExceeded(Exception):
    """A free-tier resource limit was hit; the create action is blocked."""

    def __init__(self, limit: int, current: int, resource: str = "events"):
        self.limit = limit
        self.current = current
        self.resource = resource
        super().__init__(
            f"Free-tier limit reached for {resource}: {current}/{limit}. "
            "Upgrade to Premium for unlimited access."
        )


def _premium_flag(entitlement: Union[EntitlementResult, bool]) -> bool:
    if isinstance(entitlement, EntitlementResult):
        return entitlement.is_premium_active
    return bool(entitlement)


def check_quota(
    entitlement: Union[EntitlementResult, bool],
    current_count: int,
    resource: str = "events",
    settings: Optional[EntitlementSettings] = None,
) -> None:
    """
    Precondition check before creating a countable resource.

    Args:
        entitlement: Resolved entitlement, or the is_premium_active flag
        current_count: How many of the resource the user already holds
        resource: "events" or "tasks"
        settings: Limits (defaults to the configured ones)

    Raises:
        QuotaExceeded: Free tier and current_count is at or above the limit
        ValueError: current_count is negative
    """
    if current_count < 0:
        raise ValueError("current_count cannot be negative")

    if _premium_flag(entitlement):
        return

    settings = settings or get_settings().entitlements
    limit = settings.limit_for(resource)
    if limit is None:
        return

    if current_count >= limit:
        raise QuotaExceeded(limit=limit, current=current_count, resource=resource)


def count_active_events(events: Iterable[Any], now: datetime) -> int:
    """
    Count events that are not finished yet.

    Accepts Event models or raw rows; unreadable rows are not counted.
    """
    count = 0
    for event in events:
        if isinstance(event, dict):
            try:
                event = Event.model_validate(event)
            except ValidationError:
                continue
        if not event.is_finished(now):
            count += 1
    return count


def count_open_tasks(tasks: Iterable[Any]) -> int:
    """Count tasks not completed; unreadable rows are not counted."""
    count = 0
    for task in tasks:
        if isinstance(task, dict):
            try:
                task = Task.model_validate(task)
            except ValidationError:
                continue
        if not task.completed:
            count += 1
    return count


class QuotaGate:
    """Settings-bound quota check used by the create flows."""

    def __init__(self, settings: Optional[EntitlementSettings] = None):
        self._settings = settings or get_settings().entitlements
        if not self._settings.server_side_quota_enforced:
            logger.warning(
                "quota_enforced_client_side_only",
                free_event_limit=self._settings.free_event_limit,
            )

    def limit_for(self, resource: str) -> Optional[int]:
        return self._settings.limit_for(resource)

    def check(
        self,
        entitlement: Union[EntitlementResult, bool],
        current_count: int,
        resource: str = "events",
        is_update: bool = False,
    ) -> None:
        """
        Raise QuotaExceeded if a create would go over the free-tier limit.

        Updates of existing records always pass.
        """
        if is_update:
            return
        try:
            check_quota(entitlement, current_count, resource, self._settings)
        except QuotaExceeded as e:
            logger.info(
                "quota_exceeded",
                resource=e.resource,
                limit=e.limit,
                current=e.current,
            )
            raise
