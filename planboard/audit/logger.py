"""
Audit Logger

Every gating decision made by the engine is logged:
- entitlement resolutions and expiries
- quota checks, passed or refused
- trial starts and beta grants
- records skipped during aggregation

The audit logger:
- Is async so it can sit in the same flows as backend calls
- Never raises when the audit sink fails
- Supports correlation IDs to trace related events
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

import structlog

from planboard.config import get_settings
from planboard.models.audit import AuditEvent, AuditEventBuilder
from planboard.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: Optional[str] = None) -> None:
    """
    Set the minimum level of the package's local logs.

    Args:
        level: Level name; defaults to the configured app log level
    """
    level = level or get_settings().app.log_level
    logging.getLogger("planboard").setLevel(level.upper())


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit sink (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Sink for persistence. If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("planboard.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Audit persistence must not break the flow being audited
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_entitlement_resolved(
        self,
        user_id: Optional[str],
        tier: str,
        is_premium_active: bool,
        days_remaining: Optional[int],
        notice: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an entitlement decision (or an expiry)."""
        event = AuditEventBuilder.entitlement_resolved(
            user_id=user_id,
            tier=tier,
            is_premium_active=is_premium_active,
            days_remaining=days_remaining,
            notice=notice,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_quota_check_passed(
        self,
        user_id: Optional[str],
        resource: str,
        current: int,
        limit: Optional[int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.quota_check_passed(
            user_id=user_id,
            resource=resource,
            current=current,
            limit=limit,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_quota_exceeded(
        self,
        user_id: Optional[str],
        resource: str,
        limit: int,
        current: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a create action blocked by the free-tier limit."""
        event = AuditEventBuilder.quota_exceeded(
            user_id=user_id,
            resource=resource,
            limit=limit,
            current=current,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_event_created(
        self,
        user_id: Optional[str],
        event_id: Optional[str],
        title: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.event_created(
            user_id=user_id,
            event_id=event_id,
            title=title,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_trial_started(
        self,
        user_id: str,
        trial_end: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.trial_started(
            user_id=user_id,
            trial_end=trial_end,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_beta_granted(
        self,
        user_id: str,
        actor_email: str,
        beta_end: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.beta_granted(
            user_id=user_id,
            actor_email=actor_email,
            beta_end=beta_end,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_beta_grant_refused(
        self,
        user_id: str,
        actor_email: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.beta_grant_refused(
            user_id=user_id,
            actor_email=actor_email,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_period_aggregated(
        self,
        user_id: Optional[str],
        period_start: datetime,
        period_end: datetime,
        transaction_count: int,
        skipped_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.period_aggregated(
            user_id=user_id,
            period_start=period_start,
            period_end=period_end,
            transaction_count=transaction_count,
            skipped_count=skipped_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_records_skipped(
        self,
        user_id: Optional[str],
        entity_type: str,
        reasons: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log malformed backend rows left out of a computation."""
        event = AuditEventBuilder.records_skipped(
            user_id=user_id,
            entity_type=entity_type,
            reasons=reasons,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_backend_error(
        self,
        operation: str,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed backend call."""
        event = AuditEventBuilder.backend_error(
            operation=operation,
            error_message=error_message,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., creating an event).
    Pass it through all subsequent operations.
    """
    return uuid4()
