"""
Audit Models for Planboard

Every gating decision and every record the engine refuses to use is logged
for audit purposes. This provides:
1. Traceability of why a create action was blocked
2. Debugging information when backend data is malformed
3. A history of trial and beta grants

Audit logs are append-only. Events are never modified or deleted.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Entitlements
    ENTITLEMENT_RESOLVED = "entitlement_resolved"
    BETA_EXPIRED = "beta_expired"
    TRIAL_EXPIRED = "trial_expired"
    TRIAL_STARTED = "trial_started"
    BETA_GRANTED = "beta_granted"
    BETA_GRANT_REFUSED = "beta_grant_refused"

    # Quota gate
    QUOTA_CHECK_PASSED = "quota_check_passed"
    QUOTA_EXCEEDED = "quota_exceeded"

    # Calendar
    EVENT_CREATED = "event_created"

    # Finance
    PERIOD_AGGREGATED = "period_aggregated"
    RECORDS_SKIPPED = "records_skipped"

    # System events
    SYSTEM_ERROR = "system_error"
    BACKEND_ERROR = "backend_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of the audit trail.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # What entity is this about?
    user_id: Optional[str] = Field(
        default=None,
        description="User the decision was made for"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'subscription', 'event', 'period')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one create attempt)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.quota_exceeded(user_id, "events", 5, 5, correlation_id)
        event = AuditEventBuilder.event_created(user_id, event_id, correlation_id)
    """

    @staticmethod
    def entitlement_resolved(
        user_id: Optional[str],
        tier: str,
        is_premium_active: bool,
        days_remaining: Optional[int],
        notice: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        if notice == "beta_expired":
            event_type = AuditEventType.BETA_EXPIRED
        elif notice == "trial_expired":
            event_type = AuditEventType.TRIAL_EXPIRED
        else:
            event_type = AuditEventType.ENTITLEMENT_RESOLVED
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="subscription",
            correlation_id=correlation_id,
            description=f"Entitlement resolved to tier: {tier}",
            details={
                "tier": tier,
                "is_premium_active": is_premium_active,
                "days_remaining": days_remaining,
                "notice": notice,
            },
        )

    @staticmethod
    def quota_check_passed(
        user_id: Optional[str],
        resource: str,
        current: int,
        limit: Optional[int],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUOTA_CHECK_PASSED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            entity_type=resource,
            correlation_id=correlation_id,
            description=f"Quota check passed for {resource} ({current} existing)",
            details={
                "resource": resource,
                "current": current,
                "limit": limit,
            },
        )

    @staticmethod
    def quota_exceeded(
        user_id: Optional[str],
        resource: str,
        limit: int,
        current: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUOTA_EXCEEDED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=resource,
            correlation_id=correlation_id,
            description=f"Free-tier limit reached for {resource}: {current}/{limit}",
            details={
                "resource": resource,
                "limit": limit,
                "current": current,
            },
            is_user_action=True,
        )

    @staticmethod
    def event_created(
        user_id: Optional[str],
        event_id: Optional[str],
        title: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_CREATED,
            user_id=user_id,
            entity_type="event",
            entity_id=event_id,
            correlation_id=correlation_id,
            description=f"Event created: {title}",
            details={"title": title},
            is_user_action=True,
        )

    @staticmethod
    def trial_started(
        user_id: str,
        trial_end: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRIAL_STARTED,
            user_id=user_id,
            entity_type="subscription",
            correlation_id=correlation_id,
            description="Premium trial started",
            details={"trial_end": trial_end.isoformat()},
            is_user_action=True,
        )

    @staticmethod
    def beta_granted(
        user_id: str,
        actor_email: str,
        beta_end: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BETA_GRANTED,
            user_id=user_id,
            entity_type="subscription",
            correlation_id=correlation_id,
            description=f"Beta access granted by {actor_email}",
            details={
                "actor_email": actor_email,
                "beta_end": beta_end.isoformat(),
            },
            is_user_action=True,
        )

    @staticmethod
    def beta_grant_refused(
        user_id: str,
        actor_email: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BETA_GRANT_REFUSED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="subscription",
            correlation_id=correlation_id,
            description=f"Beta grant refused: {actor_email} is not an admin",
            details={"actor_email": actor_email},
            is_user_action=True,
        )

    @staticmethod
    def period_aggregated(
        user_id: Optional[str],
        period_start: datetime,
        period_end: datetime,
        transaction_count: int,
        skipped_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIOD_AGGREGATED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            entity_type="period",
            correlation_id=correlation_id,
            description=f"Aggregated {transaction_count} transactions",
            details={
                "period_start": period_start.isoformat(),
                "period_end": period_end.isoformat(),
                "transaction_count": transaction_count,
                "skipped_count": skipped_count,
            },
        )

    @staticmethod
    def records_skipped(
        user_id: Optional[str],
        entity_type: str,
        reasons: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        total = sum(reasons.values())
        return AuditEvent(
            event_type=AuditEventType.RECORDS_SKIPPED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Skipped {total} malformed {entity_type} records",
            details={"reasons": reasons},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def backend_error(
        operation: str,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKEND_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"Backend error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )
