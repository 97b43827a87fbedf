"""
Subscription and Entitlement Models

A subscription row is read from the backend's `subscriptions` table. At most
one row per user is current; the backend enforces uniqueness, the engine
only tolerates zero or one row.

EntitlementResult is what the engine hands back to the UI layer: the tier
the user is on right now, whether premium features are unlocked and, for
time-limited tiers, how many days remain.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from planboard.periods.parsing import align, parse_timestamp


# =============================================================================
# ENUMS
# =============================================================================

class PlanType(str, Enum):
    """Billing plan stored on the subscription row."""
    FREE = "free"
    PREMIUM = "premium"


class SubscriptionStatus(str, Enum):
    """
    Subscription status stored on the row.

    TRIAL_ENDING is written by the payment webhook shortly before a paid
    trial converts; BETA is written by the beta-tester administration.
    """
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    TRIAL = "trial"
    TRIAL_ENDING = "trial_ending"
    BETA = "beta"


class Tier(str, Enum):
    """Effective tier after resolution against the current time."""
    FREE = "free"
    BETA = "beta"
    TRIAL = "trial"
    PREMIUM = "premium"


class EntitlementNotice(str, Enum):
    """Notices the UI must surface alongside a resolution."""
    BETA_EXPIRED = "beta_expired"
    TRIAL_EXPIRED = "trial_expired"
    BETA_EXPIRING_SOON = "beta_expiring_soon"
    TRIAL_EXPIRING_SOON = "trial_expiring_soon"


# =============================================================================
# SUBSCRIPTION ROW
# =============================================================================

class Subscription(BaseModel):
    """A row of the backend `subscriptions` table."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: Optional[str] = None
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of the subscription"
    )
    plan_type: PlanType = Field(
        default=PlanType.FREE,
        description="Billing plan"
    )
    status: SubscriptionStatus = Field(
        default=SubscriptionStatus.ACTIVE,
        description="Lifecycle status"
    )
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    trial_end: Optional[datetime] = Field(
        default=None,
        description="End of the premium trial"
    )
    beta_end: Optional[datetime] = Field(
        default=None,
        description="End of beta-tester access"
    )
    is_beta_tester: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator(
        'start_date', 'end_date', 'trial_end', 'beta_end',
        'created_at', 'updated_at',
        mode='before',
    )
    @classmethod
    def parse_timestamps(cls, v):
        if v is None or v == "":
            return None
        return parse_timestamp(v)

    @model_validator(mode='after')
    def validate_dates(self) -> 'Subscription':
        if self.start_date and self.end_date:
            if align(self.end_date, self.start_date) < self.start_date:
                raise ValueError("Subscription end cannot be before start")
        return self

    @property
    def is_current_candidate(self) -> bool:
        """Statuses the dashboard considers when picking the current row."""
        return self.status in (
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.TRIAL,
            SubscriptionStatus.BETA,
        )


# =============================================================================
# RESOLUTION RESULT
# =============================================================================

class EntitlementResult(BaseModel):
    """Outcome of resolving a subscription against the current time."""

    model_config = ConfigDict(frozen=True)

    tier: Tier
    is_premium_active: bool
    days_remaining: Optional[int] = Field(
        default=None,
        ge=1,
        description="Whole days left on a time-limited tier (None = no expiry)"
    )
    expires_at: Optional[datetime] = None
    notice: Optional[EntitlementNotice] = None

    @property
    def is_expired_notice(self) -> bool:
        return self.notice in (
            EntitlementNotice.BETA_EXPIRED,
            EntitlementNotice.TRIAL_EXPIRED,
        )
