"""
Subscription lifecycle transitions.

These helpers compute the row the backend should store after a trial start,
a beta grant or an expiry. They never persist anything: the caller writes
the returned Subscription through the backend.
"""

from datetime import datetime, timedelta
from typing import Optional

from planboard.config import EntitlementSettings, get_settings
from planboard.entitlements.resolver import (
    days_until,
    effective_beta_end,
    effective_trial_end,
)
from planboard.models.subscription import PlanType, Subscription, SubscriptionStatus


class NotAuthorized(Exception):
    """The acting user may not perform an administrative action."""

    def __init__(self, actor_email: Optional[str], action: str):
        self.actor_email = actor_email
        self.action = action
        super().__init__(f"{actor_email or 'anonymous'} is not allowed to {action}")


def is_admin(
    email: Optional[str],
    settings: Optional[EntitlementSettings] = None,
) -> bool:
    """Check an e-mail against the configured admin list."""
    if not email:
        return False
    settings = settings or get_settings().entitlements
    return email.strip().lower() in settings.admin_emails_list


def _check_owner(user_id: str, existing: Optional[Subscription]) -> None:
    if existing is not None and existing.user_id != user_id:
        raise ValueError("Existing subscription belongs to another user")


def start_trial(
    user_id: str,
    now: datetime,
    existing: Optional[Subscription] = None,
    settings: Optional[EntitlementSettings] = None,
) -> Subscription:
    """
    Start a premium trial of `trial_days` days.

    The existing row is reused (same id) when the user already has one.
    """
    _check_owner(user_id, existing)
    settings = settings or get_settings().entitlements
    trial_end = now + timedelta(days=settings.trial_days)

    if existing is not None:
        return existing.model_copy(update={
            "plan_type": PlanType.PREMIUM,
            "status": SubscriptionStatus.TRIAL,
            "trial_end": trial_end,
            "updated_at": now,
        })

    return Subscription(
        user_id=user_id,
        plan_type=PlanType.PREMIUM,
        status=SubscriptionStatus.TRIAL,
        start_date=now,
        trial_end=trial_end,
        created_at=now,
        updated_at=now,
    )


def grant_beta(
    user_id: str,
    now: datetime,
    actor_email: Optional[str],
    existing: Optional[Subscription] = None,
    settings: Optional[EntitlementSettings] = None,
) -> Subscription:
    """
    Grant `beta_days` days of beta-tester access.

    Raises:
        NotAuthorized: actor_email is not in the admin list
    """
    settings = settings or get_settings().entitlements
    if not is_admin(actor_email, settings):
        raise NotAuthorized(actor_email, "grant beta access")
    _check_owner(user_id, existing)

    beta_end = now + timedelta(days=settings.beta_days)
    changes = {
        "plan_type": PlanType.PREMIUM,
        "status": SubscriptionStatus.BETA,
        "start_date": now,
        "end_date": beta_end,
        "beta_end": beta_end,
        "is_beta_tester": True,
        "updated_at": now,
    }

    if existing is not None:
        return existing.model_copy(update=changes)

    return Subscription(user_id=user_id, created_at=now, **changes)


def expire_subscription(
    subscription: Subscription,
    now: datetime,
    settings: Optional[EntitlementSettings] = None,
) -> Subscription:
    """
    Downgrade an elapsed trial or beta row to the free plan.

    Rows that are not time-limited, or still running, are returned as is.
    """
    settings = settings or get_settings().entitlements

    if subscription.status == SubscriptionStatus.TRIAL:
        end = effective_trial_end(subscription, settings)
    elif subscription.status == SubscriptionStatus.BETA:
        end = effective_beta_end(subscription, settings)
    else:
        return subscription

    if end is not None and days_until(end, now) > 0:
        return subscription

    return subscription.model_copy(update={
        "plan_type": PlanType.FREE,
        "status": SubscriptionStatus.ACTIVE,
        "trial_end": None,
        "updated_at": now,
    })
