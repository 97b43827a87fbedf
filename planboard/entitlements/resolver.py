"""
Entitlement Resolver

Decides, from a subscription row and the current time, which tier a user is
on and whether premium features are unlocked. Rules are evaluated in order
and the first match wins:

1. No subscription row                      -> free
2. beta,  beta_end  > now                   -> beta (premium, days remaining)
3. beta,  beta_end  <= now                  -> free + beta_expired notice
4. trial, trial_end > now                   -> trial (premium, days remaining)
5. trial, trial_end <= now                  -> free + trial_expired notice
6. active + premium plan                    -> premium (no expiry)
7. anything else                            -> free

Days remaining are whole days rounded up: ceil((end - now) / 24h). A value
of zero or less never appears; the tier is expired instead.

Every input is explicit. The resolver never reads the clock or any session
state; callers pass `now` and the row.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional, Union

import structlog
from pydantic import ValidationError

from planboard.config import EntitlementSettings, get_settings
from planboard.models.subscription import (
    EntitlementNotice,
    EntitlementResult,
    PlanType,
    Subscription,
    SubscriptionStatus,
    Tier,
)
from planboard.periods.parsing import align


logger = structlog.get_logger(__name__)

_DAY_MICROSECONDS = 86_400_000_000

FREE = EntitlementResult(tier=Tier.FREE, is_premium_active=False)


def days_until(end: datetime, now: datetime) -> int:
    """
    Whole days from `now` until `end`, rounded up.

    Returns zero or a negative number once `end` has passed.
    """
    delta = align(end, now) - now
    microseconds = delta // timedelta(microseconds=1)
    return -(-microseconds // _DAY_MICROSECONDS)


def effective_trial_end(
    subscription: Subscription,
    settings: Optional[EntitlementSettings] = None,
) -> Optional[datetime]:
    """
    End of the trial period.

    Rows written without a trial_end run for `trial_days` from creation.
    """
    if subscription.trial_end is not None:
        return subscription.trial_end
    anchor = subscription.created_at or subscription.start_date
    if anchor is None:
        return None
    settings = settings or get_settings().entitlements
    return anchor + timedelta(days=settings.trial_days)


def effective_beta_end(
    subscription: Subscription,
    settings: Optional[EntitlementSettings] = None,
) -> Optional[datetime]:
    """
    End of the beta-tester period.

    Falls back to the row's end_date, then to `beta_days` from the start.
    """
    if subscription.beta_end is not None:
        return subscription.beta_end
    if subscription.end_date is not None:
        return subscription.end_date
    anchor = subscription.start_date or subscription.created_at
    if anchor is None:
        return None
    settings = settings or get_settings().entitlements
    return anchor + timedelta(days=settings.beta_days)


def _time_limited(
    tier: Tier,
    end: Optional[datetime],
    now: datetime,
    warning_days: int,
    expired_notice: EntitlementNotice,
    expiring_notice: EntitlementNotice,
) -> EntitlementResult:
    remaining = days_until(end, now) if end is not None else 0
    if remaining <= 0:
        return EntitlementResult(
            tier=Tier.FREE,
            is_premium_active=False,
            expires_at=end,
            notice=expired_notice,
        )
    return EntitlementResult(
        tier=tier,
        is_premium_active=True,
        days_remaining=remaining,
        expires_at=end,
        notice=expiring_notice if remaining <= warning_days else None,
    )


def resolve_entitlement(
    subscription: Optional[Union[Subscription, dict]],
    now: datetime,
    settings: Optional[EntitlementSettings] = None,
) -> EntitlementResult:
    """
    Resolve a subscription row against the current time.

    Args:
        subscription: The user's current row, a raw backend dict, or None
        now: Current instant
        settings: Entitlement rules (defaults to the configured ones)

    Returns:
        EntitlementResult. A missing or unreadable row resolves to free.
    """
    if subscription is None:
        return FREE

    if isinstance(subscription, dict):
        try:
            subscription = Subscription.model_validate(subscription)
        except ValidationError as e:
            logger.warning(
                "subscription_row_invalid",
                error_count=e.error_count(),
                errors=[err["loc"] for err in e.errors()],
            )
            return FREE

    settings = settings or get_settings().entitlements

    if subscription.status == SubscriptionStatus.BETA:
        return _time_limited(
            Tier.BETA,
            effective_beta_end(subscription, settings),
            now,
            settings.beta_warning_days,
            EntitlementNotice.BETA_EXPIRED,
            EntitlementNotice.BETA_EXPIRING_SOON,
        )

    if subscription.status == SubscriptionStatus.TRIAL:
        return _time_limited(
            Tier.TRIAL,
            effective_trial_end(subscription, settings),
            now,
            settings.trial_warning_days,
            EntitlementNotice.TRIAL_EXPIRED,
            EntitlementNotice.TRIAL_EXPIRING_SOON,
        )

    if (
        subscription.status == SubscriptionStatus.ACTIVE
        and subscription.plan_type == PlanType.PREMIUM
    ):
        return EntitlementResult(tier=Tier.PREMIUM, is_premium_active=True)

    return FREE


def select_current_subscription(
    rows: Iterable[Union[Subscription, dict]],
) -> Optional[Subscription]:
    """
    Pick the row the dashboard treats as current.

    Newest `created_at` among active, trial and beta rows. Unreadable rows
    are ignored. Returns None when nothing qualifies.
    """
    current: Optional[Subscription] = None
    current_key = float("-inf")

    for row in rows:
        if isinstance(row, dict):
            try:
                row = Subscription.model_validate(row)
            except ValidationError:
                logger.warning("subscription_row_skipped", row_id=row.get("id"))
                continue
        if not row.is_current_candidate:
            continue
        key = row.created_at.timestamp() if row.created_at else float("-inf")
        if current is None or key > current_key:
            current, current_key = row, key

    return current


class EntitlementResolver:
    """
    Settings-bound resolver.

    Inject one of these wherever a gating decision is needed instead of
    re-deriving tier rules in place.
    """

    def __init__(self, settings: Optional[EntitlementSettings] = None):
        self._settings = settings or get_settings().entitlements

    @property
    def settings(self) -> EntitlementSettings:
        return self._settings

    def resolve(
        self,
        subscription: Optional[Union[Subscription, dict]],
        now: datetime,
    ) -> EntitlementResult:
        result = resolve_entitlement(subscription, now, self._settings)
        logger.debug(
            "entitlement_resolved",
            tier=result.tier.value,
            is_premium_active=result.is_premium_active,
            days_remaining=result.days_remaining,
            notice=result.notice.value if result.notice else None,
        )
        return result

    def resolve_rows(
        self,
        rows: Iterable[Union[Subscription, dict]],
        now: datetime,
    ) -> EntitlementResult:
        """Select the current row among several, then resolve it."""
        return self.resolve(select_current_subscription(rows), now)
