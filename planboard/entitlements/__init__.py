"""Entitlement resolution, free-tier quota and subscription lifecycle."""

from planboard.entitlements.resolver import (
    EntitlementResolver,
    days_until,
    effective_beta_end,
    effective_trial_end,
    resolve_entitlement,
    select_current_subscription,
)
from planboard.entitlements.quota import (
    QuotaExceeded,
    QuotaGate,
    check_quota,
    count_active_events,
    count_open_tasks,
)
from planboard.entitlements.lifecycle import (
    NotAuthorized,
    expire_subscription,
    grant_beta,
    is_admin,
    start_trial,
)

__all__ = [
    "EntitlementResolver",
    "NotAuthorized",
    "QuotaExceeded",
    "QuotaGate",
    "check_quota",
    "count_active_events",
    "count_open_tasks",
    "days_until",
    "effective_beta_end",
    "effective_trial_end",
    "expire_subscription",
    "grant_beta",
    "is_admin",
    "resolve_entitlement",
    "select_current_subscription",
    "start_trial",
]
