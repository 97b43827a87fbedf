"""
Tests for the entitlement resolver.

Every rule is exercised against an explicit `now`; nothing here reads the
clock.
"""

import pytest
from datetime import datetime, timedelta, timezone

from planboard.config import EntitlementSettings
from planboard.entitlements import (
    EntitlementResolver,
    days_until,
    effective_beta_end,
    effective_trial_end,
    resolve_entitlement,
    select_current_subscription,
)
from planboard.models.subscription import EntitlementNotice, Subscription, Tier


NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _beta(beta_end, **kwargs):
    return Subscription(
        user_id="u1",
        plan_type=kwargs.pop("plan_type", "premium"),
        status="beta",
        beta_end=beta_end,
        **kwargs,
    )


def _trial(trial_end=None, **kwargs):
    return Subscription(
        user_id="u1",
        plan_type="premium",
        status="trial",
        trial_end=trial_end,
        **kwargs,
    )


class TestDaysUntil:
    """Tests for the whole-day ceiling."""

    def test_exact_days(self):
        """Test an exact number of days."""
        assert days_until(NOW + timedelta(days=3), NOW) == 3

    def test_partial_day_rounds_up(self):
        """Test any started day counts as a whole day."""
        assert days_until(NOW + timedelta(days=1, seconds=1), NOW) == 2
        assert days_until(NOW + timedelta(microseconds=1), NOW) == 1

    def test_past_is_not_positive(self):
        """Test the result is zero or negative once the end has passed."""
        assert days_until(NOW, NOW) == 0
        assert days_until(NOW - timedelta(hours=1), NOW) <= 0


class TestResolveEntitlement:
    """Tests for resolve_entitlement, rule by rule."""

    def test_no_subscription_is_free(self):
        """Test a missing row resolves to free."""
        result = resolve_entitlement(None, NOW)
        assert result.tier == Tier.FREE
        assert result.is_premium_active is False
        assert result.days_remaining is None
        assert result.notice is None

    @pytest.mark.parametrize("n", [1, 4, 10, 37])
    def test_active_beta_reports_days_remaining(self, n):
        """Test beta ending in N days resolves to beta with N days remaining."""
        result = resolve_entitlement(_beta(NOW + timedelta(days=n)), NOW)
        assert result.tier == Tier.BETA
        assert result.is_premium_active is True
        assert result.days_remaining == n
        assert result.expires_at == NOW + timedelta(days=n)

    def test_beta_days_are_ceiling_rounded(self):
        """Test a beta ending in 9.5 days reports 10."""
        result = resolve_entitlement(_beta(NOW + timedelta(days=9, hours=12)), NOW)
        assert result.days_remaining == 10

    @pytest.mark.parametrize("plan_type", ["premium", "free"])
    def test_past_beta_is_free_regardless_of_plan(self, plan_type):
        """Test an elapsed beta resolves to free with an expiry notice."""
        result = resolve_entitlement(
            _beta(NOW - timedelta(days=2), plan_type=plan_type),
            NOW,
        )
        assert result.tier == Tier.FREE
        assert result.is_premium_active is False
        assert result.days_remaining is None
        assert result.notice == EntitlementNotice.BETA_EXPIRED

    def test_beta_ending_now_is_expired(self):
        """Test beta_end == now counts as expired."""
        result = resolve_entitlement(_beta(NOW), NOW)
        assert result.tier == Tier.FREE
        assert result.notice == EntitlementNotice.BETA_EXPIRED

    def test_beta_expiring_soon_notice(self):
        """Test the warning notice within the beta warning days."""
        result = resolve_entitlement(_beta(NOW + timedelta(days=3)), NOW)
        assert result.tier == Tier.BETA
        assert result.notice == EntitlementNotice.BETA_EXPIRING_SOON

    def test_beta_falls_back_to_end_date(self):
        """Test a beta row without beta_end uses end_date."""
        sub = Subscription(
            user_id="u1",
            status="beta",
            start_date=NOW - timedelta(days=30),
            end_date=NOW + timedelta(days=7),
        )
        assert effective_beta_end(sub) == NOW + timedelta(days=7)
        assert resolve_entitlement(sub, NOW).days_remaining == 7

    def test_beta_falls_back_to_start_plus_beta_days(self):
        """Test a beta row with only a start date runs for beta_days."""
        sub = Subscription(user_id="u1", status="beta", start_date=NOW - timedelta(days=30))
        result = resolve_entitlement(sub, NOW, EntitlementSettings(beta_days=37))
        assert result.tier == Tier.BETA
        assert result.days_remaining == 7

    def test_beta_without_any_date_is_expired(self):
        """Test a beta row with no usable date resolves to free."""
        result = resolve_entitlement(Subscription(user_id="u1", status="beta"), NOW)
        assert result.tier == Tier.FREE
        assert result.notice == EntitlementNotice.BETA_EXPIRED

    def test_active_trial(self):
        """Test a running trial resolves to trial."""
        result = resolve_entitlement(_trial(NOW + timedelta(days=5)), NOW)
        assert result.tier == Tier.TRIAL
        assert result.is_premium_active is True
        assert result.days_remaining == 5
        assert result.notice is None

    def test_trial_expiring_soon_notice(self):
        """Test the warning notice within the trial warning days."""
        result = resolve_entitlement(_trial(NOW + timedelta(hours=30)), NOW)
        assert result.days_remaining == 2
        assert result.notice == EntitlementNotice.TRIAL_EXPIRING_SOON

    def test_expired_trial(self):
        """Test an elapsed trial resolves to free with a notice."""
        result = resolve_entitlement(_trial(NOW - timedelta(seconds=1)), NOW)
        assert result.tier == Tier.FREE
        assert result.is_premium_active is False
        assert result.notice == EntitlementNotice.TRIAL_EXPIRED

    def test_trial_without_end_runs_from_creation(self):
        """Test a trial row without trial_end runs trial_days from created_at."""
        sub = _trial(created_at=NOW - timedelta(days=3))
        assert effective_trial_end(sub) == NOW + timedelta(days=4)
        assert resolve_entitlement(sub, NOW).days_remaining == 4

    def test_active_premium_has_no_expiry(self):
        """Test an active premium plan resolves to premium without a count."""
        sub = Subscription(user_id="u1", plan_type="premium", status="active")
        result = resolve_entitlement(sub, NOW)
        assert result.tier == Tier.PREMIUM
        assert result.is_premium_active is True
        assert result.days_remaining is None

    @pytest.mark.parametrize("plan_type,status", [
        ("free", "active"),
        ("premium", "cancelled"),
        ("premium", "expired"),
        ("premium", "trial_ending"),
    ])
    def test_everything_else_is_free(self, plan_type, status):
        """Test the fallback rule."""
        sub = Subscription(user_id="u1", plan_type=plan_type, status=status)
        result = resolve_entitlement(sub, NOW)
        assert result.tier == Tier.FREE
        assert result.is_premium_active is False

    def test_raw_row_is_validated(self):
        """Test a backend dict is accepted."""
        row = {
            "user_id": "u1",
            "plan_type": "premium",
            "status": "beta",
            "beta_end": "2025-03-11T12:00:00Z",
        }
        result = resolve_entitlement(row, NOW)
        assert result.tier == Tier.BETA
        assert result.days_remaining == 10

    def test_unreadable_row_is_free(self):
        """Test a malformed row resolves to free instead of failing."""
        row = {"user_id": "u1", "status": "beta", "beta_end": "soon"}
        assert resolve_entitlement(row, NOW).tier == Tier.FREE

    def test_naive_end_with_aware_now(self):
        """Test a naive end date is compared in the zone of now."""
        sub = _beta(datetime(2025, 3, 4, 12, 0))
        assert resolve_entitlement(sub, NOW).days_remaining == 3

    def test_resolution_is_deterministic(self):
        """Test the same inputs always give the same result."""
        sub = _trial(NOW + timedelta(days=5))
        assert resolve_entitlement(sub, NOW) == resolve_entitlement(sub, NOW)


class TestSelectCurrentSubscription:
    """Tests for picking the current row among several."""

    def test_empty(self):
        """Test no rows gives None."""
        assert select_current_subscription([]) is None

    def test_newest_candidate_wins(self):
        """Test the newest active, trial or beta row is selected."""
        rows = [
            {"id": "old", "user_id": "u1", "status": "active", "created_at": "2024-01-01"},
            {"id": "new", "user_id": "u1", "status": "trial", "created_at": "2025-01-01"},
            {"id": "gone", "user_id": "u1", "status": "cancelled", "created_at": "2025-02-01"},
        ]
        assert select_current_subscription(rows).id == "new"

    def test_unreadable_rows_are_ignored(self):
        """Test malformed rows are skipped."""
        rows = [
            {"id": "bad", "user_id": "u1", "status": "beta", "created_at": "never"},
            {"id": "ok", "user_id": "u1", "status": "active"},
        ]
        assert select_current_subscription(rows).id == "ok"

    def test_only_non_candidates(self):
        """Test cancelled and expired rows are never current."""
        rows = [{"user_id": "u1", "status": "expired"}]
        assert select_current_subscription(rows) is None


class TestEntitlementResolver:
    """Tests for the settings-bound resolver."""

    def test_uses_injected_settings(self):
        """Test warning thresholds come from the injected settings."""
        resolver = EntitlementResolver(EntitlementSettings(beta_warning_days=0))
        result = resolver.resolve(_beta(NOW + timedelta(days=1)), NOW)
        assert result.tier == Tier.BETA
        assert result.notice is None

    def test_resolve_rows(self):
        """Test resolving the current row among several."""
        resolver = EntitlementResolver()
        rows = [
            {"user_id": "u1", "status": "active", "plan_type": "free", "created_at": "2024-01-01"},
            {
                "user_id": "u1",
                "status": "beta",
                "plan_type": "premium",
                "beta_end": "2025-03-06T12:00:00Z",
                "created_at": "2025-02-01",
            },
        ]
        result = resolver.resolve_rows(rows, NOW)
        assert result.tier == Tier.BETA
        assert result.days_remaining == 5

    def test_resolve_rows_without_rows_is_free(self):
        """Test a user without rows is free."""
        assert EntitlementResolver().resolve_rows([], NOW).tier == Tier.FREE
