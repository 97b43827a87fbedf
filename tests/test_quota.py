"""
Tests for the free-tier quota gate.
"""

import pytest
from datetime import datetime, timedelta

from planboard.config import EntitlementSettings
from planboard.entitlements import (
    QuotaExceeded,
    QuotaGate,
    check_quota,
    count_active_events,
    count_open_tasks,
)
from planboard.models.calendar import Event
from planboard.models.subscription import EntitlementResult, Tier


NOW = datetime(2025, 2, 15, 12, 0)

FREE = EntitlementResult(tier=Tier.FREE, is_premium_active=False)
BETA = EntitlementResult(tier=Tier.BETA, is_premium_active=True, days_remaining=10)


def _event_row(title, start, hours=1):
    return {
        "title": title,
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=hours)).isoformat(),
    }


class TestCheckQuota:
    """Tests for check_quota."""

    def test_sixth_event_on_free_tier_is_refused(self):
        """Test a free user holding 5 events cannot create a 6th."""
        with pytest.raises(QuotaExceeded) as exc_info:
            check_quota(False, 5)
        assert exc_info.value.limit == 5
        assert exc_info.value.current == 5
        assert exc_info.value.resource == "events"

    def test_same_call_passes_with_premium(self):
        """Test the same call passes when premium is active."""
        check_quota(True, 5)

    def test_accepts_entitlement_result(self):
        """Test a resolved entitlement can be passed directly."""
        check_quota(BETA, 50)
        with pytest.raises(QuotaExceeded):
            check_quota(FREE, 5)

    def test_below_limit_passes(self):
        """Test a free user below the limit may create."""
        check_quota(False, 4)

    def test_message_mentions_upgrade(self):
        """Test the error message is user-facing."""
        with pytest.raises(QuotaExceeded, match="5/5"):
            check_quota(False, 5)

    def test_negative_count_rejected(self):
        """Test a negative count is a caller error."""
        with pytest.raises(ValueError, match="cannot be negative"):
            check_quota(False, -1)

    def test_tasks_unlimited_by_default(self):
        """Test tasks have no free-tier limit unless configured."""
        check_quota(False, 1000, resource="tasks", settings=EntitlementSettings())

    def test_configured_task_limit(self):
        """Test a configured task limit is enforced."""
        settings = EntitlementSettings(free_task_limit=3)
        with pytest.raises(QuotaExceeded) as exc_info:
            check_quota(False, 3, resource="tasks", settings=settings)
        assert exc_info.value.resource == "tasks"

    def test_unknown_resource_is_unlimited(self):
        """Test resources without a limit are never gated."""
        check_quota(False, 99, resource="notes")


class TestCounting:
    """Tests for the resource counters."""

    def test_count_active_events_ignores_finished(self):
        """Test finished events do not count toward the quota."""
        rows = [
            _event_row("past", NOW - timedelta(days=2)),
            _event_row("running", NOW - timedelta(minutes=30)),
            _event_row("future", NOW + timedelta(days=1)),
        ]
        assert count_active_events(rows, NOW) == 2

    def test_count_active_events_skips_malformed_rows(self):
        """Test unreadable rows are not counted."""
        rows = [
            _event_row("future", NOW + timedelta(days=1)),
            {"title": "broken", "start_time": "tomorrow", "end_time": "later"},
            {"start_time": NOW.isoformat()},
        ]
        assert count_active_events(rows, NOW) == 1

    def test_count_active_events_accepts_models(self):
        """Test Event models are counted as well as rows."""
        event = Event(
            title="Réunion",
            start_time=NOW + timedelta(hours=1),
            end_time=NOW + timedelta(hours=2),
        )
        assert count_active_events([event], NOW) == 1

    def test_count_open_tasks(self):
        """Test only tasks not completed are counted."""
        tasks = [
            {"title": "a", "completed": False},
            {"title": "b", "completed": True},
            {"title": "c"},
            {"completed": False},
        ]
        assert count_open_tasks(tasks) == 2


class TestQuotaGate:
    """Tests for the settings-bound gate."""

    def test_gate_uses_injected_limit(self):
        """Test the gate enforces the configured event limit."""
        gate = QuotaGate(EntitlementSettings(free_event_limit=2))
        gate.check(FREE, 1)
        with pytest.raises(QuotaExceeded) as exc_info:
            gate.check(FREE, 2)
        assert exc_info.value.limit == 2

    def test_updates_are_never_gated(self):
        """Test editing an existing record passes at the limit."""
        gate = QuotaGate(EntitlementSettings())
        gate.check(FREE, 5, is_update=True)

    def test_premium_is_unlimited(self):
        """Test premium tiers pass any count."""
        QuotaGate(EntitlementSettings()).check(BETA, 500)

    def test_limit_for(self):
        """Test limits per resource."""
        gate = QuotaGate(EntitlementSettings(free_event_limit=5))
        assert gate.limit_for("events") == 5
        assert gate.limit_for("tasks") is None

    def test_gate_with_server_side_enforcement(self):
        """Test the gate still checks when the backend also enforces."""
        gate = QuotaGate(EntitlementSettings(server_side_quota_enforced=True))
        with pytest.raises(QuotaExceeded):
            gate.check(FREE, 5)
