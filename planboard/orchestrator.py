"""
Main Orchestrator for Planboard

Ties the pure engine to the backend and defines the end-to-end flows for:
1. Event creation (fetch subscription -> resolve tier -> count -> gate -> create)
2. Finance overview (fetch month -> aggregate -> budgets)
3. Subscription changes (trial start, beta grant, expiry)

The orchestrator enforces the boundaries:
- The quota gate runs before any create call reaches the backend
- Entitlements are resolved from explicit inputs only (`now`, rows, actor)
- Every decision is audited
"""

from datetime import datetime
from typing import Optional, Union
from uuid import UUID

from planboard.aggregation import (
    PeriodAggregator,
    build_budget_report,
    normalize_budgets,
    summarize_reports,
)
from planboard.audit import AuditLogger, create_correlation_id
from planboard.entitlements import (
    EntitlementResolver,
    NotAuthorized,
    QuotaExceeded,
    QuotaGate,
    count_active_events,
    expire_subscription,
    grant_beta,
    select_current_subscription,
    start_trial,
)
from planboard.models.calendar import Event
from planboard.models.finance import FinanceOverview
from planboard.models.subscription import EntitlementResult, Subscription
from planboard.periods import month_window
from planboard.services.storage import (
    DataSourceInterface,
    InMemoryAuditStorage,
    InMemoryDataSource,
    StorageError,
)


class EventCreationFlow:
    """
    Orchestrates creating a calendar event.

    Flow:
    1. Read the user's subscription rows and resolve the entitlement
    2. Count the user's active events
    3. Quota gate (free tier only) - PAUSE here if the limit is reached
    4. Create through the backend
    """

    def __init__(
        self,
        data_source: DataSourceInterface,
        resolver: Optional[EntitlementResolver] = None,
        quota_gate: Optional[QuotaGate] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._source = data_source
        self._resolver = resolver or EntitlementResolver()
        self._gate = quota_gate or QuotaGate(self._resolver.settings)
        self._audit_logger = audit_logger

    async def resolve(
        self,
        user_id: str,
        now: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> EntitlementResult:
        """Resolve the user's current entitlement and audit it."""
        rows = await self._source.get_subscriptions(user_id)
        entitlement = self._resolver.resolve_rows(rows, now)

        if self._audit_logger:
            await self._audit_logger.log_entitlement_resolved(
                user_id=user_id,
                tier=entitlement.tier.value,
                is_premium_active=entitlement.is_premium_active,
                days_remaining=entitlement.days_remaining,
                notice=entitlement.notice.value if entitlement.notice else None,
                correlation_id=correlation_id,
            )

        return entitlement

    async def create_event(
        self,
        user_id: str,
        event: Union[Event, dict],
        now: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> Event:
        """
        Create an event if the user's tier allows it.

        Raises:
            QuotaExceeded: Free tier and the event limit is reached
            StorageError: The backend rejected the insert
            ValidationError: The event data is invalid
        """
        correlation_id = correlation_id or create_correlation_id()

        if isinstance(event, dict):
            event = Event.model_validate(event)
        event = event.model_copy(update={"user_id": user_id})

        entitlement = await self.resolve(user_id, now, correlation_id)

        existing = await self._source.list_events(user_id)
        current = count_active_events(existing, now)

        try:
            self._gate.check(entitlement, current, resource="events")
        except QuotaExceeded as e:
            if self._audit_logger:
                await self._audit_logger.log_quota_exceeded(
                    user_id=user_id,
                    resource=e.resource,
                    limit=e.limit,
                    current=e.current,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_quota_check_passed(
                user_id=user_id,
                resource="events",
                current=current,
                limit=None if entitlement.is_premium_active else self._gate.limit_for("events"),
                correlation_id=correlation_id,
            )

        try:
            stored = await self._source.create_event(event)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_backend_error(
                    operation="create_event",
                    error_message=str(e),
                    user_id=user_id,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_event_created(
                user_id=user_id,
                event_id=stored.id,
                title=stored.title,
                correlation_id=correlation_id,
            )

        return stored


class FinanceOverviewFlow:
    """
    Orchestrates the monthly finance overview.

    Flow:
    1. Resolve the entitlement (shown as a status card)
    2. Fetch the user's transactions and the profile budget
    3. Aggregate precisely over the month window
    4. Report every valid category budget; malformed budget rows are skipped
    """

    def __init__(
        self,
        data_source: DataSourceInterface,
        resolver: Optional[EntitlementResolver] = None,
        aggregator: Optional[PeriodAggregator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._source = data_source
        self._resolver = resolver or EntitlementResolver()
        self._aggregator = aggregator or PeriodAggregator()
        self._audit_logger = audit_logger

    async def monthly_overview(
        self,
        user_id: str,
        now: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> FinanceOverview:
        correlation_id = correlation_id or create_correlation_id()

        rows = await self._source.get_subscriptions(user_id)
        entitlement = self._resolver.resolve_rows(rows, now)

        window = month_window(now)
        # Yearly budgets need the whole year of transactions
        transactions = await self._source.list_transactions(user_id)
        monthly_budget = await self._source.get_monthly_budget(user_id)

        summary = self._aggregator.summarize(transactions, window, monthly_budget)

        budgets, skipped_budgets = normalize_budgets(await self._source.list_budgets(user_id))
        reports = [
            build_budget_report(b, transactions, now, self._aggregator.settings)
            for b in budgets
        ]
        insights = summarize_reports(reports)

        if self._audit_logger:
            await self._audit_logger.log_period_aggregated(
                user_id=user_id,
                period_start=window.start,
                period_end=window.end,
                transaction_count=summary.transaction_count,
                skipped_count=summary.skipped_count,
                correlation_id=correlation_id,
            )
            if summary.skipped_count:
                await self._audit_logger.log_records_skipped(
                    user_id=user_id,
                    entity_type="transaction",
                    reasons=summary.skipped_reasons,
                    correlation_id=correlation_id,
                )
            if skipped_budgets:
                await self._audit_logger.log_records_skipped(
                    user_id=user_id,
                    entity_type="budget",
                    reasons=skipped_budgets,
                    correlation_id=correlation_id,
                )

        return FinanceOverview(
            entitlement=entitlement,
            summary=summary,
            budgets=reports,
            insights=insights,
        )


class SubscriptionFlow:
    """
    Orchestrates subscription lifecycle changes.

    The lifecycle helpers compute the new row; this flow persists it through
    the backend and audits the change.
    """

    def __init__(
        self,
        data_source: DataSourceInterface,
        resolver: Optional[EntitlementResolver] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._source = data_source
        self._resolver = resolver or EntitlementResolver()
        self._audit_logger = audit_logger

    async def _current(self, user_id: str) -> Optional[Subscription]:
        rows = await self._source.get_subscriptions(user_id)
        return select_current_subscription(rows)

    async def start_trial(
        self,
        user_id: str,
        now: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> Subscription:
        correlation_id = correlation_id or create_correlation_id()
        existing = await self._current(user_id)
        trial = start_trial(user_id, now, existing, self._resolver.settings)
        stored = await self._source.save_subscription(trial)

        if self._audit_logger:
            await self._audit_logger.log_trial_started(
                user_id=user_id,
                trial_end=stored.trial_end,
                correlation_id=correlation_id,
            )
        return stored

    async def grant_beta(
        self,
        user_id: str,
        actor_email: Optional[str],
        now: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> Subscription:
        """
        Raises:
            NotAuthorized: actor_email is not an admin
        """
        correlation_id = correlation_id or create_correlation_id()
        existing = await self._current(user_id)

        try:
            beta = grant_beta(user_id, now, actor_email, existing, self._resolver.settings)
        except NotAuthorized:
            if self._audit_logger:
                await self._audit_logger.log_beta_grant_refused(
                    user_id=user_id,
                    actor_email=actor_email or "",
                    correlation_id=correlation_id,
                )
            raise

        stored = await self._source.save_subscription(beta)

        if self._audit_logger:
            await self._audit_logger.log_beta_granted(
                user_id=user_id,
                actor_email=actor_email or "",
                beta_end=stored.beta_end,
                correlation_id=correlation_id,
            )
        return stored

    async def expire_if_elapsed(
        self,
        user_id: str,
        now: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Subscription]:
        """
        Persist the downgrade of an elapsed trial or beta row.

        Returns the current row (downgraded or not), or None without one.
        """
        current = await self._current(user_id)
        if current is None:
            return None

        downgraded = expire_subscription(current, now, self._resolver.settings)
        if downgraded is current:
            return current

        stored = await self._source.save_subscription(downgraded)
        if self._audit_logger:
            entitlement = self._resolver.resolve(current, now)
            await self._audit_logger.log_entitlement_resolved(
                user_id=user_id,
                tier=entitlement.tier.value,
                is_premium_active=entitlement.is_premium_active,
                days_remaining=entitlement.days_remaining,
                notice=entitlement.notice.value if entitlement.notice else None,
                correlation_id=correlation_id,
            )
        return stored


def create_app_components(
    data_source: Optional[DataSourceInterface] = None,
) -> tuple[EventCreationFlow, FinanceOverviewFlow, SubscriptionFlow, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        data_source: Backend adapter. Defaults to an empty in-memory source.

    Returns:
        (event_flow, finance_flow, subscription_flow, audit_logger)
    """
    data_source = data_source or InMemoryDataSource()
    audit_logger = AuditLogger(InMemoryAuditStorage())
    resolver = EntitlementResolver()

    event_flow = EventCreationFlow(
        data_source,
        resolver=resolver,
        audit_logger=audit_logger,
    )
    finance_flow = FinanceOverviewFlow(
        data_source,
        resolver=resolver,
        audit_logger=audit_logger,
    )
    subscription_flow = SubscriptionFlow(
        data_source,
        resolver=resolver,
        audit_logger=audit_logger,
    )

    return event_flow, finance_flow, subscription_flow, audit_logger
