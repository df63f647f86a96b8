"""
Reconciles Razorpay subscription webhooks against local subscription rows.

Every handler follows one shape:

    find the row by razorpay_subscription_id (or the local id in the notes)
    -> overwrite it with the provider's authoritative fields
    -> or, when no row exists, resolve the reference and create one
    -> fire the matching callback if the write was a real transition

Writes are full-field overwrites taken from the payload, never increments,
so a redelivered event leaves the row exactly as the first delivery did.
Lifecycle timestamps (ended_at, cancelled_at, paused_at) are written once per
transition and kept on replay. A redelivery changes nothing and therefore
fires no callback.
"""

import functools
from typing import Any, Callable, Optional

from common.core.otel_axiom_exporter import get_logger
from packages.razorpay import notes as razorpay_notes
from packages.razorpay.callbacks import SubscriptionCallbacks
from packages.razorpay.models.domain.enums import BillingPeriod, SubscriptionStatus
from packages.razorpay.models.domain.plans import RazorpayPlan
from packages.razorpay.models.domain.razorpay_webhooks import (
    RazorpaySubscriptionEntity,
    RazorpayWebhookEvent,
)
from packages.razorpay.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.razorpay.plugin import RazorpayPlugin
from packages.razorpay.repositories.store import BillingStore
from packages.razorpay.services.reference_resolver import ReferenceResolver
from packages.razorpay.utils import (
    find_plan_by_name,
    find_plan_by_razorpay_id,
    timestamp_to_datetime,
    utcnow,
)

logger = get_logger(__name__)

STATUS_ONLY = ("status",)
CHARGE_FIELDS = ("paid_count", "current_end")
MIRRORED_FIELDS = (
    "status",
    "plan",
    "razorpay_plan_id",
    "quantity",
    "total_count",
    "remaining_count",
    "current_end",
    "cancel_at_cycle_end",
)

ChangeBuilder = Callable[[Optional[Subscription]], dict[str, Any]]
Reconciled = tuple[Optional[Subscription], Subscription]


def swallow_handler_errors(handler):
    """
    Run a webhook handler so that nothing escapes it.

    Razorpay retries any non-2xx response, so a failing handler must not fail
    the request; the failure is logged with enough context to replay by hand.
    """

    @functools.wraps(handler)
    async def wrapper(self, event: RazorpayWebhookEvent) -> None:
        entity = event.subscription_entity
        try:
            await handler(self, event)
        except Exception as e:
            logger.error(
                f"Failed to handle Razorpay webhook {event.event}: {str(e)}",
                extra={
                    "event_type": event.event,
                    "razorpay_subscription_id": entity.id if entity else None,
                    "error": str(e),
                },
                exc_info=True,
            )

    return wrapper


def _present(**fields: Any) -> dict[str, Any]:
    """Drop fields the payload did not carry so sparse events never erase data."""
    return {key: value for key, value in fields.items() if value is not None}


def _once(existing: Optional[Subscription], field: str, value: Any) -> Any:
    """Lifecycle timestamp: keep the recorded one, else the event's, else now."""
    current = getattr(existing, field) if existing else None
    return current or value or utcnow()


def _cycle(entity: RazorpaySubscriptionEntity) -> dict[str, Any]:
    return _present(
        current_start=timestamp_to_datetime(entity.current_start),
        current_end=timestamp_to_datetime(entity.current_end),
    )


def _counters(entity: RazorpaySubscriptionEntity) -> dict[str, Any]:
    return _present(
        quantity=entity.quantity,
        total_count=entity.total_count,
        paid_count=entity.paid_count,
        remaining_count=entity.remaining_count,
    )


def _trial(entity: RazorpaySubscriptionEntity) -> dict[str, Any]:
    if not (entity.trial_start and entity.trial_end):
        return {}
    return {
        "trial_start": timestamp_to_datetime(entity.trial_start),
        "trial_end": timestamp_to_datetime(entity.trial_end),
    }


def _provider_status(
    entity: RazorpaySubscriptionEntity,
    existing: Optional[Subscription],
    fallback: SubscriptionStatus,
) -> SubscriptionStatus:
    reported = SubscriptionStatus.from_provider(entity.status)
    if reported:
        return reported
    return existing.status if existing else fallback


class SubscriptionReconciler:
    """One handler per subscription event type, each behind swallow_handler_errors."""

    def __init__(self, plugin: RazorpayPlugin, store: BillingStore):
        self.plugin = plugin
        self.store = store
        self.callbacks: SubscriptionCallbacks = plugin.callbacks
        self.resolver = ReferenceResolver(
            store, organization_enabled=plugin.options.organization_enabled
        )

    # ------------------------------------------------------------------
    # Shared upsert
    # ------------------------------------------------------------------

    async def _find(self, entity: RazorpaySubscriptionEntity) -> Optional[Subscription]:
        subscriptions = self.store.subscriptions
        existing = await subscriptions.get_by_razorpay_subscription_id(entity.id)
        if existing:
            return existing

        # Row created by upgrade whose razorpay id was never written back
        local_id = razorpay_notes.subscription_id_from_notes(entity.notes)
        if local_id is None:
            return None
        candidate = await subscriptions.get(local_id)
        if candidate and candidate.razorpay_subscription_id is None:
            return candidate
        return None

    async def _plan_for(self, razorpay_plan_id: Optional[str]) -> Optional[RazorpayPlan]:
        return find_plan_by_razorpay_id(await self.plugin.get_plans(), razorpay_plan_id)

    async def _create(
        self,
        event: RazorpayWebhookEvent,
        entity: RazorpaySubscriptionEntity,
        changes: dict[str, Any],
    ) -> Optional[Subscription]:
        reference = await self.resolver.resolve(entity.customer_id, entity.notes)
        if reference is None:
            logger.warning(
                f"Reference not found for Razorpay subscription {entity.id} "
                f"({event.event}), skipping",
                extra={
                    "event_type": event.event,
                    "razorpay_subscription_id": entity.id,
                    "customer_id": entity.customer_id,
                },
            )
            return None

        plan = await self._plan_for(entity.plan_id)
        if plan is None:
            logger.warning(
                f"Plan not found for Razorpay plan {entity.plan_id} "
                f"({event.event}), skipping",
                extra={
                    "event_type": event.event,
                    "razorpay_subscription_id": entity.id,
                    "plan_id": entity.plan_id,
                },
            )
            return None

        is_annual = bool(plan.annual_plan_id) and entity.plan_id == plan.annual_plan_id
        data: dict[str, Any] = {
            "reference_id": reference.reference_id,
            "plan": plan.name.lower(),
            "razorpay_subscription_id": entity.id,
            "razorpay_customer_id": entity.customer_id,
            "razorpay_plan_id": entity.plan_id,
            "short_url": entity.short_url,
            "group_id": plan.group,
            "billing_period": BillingPeriod.ANNUAL if is_annual else BillingPeriod.MONTHLY,
            **_cycle(entity),
            **_counters(entity),
            **changes,
        }
        subscription = await self.store.subscriptions.create(
            SubscriptionCreateModel(**data)
        )
        logger.info(
            f"Created subscription {subscription.id} from {event.event} "
            f"for reference {reference.reference_id}",
            extra={
                "event_type": event.event,
                "subscription_id": subscription.id,
                "razorpay_subscription_id": entity.id,
                "reference_id": reference.reference_id,
            },
        )
        return subscription

    async def _reconcile(
        self,
        event: RazorpayWebhookEvent,
        build_changes: ChangeBuilder,
        callback_name: str,
        watched: tuple[str, ...] = STATUS_ONLY,
    ) -> Optional[Reconciled]:
        """Write the changes and fire the callback; returns (before, after) when a row was written."""
        entity = event.subscription_entity
        if entity is None:
            logger.warning(
                f"Ignoring {event.event} without a valid subscription entity",
                extra={"event_type": event.event},
            )
            return None

        async with self.store.savepoint():
            before = await self._find(entity)
            changes = build_changes(before)
            if before is None:
                after = await self._create(event, entity, changes)
                if after is None:
                    return None
            else:
                if before.razorpay_subscription_id is None:
                    changes["razorpay_subscription_id"] = entity.id
                after = await self.store.subscriptions.update(
                    before.id, SubscriptionUpdateModel(**changes)
                )

        if before is not None and all(
            getattr(before, field) == getattr(after, field) for field in watched
        ):
            logger.info(
                f"No transition for subscription {after.id} on {event.event}",
                extra={
                    "event_type": event.event,
                    "subscription_id": after.id,
                    "razorpay_subscription_id": entity.id,
                },
            )
            return before, after

        logger.info(
            f"Subscription {after.id} is now {after.status.value} after {event.event}",
            extra={
                "event_type": event.event,
                "subscription_id": after.id,
                "razorpay_subscription_id": entity.id,
                "status": after.status.value,
            },
        )
        if after.status.has_payment_issue():
            logger.warning(
                f"Subscription {after.id} has a payment issue ({after.status.value})",
                extra={
                    "event_type": event.event,
                    "subscription_id": after.id,
                    "razorpay_subscription_id": entity.id,
                    "reference_id": after.reference_id,
                },
            )
        callback = getattr(self.callbacks, callback_name)
        await callback(event, entity, after)
        return before, after

    async def _re_resolved_plan(self, entity: RazorpaySubscriptionEntity) -> dict:
        plan = await self._plan_for(entity.plan_id)
        return {"plan": plan.name.lower()} if plan else {}

    async def _notify_trial(self, callback_name: str, subscription: Subscription) -> None:
        plan = find_plan_by_name(await self.plugin.get_plans(), subscription.plan)
        if plan is None:
            return
        logger.info(
            f"Firing {callback_name} for subscription {subscription.id}",
            extra={"subscription_id": subscription.id, "plan": plan.name},
        )
        await getattr(self.callbacks, callback_name)(subscription, plan)

    # ------------------------------------------------------------------
    # Per-event handlers
    # ------------------------------------------------------------------

    @swallow_handler_errors
    async def handle_authenticated(self, event: RazorpayWebhookEvent) -> None:
        await self._reconcile(
            event,
            lambda existing: {"status": SubscriptionStatus.AUTHENTICATED},
            "on_subscription_authenticated",
        )

    @swallow_handler_errors
    async def handle_activated(self, event: RazorpayWebhookEvent) -> None:
        entity = event.subscription_entity
        plan_change = await self._re_resolved_plan(entity) if entity else {}
        result = await self._reconcile(
            event,
            lambda existing: {
                "status": SubscriptionStatus.ACTIVE,
                **plan_change,
                **_present(
                    razorpay_plan_id=entity.plan_id,
                    razorpay_customer_id=entity.customer_id,
                    short_url=entity.short_url,
                ),
                **_cycle(entity),
                **_counters(entity),
                **_trial(entity),
            },
            "on_subscription_activated",
        )
        if result is None:
            return
        before, after = result
        if after.trial_start and not (before and before.trial_start):
            await self._notify_trial("on_trial_start", after)

    @swallow_handler_errors
    async def handle_charged(self, event: RazorpayWebhookEvent) -> None:
        entity = event.subscription_entity
        result = await self._reconcile(
            event,
            lambda existing: {
                "status": _provider_status(entity, existing, SubscriptionStatus.ACTIVE),
                **_cycle(entity),
                **_present(
                    paid_count=entity.paid_count,
                    remaining_count=entity.remaining_count,
                ),
            },
            "on_subscription_charged",
            watched=CHARGE_FIELDS,
        )
        if result is None:
            return
        before, after = result
        # First paid cycle after a free trial
        if after.trial_end and before and before.paid_count == 0 and after.paid_count > 0:
            await self._notify_trial("on_trial_end", after)

    @swallow_handler_errors
    async def handle_pending(self, event: RazorpayWebhookEvent) -> None:
        await self._reconcile(
            event,
            lambda existing: {"status": SubscriptionStatus.PENDING},
            "on_subscription_pending",
        )

    @swallow_handler_errors
    async def handle_halted(self, event: RazorpayWebhookEvent) -> None:
        await self._reconcile(
            event,
            lambda existing: {"status": SubscriptionStatus.HALTED},
            "on_subscription_halted",
        )

    @swallow_handler_errors
    async def handle_completed(self, event: RazorpayWebhookEvent) -> None:
        entity = event.subscription_entity
        await self._reconcile(
            event,
            lambda existing: {
                "status": SubscriptionStatus.COMPLETED,
                "ended_at": _once(
                    existing, "ended_at", timestamp_to_datetime(entity.ended_at)
                ),
                **_present(paid_count=entity.paid_count),
                "remaining_count": 0,
            },
            "on_subscription_completed",
        )

    @swallow_handler_errors
    async def handle_updated(self, event: RazorpayWebhookEvent) -> None:
        entity = event.subscription_entity
        plan_change = await self._re_resolved_plan(entity) if entity else {}
        await self._reconcile(
            event,
            lambda existing: {
                "status": _provider_status(entity, existing, SubscriptionStatus.ACTIVE),
                **plan_change,
                **_present(
                    razorpay_plan_id=entity.plan_id,
                    cancel_at_cycle_end=entity.cancel_at_cycle_end,
                ),
                **_cycle(entity),
                **_counters(entity),
            },
            "on_subscription_updated",
            watched=MIRRORED_FIELDS,
        )

    @swallow_handler_errors
    async def handle_paused(self, event: RazorpayWebhookEvent) -> None:
        entity = event.subscription_entity
        await self._reconcile(
            event,
            lambda existing: {
                "status": SubscriptionStatus.PAUSED,
                "paused_at": _once(
                    existing, "paused_at", timestamp_to_datetime(entity.paused_at)
                ),
            },
            "on_subscription_paused",
        )

    @swallow_handler_errors
    async def handle_resumed(self, event: RazorpayWebhookEvent) -> None:
        entity = event.subscription_entity
        await self._reconcile(
            event,
            lambda existing: {
                "status": _provider_status(entity, existing, SubscriptionStatus.ACTIVE),
                "paused_at": None,
                **_cycle(entity),
            },
            "on_subscription_resumed",
        )

    @swallow_handler_errors
    async def handle_cancelled(self, event: RazorpayWebhookEvent) -> None:
        entity = event.subscription_entity
        await self._reconcile(
            event,
            lambda existing: {
                "status": SubscriptionStatus.CANCELLED,
                "cancelled_at": _once(existing, "cancelled_at", None),
                "ended_at": _once(
                    existing, "ended_at", timestamp_to_datetime(entity.ended_at)
                ),
            },
            "on_subscription_cancel",
        )

    @swallow_handler_errors
    async def handle_expired(self, event: RazorpayWebhookEvent) -> None:
        entity = event.subscription_entity
        await self._reconcile(
            event,
            lambda existing: {
                "status": SubscriptionStatus.EXPIRED,
                "ended_at": _once(
                    existing, "ended_at", timestamp_to_datetime(entity.ended_at)
                ),
            },
            "on_subscription_expired",
        )
