"""
Keeps seat-based organization subscriptions in step with membership.
"""

from typing import Optional

from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.razorpay.models.domain.enums import ScheduleChangeAt, SubscriptionStatus
from packages.razorpay.models.domain.subscription import Subscription
from packages.razorpay.plugin import RazorpayPlugin
from packages.razorpay.repositories.store import BillingStore
from packages.razorpay.services.subscription_service import SubscriptionService
from packages.razorpay.utils import find_plan_by_name

logger = get_logger(__name__)


class SeatSyncService:
    def __init__(self, plugin: RazorpayPlugin, store: BillingStore):
        self.plugin = plugin
        self.store = store
        self.subscriptions = SubscriptionService(plugin, store)

    @trace_span
    async def sync_organization_seats(
        self, organization_id: int
    ) -> Optional[Subscription]:
        """
        Set the quantity of the organization's active seat-based subscription
        to its member count.

        Membership changes must not fail because billing did, so errors are
        logged and None is returned. Local writes run in a savepoint so a
        failed sync leaves the caller's session usable.
        """
        try:
            async with self.store.savepoint():
                return await self._sync(organization_id)
        except Exception as e:
            logger.error(
                f"Seat sync failed for organization {organization_id}: {str(e)}",
                extra={"organization_id": organization_id},
                exc_info=True,
            )
            return None

    async def _sync(self, organization_id: int) -> Optional[Subscription]:
        plans = await self.plugin.get_plans()
        candidates = await self.store.subscriptions.list_usable_for_reference(
            str(organization_id)
        )

        subscription = None
        for candidate in candidates:
            plan = find_plan_by_name(plans, candidate.plan)
            if (
                plan
                and plan.seat_based
                and candidate.status == SubscriptionStatus.ACTIVE
                and candidate.razorpay_subscription_id
            ):
                subscription = candidate
                break

        if subscription is None:
            return None

        seats = max(await self.store.organizations.count_members(organization_id), 1)
        if subscription.quantity == seats:
            return subscription

        updated, _ = await self.subscriptions.push_update(
            subscription,
            quantity=seats,
            schedule_change_at=ScheduleChangeAt.NOW,
        )
        logger.info(
            f"Synced organization {organization_id} seats to {seats}",
            extra={
                "organization_id": organization_id,
                "subscription_id": subscription.id,
                "previous_quantity": subscription.quantity,
                "quantity": seats,
            },
        )
        return updated
