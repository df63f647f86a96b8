"""
Lifecycle hooks the host application calls from its own user and
organization flows.

    await after_user_created(plugin, store, user)
    await before_delete_organization(store, organization_id)
    await after_member_added(plugin, store, organization_id)
"""

from typing import Optional

from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.razorpay.errors import RazorpayErrorCode, bad_request
from packages.razorpay.models.domain.subscription import Subscription
from packages.razorpay.plugin import RazorpayPlugin
from packages.razorpay.repositories.store import BillingStore
from packages.razorpay.services.customer_service import CustomerService
from packages.razorpay.services.seat_sync_service import SeatSyncService
from packages.users.models.domain.user import User

logger = get_logger(__name__)


@trace_span
async def after_user_created(
    plugin: RazorpayPlugin, store: BillingStore, user: User
) -> Optional[str]:
    """
    Provision the user's Razorpay customer at signup when configured to.

    Signup never fails because of billing; a failure is logged and the
    customer is created on the first upgrade instead.
    """
    if not plugin.options.create_customer_on_signup:
        return None
    try:
        return await CustomerService(plugin, store).ensure_user_customer(user)
    except Exception as e:
        logger.error(
            f"Failed to create Razorpay customer for new user {user.id}: {str(e)}",
            extra={"user_id": user.id},
            exc_info=True,
        )
        return None


@trace_span
async def before_delete_organization(
    store: BillingStore, organization_id: int
) -> None:
    """Refuse to delete an organization that is still being billed."""
    subscriptions = await store.subscriptions.list_usable_for_reference(
        str(organization_id)
    )
    if subscriptions:
        logger.warning(
            f"Blocked deletion of organization {organization_id} with an active subscription",
            extra={
                "organization_id": organization_id,
                "subscription_id": subscriptions[0].id,
            },
        )
        raise bad_request(RazorpayErrorCode.ORGANIZATION_HAS_ACTIVE_SUBSCRIPTION)


async def _sync_seats(
    plugin: RazorpayPlugin, store: BillingStore, organization_id: int
) -> Optional[Subscription]:
    if not plugin.options.organization_enabled:
        return None
    return await SeatSyncService(plugin, store).sync_organization_seats(organization_id)


async def after_member_added(
    plugin: RazorpayPlugin, store: BillingStore, organization_id: int
) -> Optional[Subscription]:
    return await _sync_seats(plugin, store, organization_id)


async def after_member_removed(
    plugin: RazorpayPlugin, store: BillingStore, organization_id: int
) -> Optional[Subscription]:
    return await _sync_seats(plugin, store, organization_id)


async def after_invitation_accepted(
    plugin: RazorpayPlugin, store: BillingStore, organization_id: int
) -> Optional[Subscription]:
    return await _sync_seats(plugin, store, organization_id)
