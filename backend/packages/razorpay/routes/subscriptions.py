"""
Subscription action routes.

Authenticated endpoints for starting, changing and ending subscriptions,
plus the unauthenticated checkout return. Every action first resolves the billed reference (the caller, another user,
or an organization) and checks the caller may act on it.
"""

from typing import Optional
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from common.core.config import settings
from packages.auth.dependencies import get_current_session
from packages.auth.models.domain.session import SessionContext
from packages.razorpay.dependencies import authorize_reference, get_billing_store
from packages.razorpay.models.domain.enums import CustomerType, ReferenceAction
from packages.razorpay.models.domain.subscription import Subscription
from packages.razorpay.models.schemas.subscription import (
    CancelSubscriptionRequest,
    ReferenceRequest,
    SubscriptionActionResponse,
    SubscriptionResponse,
    SubscriptionWithLimitsResponse,
    UpdateSubscriptionRequest,
    UpgradeSubscriptionRequest,
)
from packages.razorpay.plugin import RazorpayPlugin, get_razorpay_plugin
from packages.razorpay.repositories.store import BillingStore
from packages.razorpay.services.subscription_service import SubscriptionService

router = APIRouter(prefix="/subscription")


def _to_response(subscription: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(**subscription.model_dump())


# ============================================================================
# Start / change
# ============================================================================


@router.post("/upgrade", response_model=SubscriptionActionResponse)
async def upgrade_subscription(
    request: UpgradeSubscriptionRequest,
    context: SessionContext = Depends(get_current_session),
    plugin: RazorpayPlugin = Depends(get_razorpay_plugin),
    store: BillingStore = Depends(get_billing_store),
):
    """
    Start a subscription on a configured plan.

    Returns the local record and the Razorpay subscription, whose
    `short_url` is where the customer completes checkout.
    """
    reference = await authorize_reference(
        plugin, context, request.reference_id, request.customer_type, ReferenceAction.UPGRADE
    )
    subscription, remote = await SubscriptionService(plugin, store).upgrade(
        context, reference, request
    )
    return SubscriptionActionResponse(
        subscription=_to_response(subscription), razorpay_subscription=remote
    )


@router.post("/update", response_model=SubscriptionActionResponse)
async def update_subscription(
    request: UpdateSubscriptionRequest,
    context: SessionContext = Depends(get_current_session),
    plugin: RazorpayPlugin = Depends(get_razorpay_plugin),
    store: BillingStore = Depends(get_billing_store),
):
    """Change plan, quantity or remaining billing cycles."""
    reference = await authorize_reference(
        plugin, context, request.reference_id, request.customer_type, ReferenceAction.UPDATE
    )
    subscription, remote = await SubscriptionService(plugin, store).update(
        reference, request
    )
    return SubscriptionActionResponse(
        subscription=_to_response(subscription), razorpay_subscription=remote
    )


# ============================================================================
# Lifecycle
# ============================================================================


@router.post("/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    request: CancelSubscriptionRequest,
    context: SessionContext = Depends(get_current_session),
    plugin: RazorpayPlugin = Depends(get_razorpay_plugin),
    store: BillingStore = Depends(get_billing_store),
):
    reference = await authorize_reference(
        plugin, context, request.reference_id, request.customer_type, ReferenceAction.CANCEL
    )
    subscription = await SubscriptionService(plugin, store).cancel(reference, request)
    return _to_response(subscription)


@router.post("/restore", response_model=SubscriptionResponse)
async def restore_subscription(
    request: ReferenceRequest,
    context: SessionContext = Depends(get_current_session),
    plugin: RazorpayPlugin = Depends(get_razorpay_plugin),
    store: BillingStore = Depends(get_billing_store),
):
    """Undo a pending cancel-at-cycle-end."""
    reference = await authorize_reference(
        plugin, context, request.reference_id, request.customer_type, ReferenceAction.RESTORE
    )
    subscription = await SubscriptionService(plugin, store).restore(reference)
    return _to_response(subscription)


@router.post("/pause", response_model=SubscriptionResponse)
async def pause_subscription(
    request: ReferenceRequest,
    context: SessionContext = Depends(get_current_session),
    plugin: RazorpayPlugin = Depends(get_razorpay_plugin),
    store: BillingStore = Depends(get_billing_store),
):
    reference = await authorize_reference(
        plugin, context, request.reference_id, request.customer_type, ReferenceAction.PAUSE
    )
    subscription = await SubscriptionService(plugin, store).pause(reference)
    return _to_response(subscription)


@router.post("/resume", response_model=SubscriptionResponse)
async def resume_subscription(
    request: ReferenceRequest,
    context: SessionContext = Depends(get_current_session),
    plugin: RazorpayPlugin = Depends(get_razorpay_plugin),
    store: BillingStore = Depends(get_billing_store),
):
    reference = await authorize_reference(
        plugin, context, request.reference_id, request.customer_type, ReferenceAction.RESUME
    )
    subscription = await SubscriptionService(plugin, store).resume(reference)
    return _to_response(subscription)


# ============================================================================
# Listing
# ============================================================================


@router.get("/list", response_model=list[SubscriptionWithLimitsResponse])
async def list_subscriptions(
    reference_id: Optional[str] = Query(default=None, alias="referenceId"),
    customer_type: CustomerType = Query(default=CustomerType.USER, alias="customerType"),
    context: SessionContext = Depends(get_current_session),
    plugin: RazorpayPlugin = Depends(get_razorpay_plugin),
    store: BillingStore = Depends(get_billing_store),
):
    """All subscriptions of the reference, each with its plan's limits."""
    reference = await authorize_reference(
        plugin, context, reference_id, customer_type, ReferenceAction.LIST
    )
    rows = await SubscriptionService(plugin, store).list_for_reference(reference)
    return [
        SubscriptionWithLimitsResponse(**subscription.model_dump(), limits=limits)
        for subscription, limits in rows
    ]


# ============================================================================
# Checkout return
# ============================================================================


def _redirect_target(callback_url: Optional[str]) -> str:
    """Relative paths and allowed origins only; anything else goes home."""
    if not callback_url:
        return "/"
    if callback_url.startswith("/") and not callback_url.startswith("//"):
        return callback_url
    parts = urlsplit(callback_url)
    if f"{parts.scheme}://{parts.netloc}" in settings.cors_allowed_origins:
        return callback_url
    return "/"


@router.get("/success")
async def subscription_success(
    callback_url: Optional[str] = Query(default=None, alias="callbackURL"),
    subscription_id: Optional[str] = Query(default=None, alias="subscriptionId"),
    razorpay_subscription_id: Optional[str] = Query(default=None, alias="rzp_sub_id"),
    plugin: RazorpayPlugin = Depends(get_razorpay_plugin),
    store: BillingStore = Depends(get_billing_store),
):
    """
    Landing point after Razorpay checkout.

    Syncs the local row from Razorpay so the customer sees the new status
    before the webhook arrives, then redirects to `callbackURL`.
    """
    if subscription_id:
        await SubscriptionService(plugin, store).sync_after_checkout(
            subscription_id, razorpay_subscription_id
        )
    return RedirectResponse(_redirect_target(callback_url), status_code=302)
