"""
Razorpay webhook handler for subscription events.

Handles events from Razorpay:
- Subscription lifecycle (authenticated, activated, charged, pending, halted,
  completed, updated, paused, resumed, cancelled, expired)
- Anything else is acknowledged and ignored

Once the signature checks out the endpoint always acknowledges; processing
failures surface only in the logs so Razorpay never enters a retry storm.
"""

import json

from fastapi import Request
from pydantic import ValidationError

from common.core.otel_axiom_exporter import get_logger, log_span_event
from packages.razorpay.errors import RazorpayErrorCode, bad_request, unauthorized
from packages.razorpay.models.domain.razorpay_webhooks import (
    RazorpayWebhookEvent,
    RazorpayWebhookType,
)
from packages.razorpay.plugin import RazorpayPlugin
from packages.razorpay.repositories.store import BillingStore
from packages.razorpay.webhooks.reconciler import SubscriptionReconciler
from packages.razorpay.webhooks.signature import SIGNATURE_HEADER, verify_signature

logger = get_logger(__name__)


async def handle_razorpay_webhook(
    request: Request, plugin: RazorpayPlugin, store: BillingStore
) -> dict[str, bool]:
    """
    Handle incoming webhook from Razorpay.

    Validates the signature against the raw body, parses the event and
    routes it to the matching reconciler handler.
    """
    # Raw body: the signature covers the exact bytes Razorpay sent
    payload_bytes = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    if not signature:
        raise bad_request(RazorpayErrorCode.WEBHOOK_SIGNATURE_NOT_FOUND)

    secret = plugin.webhook_secret
    if not secret:
        logger.error("Razorpay webhook received but no webhook secret is configured")
        raise bad_request(RazorpayErrorCode.WEBHOOK_SECRET_NOT_FOUND)

    if not verify_signature(payload_bytes, signature, secret):
        logger.warning("Razorpay webhook signature verification failed")
        raise unauthorized(RazorpayErrorCode.FAILED_TO_VERIFY_WEBHOOK)

    try:
        data = json.loads(payload_bytes)
    except ValueError:
        logger.error("Razorpay webhook body is not valid JSON")
        raise bad_request(RazorpayErrorCode.INVALID_WEBHOOK_PAYLOAD)

    try:
        event = RazorpayWebhookEvent.model_validate(data)
    except ValidationError as e:
        # Signed by Razorpay but not an event object; acknowledge so it is not retried
        logger.error(
            "Razorpay webhook body is not an event object, acknowledging",
            extra={"validation_errors": e.errors(include_url=False)},
        )
        return {"success": True}

    entity = event.subscription_entity
    log_span_event(
        f"Received Razorpay webhook: {event.event}",
        {
            "event_type": event.event,
            "account_id": event.account_id or "",
            "razorpay_subscription_id": entity.id if entity else "",
        },
    )

    await route_event(event, SubscriptionReconciler(plugin, store))

    try:
        await plugin.callbacks.on_event(event)
    except Exception as e:
        logger.error(
            f"on_event callback failed for {event.event}: {str(e)}",
            extra={"event_type": event.event},
            exc_info=True,
        )

    return {"success": True}


async def route_event(
    event: RazorpayWebhookEvent, reconciler: SubscriptionReconciler
) -> None:
    """Dispatch to the handler for the event type. Handlers never raise."""
    event_type = event.type

    if event_type == RazorpayWebhookType.SUBSCRIPTION_AUTHENTICATED:
        await reconciler.handle_authenticated(event)
    elif event_type == RazorpayWebhookType.SUBSCRIPTION_ACTIVATED:
        await reconciler.handle_activated(event)
    elif event_type == RazorpayWebhookType.SUBSCRIPTION_CHARGED:
        await reconciler.handle_charged(event)
    elif event_type == RazorpayWebhookType.SUBSCRIPTION_PENDING:
        await reconciler.handle_pending(event)
    elif event_type == RazorpayWebhookType.SUBSCRIPTION_HALTED:
        await reconciler.handle_halted(event)
    elif event_type == RazorpayWebhookType.SUBSCRIPTION_COMPLETED:
        await reconciler.handle_completed(event)
    elif event_type == RazorpayWebhookType.SUBSCRIPTION_UPDATED:
        await reconciler.handle_updated(event)
    elif event_type == RazorpayWebhookType.SUBSCRIPTION_PAUSED:
        await reconciler.handle_paused(event)
    elif event_type == RazorpayWebhookType.SUBSCRIPTION_RESUMED:
        await reconciler.handle_resumed(event)
    elif event_type == RazorpayWebhookType.SUBSCRIPTION_CANCELLED:
        await reconciler.handle_cancelled(event)
    elif event_type == RazorpayWebhookType.SUBSCRIPTION_EXPIRED:
        await reconciler.handle_expired(event)
    else:
        logger.info(
            f"Unhandled Razorpay webhook type: {event.event}",
            extra={"event_type": event.event},
        )
