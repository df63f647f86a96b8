"""
Razorpay implementation of payment provider.
"""

import asyncio
from typing import Any, Callable, Optional
import razorpay

from common.core.config import settings
from common.core.exceptions import RemoteServiceError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.razorpay.providers.payment.interface import PaymentProviderInterface
from packages.razorpay.utils import extract_razorpay_error_message

logger = get_logger(__name__)


class RazorpayPaymentProvider(PaymentProviderInterface):
    """Razorpay-based payment implementation.

    The SDK is synchronous (requests under the hood), so each call runs in a
    worker thread.
    """

    def __init__(self, key_id: Optional[str] = None, key_secret: Optional[str] = None):
        """Initialize Razorpay client with API credentials."""
        self.client = razorpay.Client(
            auth=(
                key_id or settings.razorpay_key_id,
                key_secret or settings.razorpay_key_secret,
            )
        )
        self.client.set_app_details(
            {"title": settings.app_name, "version": settings.api_version}
        )

    async def _call(self, operation: str, fn: Callable[..., Any], *args) -> dict:
        try:
            return await asyncio.to_thread(fn, *args)
        except Exception as e:
            message = extract_razorpay_error_message(e)
            logger.error(
                f"Razorpay {operation} failed: {message}",
                extra={"operation": operation, "error": message},
            )
            raise RemoteServiceError(message, operation) from e

    @trace_span
    async def create_customer(
        self,
        name: Optional[str],
        email: Optional[str],
        notes: dict[str, str],
        extra_params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        data: dict[str, Any] = {
            **(extra_params or {}),
            "notes": notes,
            # Return the existing customer for a known email instead of failing
            "fail_existing": "0",
        }
        if name:
            data["name"] = name
        if email:
            data["email"] = email

        customer = await self._call("customer.create", self.client.customer.create, data)
        logger.info(
            "Created Razorpay customer",
            extra={"customer_id": customer.get("id")},
        )
        return customer

    @trace_span
    async def create_subscription(self, params: dict[str, Any]) -> dict[str, Any]:
        subscription = await self._call(
            "subscription.create", self.client.subscription.create, params
        )
        logger.info(
            "Created Razorpay subscription",
            extra={
                "razorpay_subscription_id": subscription.get("id"),
                "plan_id": params.get("plan_id"),
            },
        )
        return subscription

    @trace_span
    async def fetch_subscription(self, subscription_id: str) -> dict[str, Any]:
        return await self._call(
            "subscription.fetch", self.client.subscription.fetch, subscription_id
        )

    @trace_span
    async def cancel_subscription(
        self, subscription_id: str, cancel_at_cycle_end: bool
    ) -> dict[str, Any]:
        return await self._call(
            "subscription.cancel",
            self.client.subscription.cancel,
            subscription_id,
            {"cancel_at_cycle_end": 1 if cancel_at_cycle_end else 0},
        )

    @trace_span
    async def pause_subscription(self, subscription_id: str) -> dict[str, Any]:
        return await self._call(
            "subscription.pause",
            self.client.subscription.pause,
            subscription_id,
            {"pause_at": "now"},
        )

    @trace_span
    async def resume_subscription(self, subscription_id: str) -> dict[str, Any]:
        return await self._call(
            "subscription.resume",
            self.client.subscription.resume,
            subscription_id,
            {"resume_at": "now"},
        )

    @trace_span
    async def update_subscription(
        self, subscription_id: str, changes: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._call(
            "subscription.edit", self.client.subscription.edit, subscription_id, changes
        )

    @trace_span
    async def cancel_scheduled_changes(self, subscription_id: str) -> dict[str, Any]:
        return await self._call(
            "subscription.cancel_scheduled_changes",
            self.client.subscription.cancel_scheduled_changes,
            subscription_id,
        )
