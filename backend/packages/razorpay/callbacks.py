"""
Lifecycle callbacks the host application can hook into.

Subclass SubscriptionCallbacks and override only the transitions you care
about; every method defaults to a no-op. Webhook-driven callbacks receive the
verified event, the provider's subscription entity and the local row after
the update. Transitions initiated through the action endpoints (pause,
resume, immediate cancel) fire the same callback with `event=None`; the
confirming webhook then finds nothing new and stays silent.
"""

from typing import Any, Optional

from packages.razorpay.models.domain.plans import RazorpayPlan
from packages.razorpay.models.domain.razorpay_webhooks import (
    RazorpaySubscriptionEntity,
    RazorpayWebhookEvent,
)
from packages.razorpay.models.domain.subscription import Subscription


class SubscriptionCallbacks:
    async def on_event(self, event: RazorpayWebhookEvent) -> None:
        """Every verified webhook, after type-specific processing."""

    async def on_customer_create(
        self, customer: dict[str, Any], customer_type: str, entity_id: int
    ) -> None:
        pass

    async def on_subscription_created(
        self,
        subscription: Subscription,
        razorpay_subscription: RazorpaySubscriptionEntity,
        plan: RazorpayPlan,
    ) -> None:
        """Upgrade created a remote subscription; checkout is still pending."""

    async def on_subscription_authenticated(
        self,
        event: Optional[RazorpayWebhookEvent],
        razorpay_subscription: RazorpaySubscriptionEntity,
        subscription: Subscription,
    ) -> None:
        pass

    async def on_subscription_activated(
        self,
        event: Optional[RazorpayWebhookEvent],
        razorpay_subscription: RazorpaySubscriptionEntity,
        subscription: Subscription,
    ) -> None:
        pass

    async def on_subscription_charged(
        self,
        event: Optional[RazorpayWebhookEvent],
        razorpay_subscription: RazorpaySubscriptionEntity,
        subscription: Subscription,
    ) -> None:
        pass

    async def on_subscription_pending(
        self,
        event: Optional[RazorpayWebhookEvent],
        razorpay_subscription: RazorpaySubscriptionEntity,
        subscription: Subscription,
    ) -> None:
        pass

    async def on_subscription_halted(
        self,
        event: Optional[RazorpayWebhookEvent],
        razorpay_subscription: RazorpaySubscriptionEntity,
        subscription: Subscription,
    ) -> None:
        pass

    async def on_subscription_completed(
        self,
        event: Optional[RazorpayWebhookEvent],
        razorpay_subscription: RazorpaySubscriptionEntity,
        subscription: Subscription,
    ) -> None:
        pass

    async def on_subscription_updated(
        self,
        event: Optional[RazorpayWebhookEvent],
        razorpay_subscription: RazorpaySubscriptionEntity,
        subscription: Subscription,
    ) -> None:
        pass

    async def on_subscription_paused(
        self,
        event: Optional[RazorpayWebhookEvent],
        razorpay_subscription: RazorpaySubscriptionEntity,
        subscription: Subscription,
    ) -> None:
        pass

    async def on_subscription_resumed(
        self,
        event: Optional[RazorpayWebhookEvent],
        razorpay_subscription: RazorpaySubscriptionEntity,
        subscription: Subscription,
    ) -> None:
        pass

    async def on_subscription_cancel(
        self,
        event: Optional[RazorpayWebhookEvent],
        razorpay_subscription: RazorpaySubscriptionEntity,
        subscription: Subscription,
    ) -> None:
        """Subscription reached the terminal `cancelled` status."""

    async def on_subscription_expired(
        self,
        event: Optional[RazorpayWebhookEvent],
        razorpay_subscription: RazorpaySubscriptionEntity,
        subscription: Subscription,
    ) -> None:
        """Checkout was never completed or the mandate lapsed."""

    async def on_trial_start(self, subscription: Subscription, plan: RazorpayPlan) -> None:
        """Activation carried a free trial window."""

    async def on_trial_end(self, subscription: Subscription, plan: RazorpayPlan) -> None:
        """First paid charge after a free trial."""
