"""
Razorpay billing plugin: configuration and wiring into a FastAPI host.

Example:
    plugin = RazorpayPlugin(
        RazorpayOptions(
            plans=[RazorpayPlan(name="pro", plan_id="plan_X")],
            callbacks=MyCallbacks(),
        )
    )
    plugin.install(app, prefix="/api/v1")
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from fastapi import FastAPI, Request

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger
from packages.auth.models.domain.session import AuthSession
from packages.razorpay.callbacks import SubscriptionCallbacks
from packages.razorpay.errors import RazorpayErrorCode, internal_error
from packages.razorpay.models.domain.enums import ReferenceAction
from packages.razorpay.models.domain.plans import RazorpayPlan
from packages.razorpay.providers.payment.factory import get_payment_provider
from packages.razorpay.providers.payment.interface import PaymentProviderInterface
from packages.users.models.domain.user import User

logger = get_logger(__name__)

PlansSource = Union[list[RazorpayPlan], Callable[[], Awaitable[list[RazorpayPlan]]]]
AuthorizeReference = Callable[
    [User, AuthSession, str, ReferenceAction], Awaitable[bool]
]
SubscriptionCreateParams = Callable[
    [User, AuthSession, RazorpayPlan, str], Awaitable[dict[str, Any]]
]
CustomerCreateParams = Callable[[User], Awaitable[dict[str, Any]]]


@dataclass
class RazorpayOptions:
    """Non-environment configuration supplied by the host application."""

    plans: PlansSource = field(default_factory=list)
    callbacks: SubscriptionCallbacks = field(default_factory=SubscriptionCallbacks)
    # Required for organization billing and for acting on a foreign reference
    authorize_reference: Optional[AuthorizeReference] = None
    organization_enabled: bool = False
    require_email_verification: bool = False
    create_customer_on_signup: bool = False
    get_customer_create_params: Optional[CustomerCreateParams] = None
    get_subscription_create_params: Optional[SubscriptionCreateParams] = None
    # Falls back to RAZORPAY_WEBHOOK_SECRET
    webhook_secret: Optional[str] = None


class RazorpayPlugin:
    """Resolved configuration plus the payment provider, shared by all requests."""

    def __init__(
        self,
        options: RazorpayOptions,
        payment: Optional[PaymentProviderInterface] = None,
    ):
        self.options = options
        self.callbacks = options.callbacks
        self._payment = payment

    @property
    def payment(self) -> PaymentProviderInterface:
        if self._payment is None:
            self._payment = get_payment_provider()
        return self._payment

    @property
    def webhook_secret(self) -> str:
        return self.options.webhook_secret or settings.razorpay_webhook_secret

    async def get_plans(self) -> list[RazorpayPlan]:
        """Configured plans, whether given as a list or an async loader."""
        source = self.options.plans
        if not callable(source):
            return list(source)
        try:
            return list(await source())
        except Exception as e:
            logger.error(f"Failed to load Razorpay plans: {e}", exc_info=True)
            raise internal_error(RazorpayErrorCode.FAILED_TO_FETCH_PLANS) from e

    def install(self, app: FastAPI, prefix: str = "") -> None:
        """Mount the subscription and webhook routes on the host app."""
        from packages.razorpay.routes import subscriptions, webhooks

        app.state.razorpay = self
        app.include_router(subscriptions.router, prefix=prefix, tags=["razorpay"])
        app.include_router(webhooks.router, prefix=prefix, tags=["webhooks"])


def get_razorpay_plugin(request: Request) -> RazorpayPlugin:
    """FastAPI dependency returning the plugin installed on the app."""
    return request.app.state.razorpay
