"""Domain models for Razorpay billing."""

from packages.razorpay.models.domain.enums import (
    SubscriptionStatus,
    CustomerType,
    ReferenceAction,
    ScheduleChangeAt,
    BillingPeriod,
)
from packages.razorpay.models.domain.plans import RazorpayPlan
from packages.razorpay.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)

__all__ = [
    # Enums
    "SubscriptionStatus",
    "CustomerType",
    "ReferenceAction",
    "ScheduleChangeAt",
    "BillingPeriod",
    # Plans
    "RazorpayPlan",
    # Subscription
    "Subscription",
    "SubscriptionCreateModel",
    "SubscriptionUpdateModel",
]
