"""Database models for Razorpay billing."""

from packages.razorpay.models.database.subscription import SubscriptionEntity

__all__ = [
    "SubscriptionEntity",
]
