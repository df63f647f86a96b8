"""Razorpay billing repositories."""

from packages.razorpay.repositories.subscription_repository import SubscriptionRepository
from packages.razorpay.repositories.store import BillingStore

__all__ = [
    "SubscriptionRepository",
    "BillingStore",
]
