"""Razorpay billing services."""

from packages.razorpay.services.customer_service import CustomerService
from packages.razorpay.services.reference_resolver import (
    ReferenceResolver,
    ResolvedReference,
)
from packages.razorpay.services.seat_sync_service import SeatSyncService
from packages.razorpay.services.subscription_service import SubscriptionService

__all__ = [
    "CustomerService",
    "ReferenceResolver",
    "ResolvedReference",
    "SeatSyncService",
    "SubscriptionService",
]
