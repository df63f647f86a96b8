"""Razorpay providers - abstracted external platform integrations."""

from packages.razorpay.providers.payment.factory import get_payment_provider

__all__ = [
    "get_payment_provider",
]
