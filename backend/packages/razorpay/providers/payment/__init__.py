"""Payment providers - remote subscription service."""

from packages.razorpay.providers.payment.interface import PaymentProviderInterface
from packages.razorpay.providers.payment.factory import get_payment_provider

__all__ = [
    "PaymentProviderInterface",
    "get_payment_provider",
]
