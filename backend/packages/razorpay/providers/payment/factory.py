"""
Factory for getting payment provider instance.
"""

from common.core.config import settings
from common.core.exceptions import ConfigurationError
from packages.razorpay.providers.payment.interface import PaymentProviderInterface
from packages.razorpay.providers.payment.razorpay_payment import RazorpayPaymentProvider


def get_payment_provider() -> PaymentProviderInterface:
    """
    Get payment provider instance based on configuration.

    Raises:
        ConfigurationError: Razorpay API credentials are not set
    """
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        raise ConfigurationError(
            "RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET must be set to talk to Razorpay"
        )
    return RazorpayPaymentProvider()
