"""
Razorpay enums - strongly typed enumerations for subscription lifecycle state.
"""

from enum import Enum
from typing import Optional


class SubscriptionStatus(str, Enum):
    """
    Subscription status lifecycle (mirrors Razorpay's subscription states).

    Flow: created -> authenticated -> active <-> paused
          active -> pending -> halted -> cancelled
          active -> completed | cancelled | expired
    """

    CREATED = "created"  # Row inserted, checkout not completed
    AUTHENTICATED = "authenticated"  # Mandate authorised, first charge pending
    ACTIVE = "active"
    PENDING = "pending"  # Charge failed, provider retrying
    HALTED = "halted"  # Retries exhausted
    PAUSED = "paused"
    CANCELLED = "cancelled"
    COMPLETED = "completed"  # All billing cycles charged
    EXPIRED = "expired"  # Checkout never completed

    def is_terminal(self) -> bool:
        """No further transition is expected from this status."""
        return self in (
            SubscriptionStatus.CANCELLED,
            SubscriptionStatus.COMPLETED,
            SubscriptionStatus.EXPIRED,
        )

    def is_usable(self) -> bool:
        """Subscription exists on the provider side and is not finished."""
        return self in (
            SubscriptionStatus.AUTHENTICATED,
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.PENDING,
            SubscriptionStatus.HALTED,
            SubscriptionStatus.PAUSED,
        )

    def has_payment_issue(self) -> bool:
        return self in (SubscriptionStatus.PENDING, SubscriptionStatus.HALTED)

    @classmethod
    def from_provider(cls, value: Optional[str]) -> Optional["SubscriptionStatus"]:
        """Parse a provider-reported status, None when unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


class CustomerType(str, Enum):
    """Kind of entity a subscription is billed to."""

    USER = "user"
    ORGANIZATION = "organization"


class ReferenceAction(str, Enum):
    """Action names passed to the authorize_reference hook."""

    UPGRADE = "upgrade-subscription"
    CANCEL = "cancel-subscription"
    PAUSE = "pause-subscription"
    RESUME = "resume-subscription"
    UPDATE = "update-subscription"
    RESTORE = "restore-subscription"
    LIST = "list-subscription"


class ScheduleChangeAt(str, Enum):
    """When a subscription edit takes effect on the provider side."""

    NOW = "now"
    CYCLE_END = "cycle_end"


class BillingPeriod(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"
