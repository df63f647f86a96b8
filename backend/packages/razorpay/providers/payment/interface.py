"""
Interface for payment providers.

Abstracts the remote subscription service away from the Razorpay SDK so the
services and webhook handlers can be exercised with AsyncMock.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class PaymentProviderInterface(ABC):
    """Abstract interface for payment providers."""

    @abstractmethod
    async def create_customer(
        self,
        name: Optional[str],
        email: Optional[str],
        notes: dict[str, str],
        extra_params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Create (or reuse, for a known email) a customer.

        Returns:
            The provider's customer object
        """
        pass

    @abstractmethod
    async def create_subscription(self, params: dict[str, Any]) -> dict[str, Any]:
        """
        Create a subscription.

        Args:
            params: plan_id, total_count, quantity, customer_id, notes and
                optional start_at / provider-specific extras
        """
        pass

    @abstractmethod
    async def fetch_subscription(self, subscription_id: str) -> dict[str, Any]:
        pass

    @abstractmethod
    async def cancel_subscription(
        self, subscription_id: str, cancel_at_cycle_end: bool
    ) -> dict[str, Any]:
        pass

    @abstractmethod
    async def pause_subscription(self, subscription_id: str) -> dict[str, Any]:
        pass

    @abstractmethod
    async def resume_subscription(self, subscription_id: str) -> dict[str, Any]:
        pass

    @abstractmethod
    async def update_subscription(
        self, subscription_id: str, changes: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Edit plan, quantity or remaining count.

        Args:
            changes: plan_id, quantity, remaining_count, schedule_change_at
        """
        pass

    @abstractmethod
    async def cancel_scheduled_changes(self, subscription_id: str) -> dict[str, Any]:
        """Drop changes (including a cycle-end cancellation) queued for cycle end."""
        pass
