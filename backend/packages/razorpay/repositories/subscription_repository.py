"""
Repository for Razorpay subscription rows.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common.repositories.base import BaseRepository
from packages.razorpay.models.database.subscription import SubscriptionEntity
from packages.razorpay.models.domain.subscription import Subscription
from packages.razorpay.models.domain.enums import SubscriptionStatus
from common.core.otel_axiom_exporter import trace_span

TERMINAL_STATUSES = [s.value for s in SubscriptionStatus if s.is_terminal()]
USABLE_STATUSES = [s.value for s in SubscriptionStatus if s.is_usable()]


class SubscriptionRepository(BaseRepository[SubscriptionEntity, Subscription]):
    """Repository for managing Razorpay subscriptions."""

    def __init__(self, db_session: AsyncSession):
        super().__init__(SubscriptionEntity, Subscription, db_session)

    @trace_span
    async def get_by_razorpay_subscription_id(
        self, razorpay_subscription_id: str
    ) -> Optional[Subscription]:
        """Get the row joined to a Razorpay subscription id."""
        return await self._fetch_one(
            select(SubscriptionEntity).where(
                SubscriptionEntity.razorpay_subscription_id == razorpay_subscription_id
            )
        )

    @trace_span
    async def list_by_reference(self, reference_id: str) -> list[Subscription]:
        """All rows for a billed entity, oldest first."""
        return await self._fetch_all(
            select(SubscriptionEntity)
            .where(SubscriptionEntity.reference_id == reference_id)
            .order_by(SubscriptionEntity.id)
        )

    @trace_span
    async def list_open_for_reference(
        self, reference_id: str, group_id: Optional[str] = None
    ) -> list[Subscription]:
        """Non-terminal rows for a billed entity, optionally within one group."""
        query = select(SubscriptionEntity).where(
            SubscriptionEntity.reference_id == reference_id,
            SubscriptionEntity.status.not_in(TERMINAL_STATUSES),
        )
        if group_id is not None:
            query = query.where(SubscriptionEntity.group_id == group_id)
        return await self._fetch_all(query.order_by(SubscriptionEntity.id))

    @trace_span
    async def get_current_for_reference(
        self, reference_id: str, group_id: Optional[str] = None
    ) -> Optional[Subscription]:
        """
        The subscription an action on this reference applies to.

        Newest non-terminal row that is linked to Razorpay; falls back to the
        newest row so callers can report "already cancelled" precisely.
        """
        query = select(SubscriptionEntity).where(
            SubscriptionEntity.reference_id == reference_id,
            SubscriptionEntity.razorpay_subscription_id.is_not(None),
        )
        if group_id is not None:
            query = query.where(SubscriptionEntity.group_id == group_id)
        query = query.order_by(SubscriptionEntity.id.desc())

        open_subscription = await self._fetch_one(
            query.where(SubscriptionEntity.status.not_in(TERMINAL_STATUSES))
        )
        if open_subscription:
            return open_subscription
        return await self._fetch_one(query)

    @trace_span
    async def list_usable_for_reference(self, reference_id: str) -> list[Subscription]:
        """Rows that still exist on the provider side and are not finished."""
        return await self._fetch_all(
            select(SubscriptionEntity).where(
                SubscriptionEntity.reference_id == reference_id,
                SubscriptionEntity.status.in_(USABLE_STATUSES),
            )
        )
