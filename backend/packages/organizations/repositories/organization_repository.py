from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from common.repositories.base import BaseRepository
from packages.organizations.models.database.organization import (
    OrganizationEntity,
    OrganizationMemberEntity,
)
from packages.organizations.models.domain.organization import Organization
from common.core.otel_axiom_exporter import trace_span


class OrganizationRepository(BaseRepository[OrganizationEntity, Organization]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(OrganizationEntity, Organization, db_session)

    @trace_span
    async def get_by_razorpay_customer_id(
        self, customer_id: str
    ) -> Optional[Organization]:
        """Get the organization a Razorpay customer was provisioned for."""
        return await self._fetch_one(
            select(OrganizationEntity).where(
                OrganizationEntity.razorpay_customer_id == customer_id
            )
        )

    @trace_span
    async def count_members(self, organization_id: int) -> int:
        """Count members of an organization (one seat each)."""
        result = await self.db_session.execute(
            select(func.count(OrganizationMemberEntity.id)).where(
                OrganizationMemberEntity.organization_id == organization_id
            )
        )
        return result.scalar_one()
