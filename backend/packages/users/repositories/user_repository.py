from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common.repositories.base import BaseRepository
from packages.users.models.database.user import UserEntity
from packages.users.models.domain.user import User
from common.core.otel_axiom_exporter import trace_span


class UserRepository(BaseRepository[UserEntity, User]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(UserEntity, User, db_session)

    @trace_span
    async def get_by_razorpay_customer_id(self, customer_id: str) -> Optional[User]:
        """Get the user a Razorpay customer was provisioned for."""
        return await self._fetch_one(
            select(UserEntity).where(UserEntity.razorpay_customer_id == customer_id)
        )
