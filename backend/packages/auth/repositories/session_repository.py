from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import trace_span
from packages.auth.models.database.session import SessionEntity
from packages.auth.models.domain.session import AuthSession


class SessionRepository(BaseRepository[SessionEntity, AuthSession]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(SessionEntity, AuthSession, db_session)

    @trace_span
    async def get_active_by_token(self, token: str) -> Optional[AuthSession]:
        """Get an unexpired session by its bearer token."""
        return await self._fetch_one(
            select(SessionEntity).where(
                SessionEntity.token == token, SessionEntity.expires_at > func.now()
            )
        )
