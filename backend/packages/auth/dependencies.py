from typing import Annotated, Optional
from fastapi import Depends, HTTPException, status, Header
from sqlalchemy.ext.asyncio import AsyncSession

from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.session import get_db
from packages.auth.models.domain.session import SessionContext
from packages.auth.repositories.session_repository import SessionRepository
from packages.users.repositories.user_repository import UserRepository

logger = get_logger(__name__)


@trace_span
async def get_current_session(
    authorization: Annotated[Optional[str], Header()] = None,
    db_session: AsyncSession = Depends(get_db),
) -> SessionContext:
    """Resolve the caller's user and session from a bearer session token."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing or invalid",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization.split(" ")[1]

    session = await SessionRepository(db_session).get_active_by_token(token)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or invalid",
        )

    user = await UserRepository(db_session).get(session.user_id)
    if not user:
        logger.warning(f"Session {session.id} points at missing user {session.user_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or invalid",
        )

    return SessionContext(user=user, session=session)
