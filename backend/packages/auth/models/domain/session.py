from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from packages.users.models.domain.user import User


class AuthSession(BaseModel):
    """Session row as seen by request handlers."""

    id: int
    user_id: int
    active_organization_id: Optional[int] = None
    expires_at: datetime

    class Config:
        from_attributes = True


class SessionContext(BaseModel):
    """User plus session passed through authentication dependencies"""

    user: User
    session: AuthSession
