from sqlalchemy import Column, String, DateTime, ForeignKey

from common.db.base import Base, BigIntegerType, TimestampMixin


class SessionEntity(TimestampMixin, Base):
    """Login session issued by the host application."""

    __tablename__ = "sessions"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    token = Column(String(255), nullable=False, unique=True, index=True)
    user_id = Column(
        BigIntegerType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    active_organization_id = Column(
        BigIntegerType, ForeignKey("organizations.id"), nullable=True
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
