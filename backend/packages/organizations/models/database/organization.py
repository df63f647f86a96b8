from sqlalchemy import Column, String, ForeignKey, UniqueConstraint

from common.db.base import Base, BigIntegerType, TimestampMixin


class OrganizationEntity(TimestampMixin, Base):
    __tablename__ = "organizations"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)
    slug = Column(String, nullable=True, index=True, unique=True)

    # Razorpay customer - stored on the organization since it is the billed party
    razorpay_customer_id = Column(String(255), nullable=True, unique=True, index=True)


class OrganizationMemberEntity(TimestampMixin, Base):
    __tablename__ = "organization_members"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    organization_id = Column(
        BigIntegerType,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        BigIntegerType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role = Column(String(50), nullable=False, server_default="member")

    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_organization_member"),
    )
