from sqlalchemy import Column, String, Boolean

from common.db.base import Base, BigIntegerType, TimestampMixin


class UserEntity(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=True)
    email_verified = Column(Boolean, default=False, nullable=False)

    # Razorpay customer - schema extension owned by the billing plugin
    razorpay_customer_id = Column(String(255), nullable=True, unique=True, index=True)
