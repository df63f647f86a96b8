"""
Database entity for Razorpay subscriptions.
"""

from sqlalchemy import Column, String, DateTime, Integer, Boolean, Index

from common.db.base import Base, BigIntegerType, TimestampMixin


class SubscriptionEntity(TimestampMixin, Base):
    """
    Razorpay subscription database entity.

    Billed party is identified by reference_id (a user id or an organization
    id). razorpay_subscription_id is the join key for webhook reconciliation.
    """

    __tablename__ = "razorpay_subscriptions"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    reference_id = Column(String(255), nullable=False, index=True)

    # Local plan name (lower-cased), resolved from configuration
    plan = Column(String(100), nullable=False)
    status = Column(String(50), nullable=False, index=True, server_default="created")

    # External platform IDs
    razorpay_customer_id = Column(String(255), nullable=True, index=True)
    razorpay_subscription_id = Column(
        String(255), nullable=True, unique=True, index=True
    )
    razorpay_plan_id = Column(String(255), nullable=True)

    # Billing cycle
    current_start = Column(DateTime(timezone=True), nullable=True)
    current_end = Column(DateTime(timezone=True), nullable=True)

    # Lifecycle timestamps
    ended_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    paused_at = Column(DateTime(timezone=True), nullable=True)

    # Free trial window reported on activation
    trial_start = Column(DateTime(timezone=True), nullable=True)
    trial_end = Column(DateTime(timezone=True), nullable=True)

    # Counters mirrored from the provider
    quantity = Column(Integer, nullable=False, default=1, server_default="1")
    total_count = Column(Integer, nullable=True)
    paid_count = Column(Integer, nullable=False, default=0, server_default="0")
    remaining_count = Column(Integer, nullable=True)

    short_url = Column(String(512), nullable=True)
    cancel_at_cycle_end = Column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    billing_period = Column(String(20), nullable=True)
    group_id = Column(String(100), nullable=True)

    __table_args__ = (
        Index("idx_razorpay_subscription_reference_group", "reference_id", "group_id"),
    )
