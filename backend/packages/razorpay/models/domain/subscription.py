"""
Domain models for Razorpay subscriptions.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, field_validator

from packages.razorpay.models.domain.enums import SubscriptionStatus, BillingPeriod


class Subscription(BaseModel):
    """
    Locally persisted subscription.

    Mirrors the provider's view of a subscription:
    - Status and lifecycle timestamps
    - Billing cycle boundaries and counters
    - External IDs for Razorpay
    """

    id: int
    reference_id: str
    plan: str
    status: SubscriptionStatus = SubscriptionStatus.CREATED

    # External platform IDs
    razorpay_customer_id: Optional[str] = None
    razorpay_subscription_id: Optional[str] = None
    razorpay_plan_id: Optional[str] = None

    # Billing cycle
    current_start: Optional[datetime] = None
    current_end: Optional[datetime] = None

    # Lifecycle dates
    ended_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None

    quantity: int = 1
    total_count: Optional[int] = None
    paid_count: int = 0
    remaining_count: Optional[int] = None

    short_url: Optional[str] = None
    cancel_at_cycle_end: bool = False
    billing_period: Optional[BillingPeriod] = None
    group_id: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def is_terminal(self) -> bool:
        return self.status.is_terminal()

    def is_usable(self) -> bool:
        return self.status.is_usable()


class SubscriptionCreateModel(BaseModel):
    """Model for creating a new subscription."""

    reference_id: str
    plan: str
    status: str = SubscriptionStatus.CREATED.value

    razorpay_customer_id: Optional[str] = None
    razorpay_subscription_id: Optional[str] = None
    razorpay_plan_id: Optional[str] = None

    current_start: Optional[datetime] = None
    current_end: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None

    quantity: int = 1
    total_count: Optional[int] = None
    paid_count: int = 0
    remaining_count: Optional[int] = None

    short_url: Optional[str] = None
    cancel_at_cycle_end: bool = False
    billing_period: Optional[str] = None
    group_id: Optional[str] = None

    @field_validator("status", "billing_period", mode="before")
    @classmethod
    def validate_enum_value(cls, v):
        if isinstance(v, (SubscriptionStatus, BillingPeriod)):
            return v.value
        return v


class SubscriptionUpdateModel(BaseModel):
    """
    Model for updating a subscription.

    Only explicitly assigned fields are written; assign None to clear a column.
    """

    plan: Optional[str] = None
    status: Optional[str] = None

    razorpay_customer_id: Optional[str] = None
    razorpay_subscription_id: Optional[str] = None
    razorpay_plan_id: Optional[str] = None

    current_start: Optional[datetime] = None
    current_end: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None

    quantity: Optional[int] = None
    total_count: Optional[int] = None
    paid_count: Optional[int] = None
    remaining_count: Optional[int] = None

    short_url: Optional[str] = None
    cancel_at_cycle_end: Optional[bool] = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        if isinstance(v, SubscriptionStatus):
            return v.value
        return v
