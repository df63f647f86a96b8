"""
API schemas for subscription actions.

Request and response models for the subscription endpoints. Field names are
camelCase on the wire (`referenceId`, `cancelAtCycleEnd`, ...).
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from packages.razorpay.models.domain.enums import (
    BillingPeriod,
    CustomerType,
    ScheduleChangeAt,
    SubscriptionStatus,
)


class ReferenceRequest(BaseModel):
    """Identifies the billed entity; defaults to the caller."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    reference_id: Optional[str] = None
    customer_type: CustomerType = CustomerType.USER


# ============================================================================
# Request Schemas
# ============================================================================


class UpgradeSubscriptionRequest(ReferenceRequest):
    """Request to start a subscription on a configured plan."""

    plan: str = Field(..., min_length=1, description="Configured plan name")
    annual: bool = False
    notes: Optional[dict[str, str]] = Field(
        default=None, description="Extra notes stored on the Razorpay subscription"
    )


class CancelSubscriptionRequest(ReferenceRequest):
    cancel_at_cycle_end: bool = False


class UpdateSubscriptionRequest(ReferenceRequest):
    """Request to change plan, quantity or remaining cycles."""

    plan_id: Optional[str] = Field(
        default=None, description="Configured plan name or Razorpay plan id"
    )
    quantity: Optional[int] = Field(default=None, ge=1)
    remaining_count: Optional[int] = Field(default=None, ge=1)
    schedule_change_at: ScheduleChangeAt = ScheduleChangeAt.NOW


# ============================================================================
# Response Schemas
# ============================================================================


class SubscriptionResponse(BaseModel):
    """Local subscription record."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int
    reference_id: str
    plan: str
    status: SubscriptionStatus
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
    quantity: int
    total_count: Optional[int] = None
    paid_count: int
    remaining_count: Optional[int] = None
    short_url: Optional[str] = None
    cancel_at_cycle_end: bool
    billing_period: Optional[BillingPeriod] = None
    group_id: Optional[str] = None


class SubscriptionWithLimitsResponse(SubscriptionResponse):
    limits: dict[str, Any] = Field(default_factory=dict)


class SubscriptionActionResponse(BaseModel):
    """Local record plus the Razorpay subscription object the call returned."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    subscription: SubscriptionResponse
    razorpay_subscription: dict[str, Any]
