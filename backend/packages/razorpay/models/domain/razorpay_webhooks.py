"""
Domain models for Razorpay webhook payloads.

Strongly-typed Pydantic models for Razorpay subscription webhook events.
"""

from typing import Optional, Any
from enum import Enum
from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator


class RazorpayWebhookType(str, Enum):
    """Razorpay subscription webhook event types we reconcile."""

    SUBSCRIPTION_AUTHENTICATED = "subscription.authenticated"
    SUBSCRIPTION_ACTIVATED = "subscription.activated"
    SUBSCRIPTION_CHARGED = "subscription.charged"
    SUBSCRIPTION_PENDING = "subscription.pending"
    SUBSCRIPTION_HALTED = "subscription.halted"
    SUBSCRIPTION_COMPLETED = "subscription.completed"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    SUBSCRIPTION_PAUSED = "subscription.paused"
    SUBSCRIPTION_RESUMED = "subscription.resumed"
    SUBSCRIPTION_CANCELLED = "subscription.cancelled"
    SUBSCRIPTION_EXPIRED = "subscription.expired"

    @classmethod
    def from_event(cls, event: str) -> Optional["RazorpayWebhookType"]:
        """Map an event string to a known type, None for anything else."""
        try:
            return cls(event)
        except ValueError:
            return None


def _normalize_notes(v: Any) -> dict[str, str]:
    # Razorpay sends an empty list instead of an empty object
    if not v:
        return {}
    if isinstance(v, dict):
        return {str(key): str(value) for key, value in v.items() if value is not None}
    return {}


class RazorpaySubscriptionEntity(BaseModel):
    """Razorpay subscription object as embedded in webhook payloads."""

    id: str
    entity: str = "subscription"
    plan_id: Optional[str] = None
    customer_id: Optional[str] = None
    status: Optional[str] = None
    current_start: Optional[int] = None
    current_end: Optional[int] = None
    ended_at: Optional[int] = None
    charge_at: Optional[int] = None
    start_at: Optional[int] = None
    end_at: Optional[int] = None
    paused_at: Optional[int] = None
    cancelled_at: Optional[int] = None
    trial_start: Optional[int] = None
    trial_end: Optional[int] = None
    quantity: Optional[int] = None
    total_count: Optional[int] = None
    paid_count: Optional[int] = None
    remaining_count: Optional[int] = None
    short_url: Optional[str] = None
    has_scheduled_changes: Optional[bool] = None
    cancel_at_cycle_end: Optional[bool] = None
    notes: dict[str, str] = Field(default_factory=dict)
    created_at: Optional[int] = None

    @field_validator("notes", mode="before")
    @classmethod
    def validate_notes(cls, v):
        return _normalize_notes(v)


class RazorpaySubscriptionWrapper(BaseModel):
    entity: RazorpaySubscriptionEntity


class RazorpayPaymentWrapper(BaseModel):
    entity: dict[str, Any] = Field(default_factory=dict)


class RazorpayWebhookPayloadData(BaseModel):
    """
    The `payload` object; only subscription events carry `subscription`.

    An entity that does not validate is treated as absent, so the event is
    still acknowledged and simply skipped by the handlers.
    """

    subscription: Optional[RazorpaySubscriptionWrapper] = None
    payment: Optional[RazorpayPaymentWrapper] = None

    @field_validator("subscription", "payment", mode="wrap")
    @classmethod
    def drop_malformed_entity(cls, v, handler):
        try:
            return handler(v)
        except ValidationError:
            return None


class RazorpayWebhookEvent(BaseModel):
    """Complete Razorpay webhook payload."""

    entity: str = "event"
    account_id: Optional[str] = None
    event: str = ""
    contains: list[str] = Field(default_factory=list)
    payload: RazorpayWebhookPayloadData = Field(
        default_factory=RazorpayWebhookPayloadData
    )
    created_at: Optional[int] = None

    @field_validator(
        "entity", "account_id", "event", "contains", "payload", "created_at", mode="wrap"
    )
    @classmethod
    def default_malformed_field(cls, v, handler, info: ValidationInfo):
        # Envelope fields fall back to their defaults instead of failing the event
        try:
            return handler(v)
        except ValidationError:
            return cls.model_fields[info.field_name].get_default(
                call_default_factory=True
            )

    @property
    def type(self) -> Optional[RazorpayWebhookType]:
        return RazorpayWebhookType.from_event(self.event)

    @property
    def subscription_entity(self) -> Optional[RazorpaySubscriptionEntity]:
        if self.payload.subscription is None:
            return None
        return self.payload.subscription.entity
