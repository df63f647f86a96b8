"""Domain models for configured Razorpay plans."""

from typing import Any, Optional
from pydantic import BaseModel, Field


class RazorpayPlan(BaseModel):
    """
    A plan offered by the host application.

    `plan_id` / `annual_plan_id` are Razorpay plan ids created in the
    dashboard; `name` is the local, case-insensitive handle clients use.
    """

    name: str
    plan_id: str
    annual_plan_id: Optional[str] = None
    limits: dict[str, Any] = Field(default_factory=dict)
    free_trial_days: Optional[int] = Field(default=None, ge=1)
    group: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    total_count: int = Field(default=12, ge=1)
    # Quantity follows the organization's member count
    seat_based: bool = False

    def matches_name(self, name: str) -> bool:
        return self.name.lower() == name.lower()

    def matches_plan_id(self, razorpay_plan_id: str) -> bool:
        return razorpay_plan_id in (self.plan_id, self.annual_plan_id)
