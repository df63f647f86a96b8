"""
Shared helpers for plan lookup, provider timestamps and provider errors.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from packages.razorpay.models.domain.plans import RazorpayPlan


def timestamp_to_datetime(value: Optional[int]) -> Optional[datetime]:
    """Convert a Razorpay epoch-seconds timestamp; 0 and None mean unset."""
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def find_plan_by_name(plans: Iterable[RazorpayPlan], name: str) -> Optional[RazorpayPlan]:
    return next((plan for plan in plans if plan.matches_name(name)), None)


def find_plan_by_razorpay_id(
    plans: Iterable[RazorpayPlan], razorpay_plan_id: Optional[str]
) -> Optional[RazorpayPlan]:
    if not razorpay_plan_id:
        return None
    return next((plan for plan in plans if plan.matches_plan_id(razorpay_plan_id)), None)


def extract_razorpay_error_message(error: BaseException) -> str:
    """
    Pull a readable message out of a Razorpay SDK error.

    The SDK raises its errors with the API's error description as the first
    argument; HTTP-level failures carry an `error` payload instead.
    """
    payload = getattr(error, "error", None)
    if isinstance(payload, dict):
        message = payload.get("description") or payload.get("message")
        if message:
            return str(message)
    description = getattr(error, "description", None)
    if description:
        return str(description)
    if error.args and error.args[0]:
        return str(error.args[0])
    return str(error) or "Unknown error"
