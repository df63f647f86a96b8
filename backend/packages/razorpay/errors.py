"""
Error codes surfaced by the Razorpay billing endpoints.

Every client-visible failure carries a stable machine-readable code plus a
human-readable message in the response body:

    {"detail": {"code": "SUBSCRIPTION_NOT_FOUND", "message": "Subscription not found"}}
"""

from enum import Enum
from typing import Optional

from fastapi import HTTPException, status


class RazorpayErrorCode(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_REQUEST_BODY = "INVALID_REQUEST_BODY"
    SUBSCRIPTION_NOT_FOUND = "SUBSCRIPTION_NOT_FOUND"
    SUBSCRIPTION_PLAN_NOT_FOUND = "SUBSCRIPTION_PLAN_NOT_FOUND"
    ALREADY_SUBSCRIBED_PLAN = "ALREADY_SUBSCRIBED_PLAN"
    REFERENCE_ID_NOT_ALLOWED = "REFERENCE_ID_NOT_ALLOWED"
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    UNABLE_TO_CREATE_CUSTOMER = "UNABLE_TO_CREATE_CUSTOMER"
    WEBHOOK_SIGNATURE_NOT_FOUND = "WEBHOOK_SIGNATURE_NOT_FOUND"
    WEBHOOK_SECRET_NOT_FOUND = "WEBHOOK_SECRET_NOT_FOUND"
    FAILED_TO_VERIFY_WEBHOOK = "FAILED_TO_VERIFY_WEBHOOK"
    INVALID_WEBHOOK_PAYLOAD = "INVALID_WEBHOOK_PAYLOAD"
    FAILED_TO_FETCH_PLANS = "FAILED_TO_FETCH_PLANS"
    EMAIL_VERIFICATION_REQUIRED = "EMAIL_VERIFICATION_REQUIRED"
    SUBSCRIPTION_NOT_ACTIVE = "SUBSCRIPTION_NOT_ACTIVE"
    SUBSCRIPTION_ALREADY_CANCELLED = "SUBSCRIPTION_ALREADY_CANCELLED"
    SUBSCRIPTION_ALREADY_PAUSED = "SUBSCRIPTION_ALREADY_PAUSED"
    SUBSCRIPTION_NOT_PAUSED = "SUBSCRIPTION_NOT_PAUSED"
    SUBSCRIPTION_NOT_SCHEDULED_FOR_CANCELLATION = (
        "SUBSCRIPTION_NOT_SCHEDULED_FOR_CANCELLATION"
    )
    ORGANIZATION_NOT_FOUND = "ORGANIZATION_NOT_FOUND"
    ORGANIZATION_SUBSCRIPTION_NOT_ENABLED = "ORGANIZATION_SUBSCRIPTION_NOT_ENABLED"
    AUTHORIZE_REFERENCE_REQUIRED = "AUTHORIZE_REFERENCE_REQUIRED"
    ORGANIZATION_REFERENCE_ID_REQUIRED = "ORGANIZATION_REFERENCE_ID_REQUIRED"
    ORGANIZATION_HAS_ACTIVE_SUBSCRIPTION = "ORGANIZATION_HAS_ACTIVE_SUBSCRIPTION"
    SUBSCRIPTION_CREATE_FAILED = "SUBSCRIPTION_CREATE_FAILED"
    SUBSCRIPTION_CANCEL_FAILED = "SUBSCRIPTION_CANCEL_FAILED"
    SUBSCRIPTION_PAUSE_FAILED = "SUBSCRIPTION_PAUSE_FAILED"
    SUBSCRIPTION_RESUME_FAILED = "SUBSCRIPTION_RESUME_FAILED"
    SUBSCRIPTION_UPDATE_FAILED = "SUBSCRIPTION_UPDATE_FAILED"
    SUBSCRIPTION_RESTORE_FAILED = "SUBSCRIPTION_RESTORE_FAILED"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    RazorpayErrorCode.UNAUTHORIZED: "Unauthorized access",
    RazorpayErrorCode.INVALID_REQUEST_BODY: "Invalid request body",
    RazorpayErrorCode.SUBSCRIPTION_NOT_FOUND: "Subscription not found",
    RazorpayErrorCode.SUBSCRIPTION_PLAN_NOT_FOUND: "Subscription plan not found",
    RazorpayErrorCode.ALREADY_SUBSCRIBED_PLAN: "You're already subscribed to this plan",
    RazorpayErrorCode.REFERENCE_ID_NOT_ALLOWED: "Reference id is not allowed",
    RazorpayErrorCode.CUSTOMER_NOT_FOUND: "Razorpay customer not found for this reference",
    RazorpayErrorCode.UNABLE_TO_CREATE_CUSTOMER: "Unable to create Razorpay customer",
    RazorpayErrorCode.WEBHOOK_SIGNATURE_NOT_FOUND: "Razorpay webhook signature not found",
    RazorpayErrorCode.WEBHOOK_SECRET_NOT_FOUND: "Razorpay webhook secret not found",
    RazorpayErrorCode.FAILED_TO_VERIFY_WEBHOOK: "Failed to verify Razorpay webhook signature",
    RazorpayErrorCode.INVALID_WEBHOOK_PAYLOAD: "Invalid Razorpay webhook payload",
    RazorpayErrorCode.FAILED_TO_FETCH_PLANS: "Failed to fetch plans",
    RazorpayErrorCode.EMAIL_VERIFICATION_REQUIRED: (
        "Email verification is required before you can subscribe to a plan"
    ),
    RazorpayErrorCode.SUBSCRIPTION_NOT_ACTIVE: "Subscription is not active",
    RazorpayErrorCode.SUBSCRIPTION_ALREADY_CANCELLED: "Subscription is already cancelled",
    RazorpayErrorCode.SUBSCRIPTION_ALREADY_PAUSED: "Subscription is already paused",
    RazorpayErrorCode.SUBSCRIPTION_NOT_PAUSED: "Subscription is not paused, cannot resume",
    RazorpayErrorCode.SUBSCRIPTION_NOT_SCHEDULED_FOR_CANCELLATION: (
        "Subscription is not scheduled for cancellation"
    ),
    RazorpayErrorCode.ORGANIZATION_NOT_FOUND: "Organization not found",
    RazorpayErrorCode.ORGANIZATION_SUBSCRIPTION_NOT_ENABLED: (
        "Organization subscription is not enabled"
    ),
    RazorpayErrorCode.AUTHORIZE_REFERENCE_REQUIRED: (
        "Organization subscriptions require an authorize_reference hook to be configured"
    ),
    RazorpayErrorCode.ORGANIZATION_REFERENCE_ID_REQUIRED: (
        "Reference ID is required. Provide referenceId or set an active organization in session"
    ),
    RazorpayErrorCode.ORGANIZATION_HAS_ACTIVE_SUBSCRIPTION: (
        "Cannot delete organization with active subscription"
    ),
    RazorpayErrorCode.SUBSCRIPTION_CREATE_FAILED: "Failed to create subscription",
    RazorpayErrorCode.SUBSCRIPTION_CANCEL_FAILED: "Failed to cancel subscription",
    RazorpayErrorCode.SUBSCRIPTION_PAUSE_FAILED: "Failed to pause subscription",
    RazorpayErrorCode.SUBSCRIPTION_RESUME_FAILED: "Failed to resume subscription",
    RazorpayErrorCode.SUBSCRIPTION_UPDATE_FAILED: "Failed to update subscription",
    RazorpayErrorCode.SUBSCRIPTION_RESTORE_FAILED: "Failed to restore subscription",
}


class RazorpayAPIError(HTTPException):
    """HTTPException carrying a RazorpayErrorCode."""

    def __init__(
        self,
        status_code: int,
        code: RazorpayErrorCode,
        message: Optional[str] = None,
    ):
        self.code = code
        self.message = message or code.message
        super().__init__(
            status_code=status_code,
            detail={"code": code.value, "message": self.message},
        )


def bad_request(code: RazorpayErrorCode) -> RazorpayAPIError:
    return RazorpayAPIError(status.HTTP_400_BAD_REQUEST, code)


def unauthorized(code: RazorpayErrorCode = RazorpayErrorCode.UNAUTHORIZED) -> RazorpayAPIError:
    return RazorpayAPIError(status.HTTP_401_UNAUTHORIZED, code)


def forbidden(code: RazorpayErrorCode) -> RazorpayAPIError:
    return RazorpayAPIError(status.HTTP_403_FORBIDDEN, code)


def not_found(code: RazorpayErrorCode) -> RazorpayAPIError:
    return RazorpayAPIError(status.HTTP_404_NOT_FOUND, code)


def internal_error(code: RazorpayErrorCode) -> RazorpayAPIError:
    return RazorpayAPIError(status.HTTP_500_INTERNAL_SERVER_ERROR, code)
