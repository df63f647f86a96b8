# Test data and fixtures
import json
import time
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from packages.razorpay.models.database.subscription import SubscriptionEntity
from packages.razorpay.models.domain.enums import SubscriptionStatus
from packages.razorpay.models.domain.razorpay_webhooks import RazorpayWebhookEvent
from packages.razorpay.models.domain.subscription import Subscription
from packages.razorpay.webhooks.signature import SIGNATURE_HEADER, compute_signature

TEST_WEBHOOK_SECRET = "whsec_test_secret"

# Billing cycle boundaries used across webhook payloads
CYCLE_START = 1735689600  # 2025-01-01T00:00:00Z
CYCLE_END = 1738368000  # 2025-02-01T00:00:00Z
NEXT_CYCLE_END = 1740787200  # 2025-03-01T00:00:00Z


def subscription_payload(**overrides: Any) -> dict[str, Any]:
    """Razorpay subscription entity as embedded in webhooks."""
    entity = {
        "id": "sub_test123",
        "entity": "subscription",
        "plan_id": "plan_pro_monthly",
        "customer_id": "cust_test123",
        "status": "active",
        "current_start": CYCLE_START,
        "current_end": CYCLE_END,
        "ended_at": None,
        "quantity": 1,
        "notes": [],
        "charge_at": CYCLE_END,
        "total_count": 12,
        "paid_count": 1,
        "remaining_count": 11,
        "short_url": "https://rzp.io/i/test123",
        "has_scheduled_changes": False,
        "cancel_at_cycle_end": False,
        "created_at": CYCLE_START - 60,
    }
    entity.update(overrides)
    return entity


def webhook_body(event: str, **entity_overrides: Any) -> dict[str, Any]:
    return {
        "entity": "event",
        "account_id": "acc_test123",
        "event": event,
        "contains": ["subscription"],
        "payload": {
            "subscription": {"entity": subscription_payload(**entity_overrides)}
        },
        "created_at": int(time.time()),
    }


def webhook_event(event: str, **entity_overrides: Any) -> RazorpayWebhookEvent:
    return RazorpayWebhookEvent.model_validate(webhook_body(event, **entity_overrides))


def signed_request(
    body: Any, secret: str = TEST_WEBHOOK_SECRET
) -> tuple[bytes, dict[str, str]]:
    """Serialized body plus headers carrying its signature."""
    raw = json.dumps(body).encode("utf-8")
    return raw, {
        "Content-Type": "application/json",
        SIGNATURE_HEADER: compute_signature(raw, secret),
    }


async def create_subscription_entity(
    test_db: AsyncSession, reference_id: Optional[str] = "1", **overrides: Any
) -> Subscription:
    """Insert a subscription row; defaults describe an active Pro subscription."""
    data = {
        "reference_id": reference_id,
        "plan": "pro",
        "status": SubscriptionStatus.ACTIVE.value,
        "razorpay_customer_id": "cust_test123",
        "razorpay_subscription_id": "sub_test123",
        "razorpay_plan_id": "plan_pro_monthly",
        "quantity": 1,
        "total_count": 12,
        "paid_count": 1,
        "remaining_count": 11,
        "billing_period": "monthly",
        "cancel_at_cycle_end": False,
    }
    data.update(overrides)
    entity = SubscriptionEntity(**data)
    test_db.add(entity)
    await test_db.commit()
    await test_db.refresh(entity)
    return Subscription.model_validate(entity)
