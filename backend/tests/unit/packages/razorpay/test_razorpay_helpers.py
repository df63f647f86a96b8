"""
Unit tests for notes, plan lookup, timestamps and error extraction.
"""

from datetime import datetime, timezone

from packages.razorpay import notes as razorpay_notes
from packages.razorpay.models.domain.enums import CustomerType, SubscriptionStatus
from packages.razorpay.models.domain.plans import RazorpayPlan
from packages.razorpay.models.domain.razorpay_webhooks import (
    RazorpayWebhookEvent,
    RazorpayWebhookType,
)
from packages.razorpay.utils import (
    extract_razorpay_error_message,
    find_plan_by_name,
    find_plan_by_razorpay_id,
    timestamp_to_datetime,
)
from tests.fixtures import webhook_body

PLANS = [
    RazorpayPlan(name="Pro", plan_id="plan_m", annual_plan_id="plan_a"),
    RazorpayPlan(name="Basic", plan_id="plan_b"),
]


class TestNotes:
    def test_internal_keys_win(self):
        notes = razorpay_notes.subscription_notes(
            1, 10, "1", {"referenceId": "spoofed", "campaign": "spring"}
        )

        assert notes == {
            "userId": "1",
            "subscriptionId": "10",
            "referenceId": "1",
            "campaign": "spring",
        }

    def test_earlier_user_notes_override_later(self):
        notes = razorpay_notes.subscription_notes(
            1, 10, "1", {"source": "request"}, {"source": "hook", "tier": "x"}
        )

        assert notes["source"] == "request"
        assert notes["tier"] == "x"

    def test_customer_notes(self):
        assert razorpay_notes.customer_notes(CustomerType.USER, 3) == {
            "customerType": "user",
            "userId": "3",
        }

    def test_reads_local_ids(self):
        assert razorpay_notes.subscription_id_from_notes({"subscriptionId": "15"}) == 15
        assert razorpay_notes.subscription_id_from_notes({"subscriptionId": "x"}) is None
        assert razorpay_notes.subscription_id_from_notes({}) is None
        assert razorpay_notes.reference_id_from_notes({"referenceId": "9"}) == "9"
        assert razorpay_notes.reference_id_from_notes(None) is None


class TestPlanLookup:
    def test_by_name_is_case_insensitive(self):
        assert find_plan_by_name(PLANS, "pro").name == "Pro"
        assert find_plan_by_name(PLANS, "PRO").name == "Pro"
        assert find_plan_by_name(PLANS, "gold") is None

    def test_by_razorpay_id_matches_either_period(self):
        assert find_plan_by_razorpay_id(PLANS, "plan_m").name == "Pro"
        assert find_plan_by_razorpay_id(PLANS, "plan_a").name == "Pro"
        assert find_plan_by_razorpay_id(PLANS, "plan_x") is None
        assert find_plan_by_razorpay_id(PLANS, None) is None


class TestTimestamps:
    def test_converts_epoch_seconds_to_utc(self):
        assert timestamp_to_datetime(1735689600) == datetime(
            2025, 1, 1, tzinfo=timezone.utc
        )

    def test_zero_and_none_are_unset(self):
        assert timestamp_to_datetime(0) is None
        assert timestamp_to_datetime(None) is None


class TestErrorMessages:
    def test_sdk_description(self):
        assert (
            extract_razorpay_error_message(ValueError("The id provided does not exist"))
            == "The id provided does not exist"
        )

    def test_error_payload(self):
        error = RuntimeError()
        error.error = {"description": "Plan is inactive"}

        assert extract_razorpay_error_message(error) == "Plan is inactive"

    def test_empty_error(self):
        assert extract_razorpay_error_message(RuntimeError()) == "Unknown error"


class TestStatusAndEvents:
    def test_status_groups(self):
        assert SubscriptionStatus.CANCELLED.is_terminal()
        assert SubscriptionStatus.EXPIRED.is_terminal()
        assert not SubscriptionStatus.HALTED.is_terminal()
        assert SubscriptionStatus.HALTED.has_payment_issue()
        assert SubscriptionStatus.PAUSED.is_usable()
        assert not SubscriptionStatus.CREATED.is_usable()
        assert SubscriptionStatus.from_provider("bogus") is None

    def test_event_parsing_normalizes_empty_notes(self):
        event = RazorpayWebhookEvent.model_validate(
            webhook_body("subscription.charged", notes=[])
        )

        assert event.type == RazorpayWebhookType.SUBSCRIPTION_CHARGED
        assert event.subscription_entity.notes == {}

    def test_unknown_event_type(self):
        event = RazorpayWebhookEvent.model_validate(
            {"event": "invoice.paid", "created_at": 1735689600}
        )

        assert event.type is None
        assert event.subscription_entity is None

    def test_malformed_entity_is_treated_as_absent(self):
        body = webhook_body("subscription.activated", quantity="many")
        body["created_at"] = "yesterday"

        event = RazorpayWebhookEvent.model_validate(body)

        assert event.type == RazorpayWebhookType.SUBSCRIPTION_ACTIVATED
        assert event.subscription_entity is None
        assert event.created_at is None

    def test_expired_event_type(self):
        assert (
            RazorpayWebhookType.from_event("subscription.expired")
            == RazorpayWebhookType.SUBSCRIPTION_EXPIRED
        )
