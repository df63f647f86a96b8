"""
Unit tests for SubscriptionReconciler.

Events are fed straight to the handlers; the database is real (SQLite),
callbacks are AsyncMocks.
"""

import logging
from datetime import datetime, timezone

import pytest
from unittest.mock import patch

from packages.organizations.models.domain.organization import OrganizationUpdateModel
from packages.razorpay.models.domain.enums import SubscriptionStatus
from packages.razorpay.models.domain.subscription import SubscriptionUpdateModel
from packages.razorpay.webhooks.reconciler import SubscriptionReconciler
from packages.users.models.domain.user import UserUpdateModel
from tests.fixtures import (
    CYCLE_END,
    CYCLE_START,
    NEXT_CYCLE_END,
    create_subscription_entity,
    webhook_event,
)


def utc_naive(timestamp: int) -> datetime:
    """SQLite hands DateTime columns back without tzinfo."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).replace(tzinfo=None)


def naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None)


@pytest.fixture
def reconciler(razorpay_plugin, store):
    return SubscriptionReconciler(razorpay_plugin, store)


@pytest.fixture
async def customer_user(store, sample_user):
    """Sample user already linked to the Razorpay customer in the payloads."""
    return await store.users.update(
        sample_user.id, UserUpdateModel(razorpay_customer_id="cust_test123")
    )


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestExistingSubscription:
    """Events for a subscription that already has a local row."""

    @pytest.mark.asyncio
    async def test_activated_overwrites_row_and_fires_callback(
        self, mock_start_span, reconciler, store, test_db, mock_callbacks
    ):
        subscription = await create_subscription_entity(
            test_db,
            status=SubscriptionStatus.AUTHENTICATED.value,
            paid_count=0,
            remaining_count=None,
        )

        await reconciler.handle_activated(
            webhook_event("subscription.activated", paid_count=1, remaining_count=11)
        )

        updated = await store.subscriptions.get(subscription.id)
        assert updated.status == SubscriptionStatus.ACTIVE
        assert updated.paid_count == 1
        assert updated.remaining_count == 11
        assert naive(updated.current_end) == utc_naive(CYCLE_END)
        mock_callbacks.on_subscription_activated.assert_awaited_once()
        event, entity, row = mock_callbacks.on_subscription_activated.await_args.args
        assert event.event == "subscription.activated"
        assert entity.id == "sub_test123"
        assert row.id == subscription.id

    @pytest.mark.asyncio
    async def test_replayed_charge_is_idempotent(
        self, mock_start_span, reconciler, store, test_db, mock_callbacks
    ):
        subscription = await create_subscription_entity(test_db, paid_count=1)
        event = webhook_event(
            "subscription.charged",
            paid_count=2,
            remaining_count=10,
            current_start=CYCLE_END,
            current_end=NEXT_CYCLE_END,
        )

        await reconciler.handle_charged(event)
        first = await store.subscriptions.get(subscription.id)
        await reconciler.handle_charged(event)
        second = await store.subscriptions.get(subscription.id)

        assert first.paid_count == 2
        assert second.paid_count == 2
        assert second.remaining_count == 10
        assert naive(second.current_end) == utc_naive(NEXT_CYCLE_END)
        mock_callbacks.on_subscription_charged.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_each_new_charge_fires_callback(
        self, mock_start_span, reconciler, test_db, mock_callbacks
    ):
        await create_subscription_entity(test_db, paid_count=1)

        await reconciler.handle_charged(
            webhook_event("subscription.charged", paid_count=2, current_end=NEXT_CYCLE_END)
        )
        await reconciler.handle_charged(
            webhook_event("subscription.charged", paid_count=3, current_end=NEXT_CYCLE_END + 86400 * 28)
        )

        assert mock_callbacks.on_subscription_charged.await_count == 2

    @pytest.mark.asyncio
    async def test_pending_then_halted(
        self, mock_start_span, reconciler, store, test_db, mock_callbacks
    ):
        subscription = await create_subscription_entity(test_db)

        await reconciler.handle_pending(
            webhook_event("subscription.pending", status="pending")
        )
        assert (await store.subscriptions.get(subscription.id)).status == (
            SubscriptionStatus.PENDING
        )

        await reconciler.handle_halted(webhook_event("subscription.halted", status="halted"))
        assert (await store.subscriptions.get(subscription.id)).status == (
            SubscriptionStatus.HALTED
        )
        mock_callbacks.on_subscription_pending.assert_awaited_once()
        mock_callbacks.on_subscription_halted.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancelled_sets_timestamps_once(
        self, mock_start_span, reconciler, store, test_db, mock_callbacks
    ):
        subscription = await create_subscription_entity(test_db)
        event = webhook_event(
            "subscription.cancelled", status="cancelled", ended_at=CYCLE_END
        )

        await reconciler.handle_cancelled(event)
        first = await store.subscriptions.get(subscription.id)
        await reconciler.handle_cancelled(event)
        second = await store.subscriptions.get(subscription.id)

        assert second.status == SubscriptionStatus.CANCELLED
        assert naive(second.ended_at) == utc_naive(CYCLE_END)
        assert second.cancelled_at is not None
        assert second.cancelled_at == first.cancelled_at
        mock_callbacks.on_subscription_cancel.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_expired_sets_ended_at_once(
        self, mock_start_span, reconciler, store, test_db, mock_callbacks
    ):
        subscription = await create_subscription_entity(
            test_db, status=SubscriptionStatus.CREATED.value, paid_count=0
        )
        event = webhook_event("subscription.expired", status="expired")

        await reconciler.handle_expired(event)
        first = await store.subscriptions.get(subscription.id)
        await reconciler.handle_expired(event)
        second = await store.subscriptions.get(subscription.id)

        assert second.status == SubscriptionStatus.EXPIRED
        assert first.ended_at is not None
        assert second.ended_at == first.ended_at
        mock_callbacks.on_subscription_expired.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_halted_logs_payment_issue(
        self, mock_start_span, reconciler, test_db, caplog
    ):
        await create_subscription_entity(test_db)

        with caplog.at_level(logging.WARNING):
            await reconciler.handle_halted(
                webhook_event("subscription.halted", status="halted")
            )

        assert "has a payment issue (halted)" in caplog.text

    @pytest.mark.asyncio
    async def test_activation_with_trial_fires_trial_start_once(
        self, mock_start_span, reconciler, store, test_db, mock_callbacks
    ):
        subscription = await create_subscription_entity(
            test_db, status=SubscriptionStatus.AUTHENTICATED.value, paid_count=0
        )
        event = webhook_event(
            "subscription.activated",
            paid_count=0,
            trial_start=CYCLE_START,
            trial_end=CYCLE_END,
        )

        await reconciler.handle_activated(event)
        await reconciler.handle_activated(event)

        updated = await store.subscriptions.get(subscription.id)
        assert naive(updated.trial_start) == utc_naive(CYCLE_START)
        assert naive(updated.trial_end) == utc_naive(CYCLE_END)
        mock_callbacks.on_trial_start.assert_awaited_once()
        row, plan = mock_callbacks.on_trial_start.await_args.args
        assert row.id == subscription.id
        assert plan.name == "Pro"

    @pytest.mark.asyncio
    async def test_activation_without_trial_skips_trial_start(
        self, mock_start_span, reconciler, test_db, mock_callbacks
    ):
        await create_subscription_entity(
            test_db, status=SubscriptionStatus.AUTHENTICATED.value
        )

        await reconciler.handle_activated(webhook_event("subscription.activated"))

        mock_callbacks.on_trial_start.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_first_charge_after_trial_fires_trial_end(
        self, mock_start_span, reconciler, test_db, mock_callbacks
    ):
        await create_subscription_entity(
            test_db,
            paid_count=0,
            trial_start=datetime.fromtimestamp(CYCLE_START, tz=timezone.utc),
            trial_end=datetime.fromtimestamp(CYCLE_END, tz=timezone.utc),
        )

        await reconciler.handle_charged(
            webhook_event("subscription.charged", paid_count=1, current_end=NEXT_CYCLE_END)
        )
        await reconciler.handle_charged(
            webhook_event("subscription.charged", paid_count=2, current_end=NEXT_CYCLE_END + 86400 * 28)
        )

        mock_callbacks.on_trial_end.assert_awaited_once()
        assert mock_callbacks.on_subscription_charged.await_count == 2

    @pytest.mark.asyncio
    async def test_completed_zeroes_remaining_count(
        self, mock_start_span, reconciler, store, test_db, mock_callbacks
    ):
        subscription = await create_subscription_entity(
            test_db, paid_count=11, remaining_count=1
        )

        await reconciler.handle_completed(
            webhook_event(
                "subscription.completed",
                status="completed",
                paid_count=12,
                remaining_count=0,
                ended_at=CYCLE_END,
            )
        )

        updated = await store.subscriptions.get(subscription.id)
        assert updated.status == SubscriptionStatus.COMPLETED
        assert updated.paid_count == 12
        assert updated.remaining_count == 0
        assert naive(updated.ended_at) == utc_naive(CYCLE_END)
        mock_callbacks.on_subscription_completed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_updated_mirrors_cycle_end_cancellation_without_cancel_callback(
        self, mock_start_span, reconciler, store, test_db, mock_callbacks
    ):
        subscription = await create_subscription_entity(test_db)

        await reconciler.handle_updated(
            webhook_event("subscription.updated", cancel_at_cycle_end=True)
        )

        updated = await store.subscriptions.get(subscription.id)
        assert updated.cancel_at_cycle_end is True
        assert updated.status == SubscriptionStatus.ACTIVE
        mock_callbacks.on_subscription_updated.assert_awaited_once()
        mock_callbacks.on_subscription_cancel.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_updated_resolves_new_plan(
        self, mock_start_span, reconciler, store, test_db
    ):
        subscription = await create_subscription_entity(test_db)

        await reconciler.handle_updated(
            webhook_event("subscription.updated", plan_id="plan_team_monthly", quantity=4)
        )

        updated = await store.subscriptions.get(subscription.id)
        assert updated.plan == "team"
        assert updated.razorpay_plan_id == "plan_team_monthly"
        assert updated.quantity == 4

    @pytest.mark.asyncio
    async def test_paused_after_api_pause_is_silent(
        self, mock_start_span, reconciler, store, test_db, mock_callbacks
    ):
        paused_at = datetime(2025, 1, 15, 12, 0, 0)
        subscription = await create_subscription_entity(
            test_db, status=SubscriptionStatus.PAUSED.value, paused_at=paused_at
        )

        await reconciler.handle_paused(webhook_event("subscription.paused", status="paused"))

        updated = await store.subscriptions.get(subscription.id)
        assert updated.status == SubscriptionStatus.PAUSED
        assert naive(updated.paused_at) == paused_at
        mock_callbacks.on_subscription_paused.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resumed_clears_paused_at(
        self, mock_start_span, reconciler, store, test_db, mock_callbacks
    ):
        subscription = await create_subscription_entity(
            test_db,
            status=SubscriptionStatus.PAUSED.value,
            paused_at=datetime(2025, 1, 15),
        )

        await reconciler.handle_resumed(
            webhook_event("subscription.resumed", status="active")
        )

        updated = await store.subscriptions.get(subscription.id)
        assert updated.status == SubscriptionStatus.ACTIVE
        assert updated.paused_at is None
        mock_callbacks.on_subscription_resumed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_links_row_by_local_id_in_notes(
        self, mock_start_span, reconciler, store, test_db
    ):
        subscription = await create_subscription_entity(
            test_db,
            status=SubscriptionStatus.CREATED.value,
            razorpay_subscription_id=None,
        )

        await reconciler.handle_authenticated(
            webhook_event(
                "subscription.authenticated",
                id="sub_linked456",
                status="authenticated",
                notes={"subscriptionId": str(subscription.id), "referenceId": "1"},
            )
        )

        updated = await store.subscriptions.get(subscription.id)
        assert updated.razorpay_subscription_id == "sub_linked456"
        assert updated.status == SubscriptionStatus.AUTHENTICATED
        assert len(await store.subscriptions.list_by_reference("1")) == 1


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestMissingSubscription:
    """Events for subscriptions with no local row yet."""

    @pytest.mark.asyncio
    async def test_creates_row_for_known_user_customer(
        self, mock_start_span, reconciler, store, customer_user, mock_callbacks
    ):
        await reconciler.handle_activated(webhook_event("subscription.activated"))

        rows = await store.subscriptions.list_by_reference(str(customer_user.id))
        assert len(rows) == 1
        assert rows[0].razorpay_subscription_id == "sub_test123"
        assert rows[0].plan == "pro"
        assert rows[0].status == SubscriptionStatus.ACTIVE
        assert rows[0].billing_period.value == "monthly"
        mock_callbacks.on_subscription_activated.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redelivery_does_not_duplicate(
        self, mock_start_span, reconciler, store, customer_user
    ):
        event = webhook_event("subscription.activated")

        await reconciler.handle_activated(event)
        await reconciler.handle_activated(event)

        rows = await store.subscriptions.list_by_reference(str(customer_user.id))
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_out_of_order_events_converge(
        self, mock_start_span, reconciler, store, customer_user
    ):
        # charged arrives before activated
        await reconciler.handle_charged(
            webhook_event("subscription.charged", paid_count=1)
        )
        await reconciler.handle_activated(
            webhook_event("subscription.activated", paid_count=1)
        )

        rows = await store.subscriptions.list_by_reference(str(customer_user.id))
        assert len(rows) == 1
        assert rows[0].status == SubscriptionStatus.ACTIVE
        assert rows[0].paid_count == 1
        assert naive(rows[0].current_end) == utc_naive(CYCLE_END)

    @pytest.mark.asyncio
    async def test_annual_plan_marks_billing_period(
        self, mock_start_span, reconciler, store, customer_user
    ):
        await reconciler.handle_activated(
            webhook_event("subscription.activated", plan_id="plan_pro_annual")
        )

        rows = await store.subscriptions.list_by_reference(str(customer_user.id))
        assert rows[0].billing_period.value == "annual"

    @pytest.mark.asyncio
    async def test_creates_row_for_organization_customer(
        self, mock_start_span, reconciler, store, sample_organization
    ):
        await store.organizations.update(
            sample_organization.id,
            OrganizationUpdateModel(razorpay_customer_id="cust_org789"),
        )

        await reconciler.handle_activated(
            webhook_event("subscription.activated", customer_id="cust_org789")
        )

        rows = await store.subscriptions.list_by_reference(str(sample_organization.id))
        assert len(rows) == 1
        assert rows[0].razorpay_customer_id == "cust_org789"

    @pytest.mark.asyncio
    async def test_falls_back_to_reference_in_notes(
        self, mock_start_span, reconciler, store
    ):
        await reconciler.handle_activated(
            webhook_event(
                "subscription.activated",
                customer_id="cust_unknown",
                notes={"referenceId": "42", "userId": "42"},
            )
        )

        rows = await store.subscriptions.list_by_reference("42")
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_unresolvable_reference_is_skipped(
        self, mock_start_span, reconciler, store, mock_callbacks, caplog
    ):
        with caplog.at_level(logging.WARNING):
            await reconciler.handle_activated(
                webhook_event("subscription.activated", customer_id="cust_unknown")
            )

        assert await store.subscriptions.get_by_razorpay_subscription_id("sub_test123") is None
        assert "Reference not found" in caplog.text
        mock_callbacks.on_subscription_activated.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_plan_is_skipped(
        self, mock_start_span, reconciler, store, customer_user, caplog
    ):
        with caplog.at_level(logging.WARNING):
            await reconciler.handle_activated(
                webhook_event("subscription.activated", plan_id="plan_dashboard_only")
            )

        assert await store.subscriptions.get_by_razorpay_subscription_id("sub_test123") is None
        assert "Plan not found" in caplog.text


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestHandlerFailures:
    @pytest.mark.asyncio
    async def test_callback_error_is_swallowed(
        self, mock_start_span, reconciler, store, test_db, mock_callbacks, caplog
    ):
        subscription = await create_subscription_entity(
            test_db, status=SubscriptionStatus.AUTHENTICATED.value
        )
        mock_callbacks.on_subscription_activated.side_effect = RuntimeError("boom")

        with caplog.at_level(logging.ERROR):
            await reconciler.handle_activated(webhook_event("subscription.activated"))

        # The row write stands; only the callback failed
        updated = await store.subscriptions.get(subscription.id)
        assert updated.status == SubscriptionStatus.ACTIVE
        assert "Failed to handle Razorpay webhook subscription.activated" in caplog.text

    @pytest.mark.asyncio
    async def test_repository_error_is_swallowed(
        self, mock_start_span, reconciler, store, test_db, caplog
    ):
        await create_subscription_entity(test_db)

        with patch.object(
            store.subscriptions,
            "update",
            side_effect=RuntimeError("database unavailable"),
        ), caplog.at_level(logging.ERROR):
            await reconciler.handle_halted(webhook_event("subscription.halted"))

        assert "database unavailable" in caplog.text

    @pytest.mark.asyncio
    async def test_event_without_subscription_is_ignored(
        self, mock_start_span, reconciler, mock_callbacks
    ):
        event = webhook_event("subscription.activated")
        event.payload.subscription = None

        await reconciler.handle_activated(event)

        mock_callbacks.on_subscription_activated.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_row_update_keeps_other_columns(
        self, mock_start_span, reconciler, store, test_db
    ):
        subscription = await create_subscription_entity(test_db, group_id="main")
        await store.subscriptions.update(
            subscription.id, SubscriptionUpdateModel(short_url="https://rzp.io/i/keep")
        )

        # Sparse payload: no short_url, no counters
        await reconciler.handle_updated(
            webhook_event(
                "subscription.updated",
                short_url=None,
                quantity=None,
                total_count=None,
                paid_count=None,
                remaining_count=None,
            )
        )

        updated = await store.subscriptions.get(subscription.id)
        assert updated.short_url == "https://rzp.io/i/keep"
        assert updated.group_id == "main"
        assert updated.paid_count == 1
        assert updated.quantity == 1
        assert updated.remaining_count == 11
