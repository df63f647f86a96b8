"""
Service for user-initiated subscription actions.

Each action makes at most one mutating Razorpay call and then one local
write describing the expected post-call state. The two are not atomic: if
the local write is lost, the next webhook for the subscription overwrites
the row with the provider's state.
"""

from datetime import timedelta
from typing import Any, Optional

from common.core.exceptions import RemoteServiceError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.auth.models.domain.session import SessionContext
from packages.razorpay import notes as razorpay_notes
from packages.razorpay.errors import (
    RazorpayErrorCode,
    bad_request,
    forbidden,
    internal_error,
    not_found,
)
from packages.razorpay.models.domain.enums import (
    BillingPeriod,
    CustomerType,
    ScheduleChangeAt,
    SubscriptionStatus,
)
from packages.razorpay.models.domain.plans import RazorpayPlan
from packages.razorpay.models.domain.razorpay_webhooks import (
    RazorpaySubscriptionEntity,
)
from packages.razorpay.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.razorpay.models.schemas.subscription import (
    CancelSubscriptionRequest,
    UpdateSubscriptionRequest,
    UpgradeSubscriptionRequest,
)
from packages.razorpay.plugin import RazorpayPlugin
from packages.razorpay.repositories.store import BillingStore
from packages.razorpay.services.customer_service import CustomerService
from packages.razorpay.services.reference_resolver import ResolvedReference
from packages.razorpay.utils import (
    find_plan_by_name,
    find_plan_by_razorpay_id,
    timestamp_to_datetime,
    utcnow,
)

logger = get_logger(__name__)


class SubscriptionService:
    """Service for subscription management."""

    def __init__(self, plugin: RazorpayPlugin, store: BillingStore):
        self.plugin = plugin
        self.store = store
        self.subscription_repo = store.subscriptions
        self.customers = CustomerService(plugin, store)

    @property
    def payment(self):
        return self.plugin.payment

    async def _notify(
        self,
        callback_name: str,
        remote: dict[str, Any],
        subscription: Subscription,
    ) -> None:
        try:
            entity = RazorpaySubscriptionEntity.model_validate(
                {"id": subscription.razorpay_subscription_id, **remote}
            )
            await getattr(self.plugin.callbacks, callback_name)(None, entity, subscription)
        except Exception as e:
            logger.error(
                f"{callback_name} callback failed for subscription {subscription.id}: {str(e)}",
                extra={"subscription_id": subscription.id},
                exc_info=True,
            )

    async def _get_current(self, reference: ResolvedReference) -> Subscription:
        subscription = await self.subscription_repo.get_current_for_reference(
            reference.reference_id
        )
        if not subscription:
            raise not_found(RazorpayErrorCode.SUBSCRIPTION_NOT_FOUND)
        return subscription

    async def _resolve_customer_id(
        self, context: SessionContext, reference: ResolvedReference
    ) -> str:
        if reference.customer_type == CustomerType.ORGANIZATION:
            organization = await self.customers.get_organization(reference.reference_id)
            return await self.customers.ensure_organization_customer(
                organization, context.user
            )

        if reference.reference_id == str(context.user.id):
            return await self.customers.ensure_user_customer(context.user)

        user = None
        if reference.reference_id.isdigit():
            user = await self.store.users.get(int(reference.reference_id))
        if not user:
            raise not_found(RazorpayErrorCode.CUSTOMER_NOT_FOUND)
        return await self.customers.ensure_user_customer(user)

    async def _initial_quantity(
        self, plan: RazorpayPlan, reference: ResolvedReference
    ) -> int:
        if plan.seat_based and reference.customer_type == CustomerType.ORGANIZATION:
            members = await self.store.organizations.count_members(
                int(reference.reference_id)
            )
            return max(members, 1)
        return plan.quantity or 1

    @trace_span
    async def upgrade(
        self,
        context: SessionContext,
        reference: ResolvedReference,
        request: UpgradeSubscriptionRequest,
    ) -> tuple[Subscription, dict[str, Any]]:
        """
        Start a subscription on a configured plan.

        The local row is inserted first so its id can travel in the Razorpay
        notes; it is deleted again if Razorpay rejects the subscription.
        """
        options = self.plugin.options
        if options.require_email_verification and not context.user.email_verified:
            raise forbidden(RazorpayErrorCode.EMAIL_VERIFICATION_REQUIRED)

        plan = find_plan_by_name(await self.plugin.get_plans(), request.plan)
        if not plan:
            raise bad_request(RazorpayErrorCode.SUBSCRIPTION_PLAN_NOT_FOUND)
        plan_name = plan.name.lower()

        open_subscriptions = await self.subscription_repo.list_open_for_reference(
            reference.reference_id, group_id=plan.group
        )
        if any(
            s.plan == plan_name and s.status != SubscriptionStatus.CREATED
            for s in open_subscriptions
        ):
            raise bad_request(RazorpayErrorCode.ALREADY_SUBSCRIBED_PLAN)

        customer_id = await self._resolve_customer_id(context, reference)

        is_annual = request.annual and bool(plan.annual_plan_id)
        razorpay_plan_id = plan.annual_plan_id if is_annual else plan.plan_id
        quantity = await self._initial_quantity(plan, reference)

        subscription = await self.subscription_repo.create(
            SubscriptionCreateModel(
                reference_id=reference.reference_id,
                plan=plan_name,
                status=SubscriptionStatus.CREATED,
                razorpay_customer_id=customer_id,
                quantity=quantity,
                total_count=plan.total_count,
                billing_period=BillingPeriod.ANNUAL if is_annual else BillingPeriod.MONTHLY,
                group_id=plan.group,
            )
        )

        extra_params: dict[str, Any] = {}
        if options.get_subscription_create_params:
            extra_params = dict(
                await options.get_subscription_create_params(
                    context.user, context.session, plan, reference.reference_id
                )
                or {}
            )
        extra_notes = extra_params.pop("notes", None)

        params: dict[str, Any] = {
            **extra_params,
            "plan_id": razorpay_plan_id,
            "customer_id": customer_id,
            "total_count": plan.total_count,
            "quantity": quantity,
            "customer_notify": 1,
            "notes": razorpay_notes.subscription_notes(
                context.user.id,
                subscription.id,
                reference.reference_id,
                request.notes,
                extra_notes,
            ),
        }
        if plan.free_trial_days:
            trial_end = utcnow() + timedelta(days=plan.free_trial_days)
            params["start_at"] = int(trial_end.timestamp())

        try:
            remote = await self.payment.create_subscription(params)
        except RemoteServiceError as e:
            await self.subscription_repo.delete(subscription.id)
            logger.error(
                f"Rolled back subscription {subscription.id} after Razorpay create failed: {e.message}",
                extra={
                    "subscription_id": subscription.id,
                    "reference_id": reference.reference_id,
                    "plan": plan_name,
                },
            )
            raise internal_error(RazorpayErrorCode.SUBSCRIPTION_CREATE_FAILED) from e

        subscription = await self.subscription_repo.update(
            subscription.id,
            SubscriptionUpdateModel(
                razorpay_subscription_id=remote["id"],
                short_url=remote.get("short_url"),
            ),
        )

        logger.info(
            f"Created subscription {subscription.id} on plan {plan_name} for reference {reference.reference_id}",
            extra={
                "subscription_id": subscription.id,
                "razorpay_subscription_id": remote["id"],
                "reference_id": reference.reference_id,
                "plan": plan_name,
            },
        )

        try:
            await self.plugin.callbacks.on_subscription_created(
                subscription, RazorpaySubscriptionEntity.model_validate(remote), plan
            )
        except Exception as e:
            logger.error(
                f"on_subscription_created callback failed: {str(e)}",
                extra={"subscription_id": subscription.id},
                exc_info=True,
            )

        return subscription, remote

    @trace_span
    async def cancel(
        self, reference: ResolvedReference, request: CancelSubscriptionRequest
    ) -> Subscription:
        """Cancel now, or flag the subscription to end with the current cycle."""
        subscription = await self._get_current(reference)
        if subscription.is_terminal():
            raise bad_request(RazorpayErrorCode.SUBSCRIPTION_ALREADY_CANCELLED)
        if request.cancel_at_cycle_end and subscription.cancel_at_cycle_end:
            raise bad_request(RazorpayErrorCode.SUBSCRIPTION_ALREADY_CANCELLED)

        try:
            remote = await self.payment.cancel_subscription(
                subscription.razorpay_subscription_id, request.cancel_at_cycle_end
            )
        except RemoteServiceError as e:
            raise internal_error(RazorpayErrorCode.SUBSCRIPTION_CANCEL_FAILED) from e

        if request.cancel_at_cycle_end:
            update_data = SubscriptionUpdateModel(cancel_at_cycle_end=True)
        else:
            now = utcnow()
            update_data = SubscriptionUpdateModel(
                status=SubscriptionStatus.CANCELLED,
                cancelled_at=now,
                ended_at=now,
                cancel_at_cycle_end=False,
            )
        updated = await self.subscription_repo.update(subscription.id, update_data)

        logger.info(
            f"Cancelled subscription {subscription.id}"
            + (" at cycle end" if request.cancel_at_cycle_end else ""),
            extra={
                "subscription_id": subscription.id,
                "reference_id": reference.reference_id,
                "cancel_at_cycle_end": request.cancel_at_cycle_end,
            },
        )

        if not request.cancel_at_cycle_end:
            await self._notify("on_subscription_cancel", remote, updated)
        return updated

    @trace_span
    async def restore(self, reference: ResolvedReference) -> Subscription:
        """Undo a cancel-at-cycle-end before the cycle ends."""
        subscription = await self._get_current(reference)
        if subscription.is_terminal() or not subscription.cancel_at_cycle_end:
            raise bad_request(
                RazorpayErrorCode.SUBSCRIPTION_NOT_SCHEDULED_FOR_CANCELLATION
            )

        try:
            await self.payment.cancel_scheduled_changes(
                subscription.razorpay_subscription_id
            )
        except RemoteServiceError as e:
            raise internal_error(RazorpayErrorCode.SUBSCRIPTION_RESTORE_FAILED) from e

        return await self.subscription_repo.update(
            subscription.id, SubscriptionUpdateModel(cancel_at_cycle_end=False)
        )

    @trace_span
    async def pause(self, reference: ResolvedReference) -> Subscription:
        subscription = await self._get_current(reference)
        if subscription.status == SubscriptionStatus.PAUSED:
            raise bad_request(RazorpayErrorCode.SUBSCRIPTION_ALREADY_PAUSED)
        if subscription.status != SubscriptionStatus.ACTIVE:
            raise bad_request(RazorpayErrorCode.SUBSCRIPTION_NOT_ACTIVE)

        try:
            remote = await self.payment.pause_subscription(
                subscription.razorpay_subscription_id
            )
        except RemoteServiceError as e:
            raise internal_error(RazorpayErrorCode.SUBSCRIPTION_PAUSE_FAILED) from e

        updated = await self.subscription_repo.update(
            subscription.id,
            SubscriptionUpdateModel(status=SubscriptionStatus.PAUSED, paused_at=utcnow()),
        )
        await self._notify("on_subscription_paused", remote, updated)
        return updated

    @trace_span
    async def resume(self, reference: ResolvedReference) -> Subscription:
        subscription = await self._get_current(reference)
        if subscription.status != SubscriptionStatus.PAUSED:
            raise bad_request(RazorpayErrorCode.SUBSCRIPTION_NOT_PAUSED)

        try:
            remote = await self.payment.resume_subscription(
                subscription.razorpay_subscription_id
            )
        except RemoteServiceError as e:
            raise internal_error(RazorpayErrorCode.SUBSCRIPTION_RESUME_FAILED) from e

        updated = await self.subscription_repo.update(
            subscription.id,
            SubscriptionUpdateModel(status=SubscriptionStatus.ACTIVE, paused_at=None),
        )
        await self._notify("on_subscription_resumed", remote, updated)
        return updated

    @trace_span
    async def update(
        self, reference: ResolvedReference, request: UpdateSubscriptionRequest
    ) -> tuple[Subscription, dict[str, Any]]:
        """Change plan, quantity or remaining cycles of the current subscription."""
        subscription = await self._get_current(reference)
        if subscription.is_terminal():
            raise bad_request(RazorpayErrorCode.SUBSCRIPTION_NOT_ACTIVE)

        plan = None
        if request.plan_id:
            plans = await self.plugin.get_plans()
            plan = find_plan_by_name(plans, request.plan_id) or find_plan_by_razorpay_id(
                plans, request.plan_id
            )
            if not plan:
                raise bad_request(RazorpayErrorCode.SUBSCRIPTION_PLAN_NOT_FOUND)

        if plan is None and request.quantity is None and request.remaining_count is None:
            raise bad_request(RazorpayErrorCode.INVALID_REQUEST_BODY)

        razorpay_plan_id = None
        if plan:
            razorpay_plan_id = (
                request.plan_id if plan.matches_plan_id(request.plan_id) else plan.plan_id
            )

        return await self.push_update(
            subscription,
            plan=plan,
            razorpay_plan_id=razorpay_plan_id,
            quantity=request.quantity,
            remaining_count=request.remaining_count,
            schedule_change_at=request.schedule_change_at,
        )

    @trace_span
    async def push_update(
        self,
        subscription: Subscription,
        plan: Optional[RazorpayPlan] = None,
        razorpay_plan_id: Optional[str] = None,
        quantity: Optional[int] = None,
        remaining_count: Optional[int] = None,
        schedule_change_at: ScheduleChangeAt = ScheduleChangeAt.NOW,
    ) -> tuple[Subscription, dict[str, Any]]:
        """
        Edit the Razorpay subscription, then mirror the edit locally.

        Changes scheduled for the cycle end are left to the `updated` webhook.
        """
        changes: dict[str, Any] = {"schedule_change_at": schedule_change_at.value}
        if razorpay_plan_id:
            changes["plan_id"] = razorpay_plan_id
        if quantity is not None:
            changes["quantity"] = quantity
        if remaining_count is not None:
            changes["remaining_count"] = remaining_count

        try:
            remote = await self.payment.update_subscription(
                subscription.razorpay_subscription_id, changes
            )
        except RemoteServiceError as e:
            raise internal_error(RazorpayErrorCode.SUBSCRIPTION_UPDATE_FAILED) from e

        update_data = SubscriptionUpdateModel()
        if schedule_change_at == ScheduleChangeAt.NOW:
            if razorpay_plan_id:
                update_data.razorpay_plan_id = razorpay_plan_id
            if plan:
                update_data.plan = plan.name.lower()
            if quantity is not None:
                update_data.quantity = quantity
            if remaining_count is not None:
                update_data.remaining_count = remaining_count

        updated = await self.subscription_repo.update(subscription.id, update_data)
        logger.info(
            f"Updated subscription {subscription.id}",
            extra={
                "subscription_id": subscription.id,
                "changes": changes,
            },
        )
        return updated, remote

    @trace_span
    async def list_for_reference(
        self, reference: ResolvedReference
    ) -> list[tuple[Subscription, dict[str, Any]]]:
        """All local rows for the reference, each with its plan's limits."""
        plans = await self.plugin.get_plans()
        subscriptions = await self.subscription_repo.list_by_reference(
            reference.reference_id
        )
        result = []
        for subscription in subscriptions:
            plan = find_plan_by_name(plans, subscription.plan)
            result.append((subscription, plan.limits if plan else {}))
        return result

    @trace_span
    async def sync_after_checkout(
        self, subscription_id: str, razorpay_subscription_id: Optional[str] = None
    ) -> Optional[Subscription]:
        """
        Pull the provider's state into the local row right after checkout.

        Webhooks remain the source of truth; this only shortens the window in
        which the customer returns to a page that still shows `created`.
        """
        subscription = None
        if subscription_id.isdigit():
            subscription = await self.subscription_repo.get(int(subscription_id))
        if not subscription or not subscription.razorpay_subscription_id:
            logger.warning(
                f"Checkout return for unknown subscription {subscription_id}",
                extra={"subscription_id": subscription_id},
            )
            return None

        if subscription.status == SubscriptionStatus.ACTIVE:
            return subscription

        if (
            razorpay_subscription_id
            and razorpay_subscription_id != subscription.razorpay_subscription_id
        ):
            logger.error(
                f"Checkout return for subscription {subscription.id} carried a different Razorpay id",
                extra={
                    "subscription_id": subscription.id,
                    "razorpay_subscription_id": subscription.razorpay_subscription_id,
                    "returned_razorpay_subscription_id": razorpay_subscription_id,
                },
            )
            return None

        try:
            remote = await self.payment.fetch_subscription(
                subscription.razorpay_subscription_id
            )
        except RemoteServiceError as e:
            logger.error(
                f"Failed to fetch subscription {subscription.id} after checkout: {e.message}",
                extra={"subscription_id": subscription.id},
            )
            return None

        entity = RazorpaySubscriptionEntity.model_validate(remote)
        plan = find_plan_by_razorpay_id(await self.plugin.get_plans(), entity.plan_id)
        if not plan:
            logger.warning(
                f"No configured plan for Razorpay plan {entity.plan_id}",
                extra={"subscription_id": subscription.id, "plan_id": entity.plan_id},
            )
            return subscription

        fields = {
            "status": SubscriptionStatus.from_provider(entity.status) or subscription.status,
            "plan": plan.name.lower(),
            "razorpay_plan_id": entity.plan_id,
            "current_start": timestamp_to_datetime(entity.current_start),
            "current_end": timestamp_to_datetime(entity.current_end),
            "trial_start": timestamp_to_datetime(entity.trial_start),
            "trial_end": timestamp_to_datetime(entity.trial_end),
        }
        # Unset columns are left alone rather than cleared
        update_data = SubscriptionUpdateModel(
            **{key: value for key, value in fields.items() if value is not None}
        )
        async with self.store.savepoint():
            updated = await self.subscription_repo.update(subscription.id, update_data)

        logger.info(
            f"Synced subscription {subscription.id} after checkout: {updated.status.value}",
            extra={"subscription_id": subscription.id, "status": updated.status.value},
        )
        return updated
