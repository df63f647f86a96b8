"""
Service for provisioning Razorpay customers for users and organizations.
"""

from typing import Any, Optional

from common.core.exceptions import RemoteServiceError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.organizations.models.domain.organization import (
    Organization,
    OrganizationUpdateModel,
)
from packages.razorpay import notes as razorpay_notes
from packages.razorpay.errors import RazorpayErrorCode, internal_error, not_found
from packages.razorpay.models.domain.enums import CustomerType
from packages.razorpay.plugin import RazorpayPlugin
from packages.razorpay.repositories.store import BillingStore
from packages.users.models.domain.user import User, UserUpdateModel

logger = get_logger(__name__)


class CustomerService:
    """Creates the Razorpay customer a subscription is billed to, once."""

    def __init__(self, plugin: RazorpayPlugin, store: BillingStore):
        self.plugin = plugin
        self.store = store

    @property
    def payment(self):
        return self.plugin.payment

    async def _create_customer(
        self,
        customer_type: CustomerType,
        entity_id: int,
        name: Optional[str],
        email: Optional[str],
        extra_params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        params = dict(extra_params or {})
        user_notes = params.pop("notes", None)
        try:
            customer = await self.payment.create_customer(
                name=name,
                email=email,
                notes=razorpay_notes.customer_notes(customer_type, entity_id, user_notes),
                extra_params=params,
            )
        except RemoteServiceError as e:
            logger.error(
                f"Unable to create Razorpay customer for {customer_type.value} {entity_id}: {e.message}",
                extra={"customer_type": customer_type.value, "entity_id": entity_id},
            )
            raise internal_error(RazorpayErrorCode.UNABLE_TO_CREATE_CUSTOMER) from e

        try:
            await self.plugin.callbacks.on_customer_create(
                customer, customer_type.value, entity_id
            )
        except Exception as e:
            logger.error(
                f"on_customer_create callback failed: {str(e)}",
                extra={"customer_id": customer.get("id")},
                exc_info=True,
            )
        return customer

    @trace_span
    async def ensure_user_customer(self, user: User) -> str:
        """Return the user's Razorpay customer id, creating the customer if needed."""
        if user.razorpay_customer_id:
            return user.razorpay_customer_id

        extra_params = None
        if self.plugin.options.get_customer_create_params:
            extra_params = await self.plugin.options.get_customer_create_params(user)

        customer = await self._create_customer(
            CustomerType.USER, user.id, user.name or user.email, user.email, extra_params
        )
        await self.store.users.update(
            user.id, UserUpdateModel(razorpay_customer_id=customer["id"])
        )
        logger.info(
            f"Linked Razorpay customer {customer['id']} to user {user.id}",
            extra={"user_id": user.id, "customer_id": customer["id"]},
        )
        return customer["id"]

    @trace_span
    async def get_organization(self, reference_id: str) -> Organization:
        try:
            organization_id = int(reference_id)
        except ValueError:
            raise not_found(RazorpayErrorCode.ORGANIZATION_NOT_FOUND)
        organization = await self.store.organizations.get(organization_id)
        if not organization:
            raise not_found(RazorpayErrorCode.ORGANIZATION_NOT_FOUND)
        return organization

    @trace_span
    async def ensure_organization_customer(
        self, organization: Organization, acting_user: User
    ) -> str:
        """Return the organization's Razorpay customer id, creating it if needed."""
        if organization.razorpay_customer_id:
            return organization.razorpay_customer_id

        customer = await self._create_customer(
            CustomerType.ORGANIZATION,
            organization.id,
            organization.name,
            acting_user.email,
        )
        await self.store.organizations.update(
            organization.id, OrganizationUpdateModel(razorpay_customer_id=customer["id"])
        )
        logger.info(
            f"Linked Razorpay customer {customer['id']} to organization {organization.id}",
            extra={"organization_id": organization.id, "customer_id": customer["id"]},
        )
        return customer["id"]
