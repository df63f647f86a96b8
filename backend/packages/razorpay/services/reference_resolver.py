"""
Maps provider-side identifiers back to the local billed entity.
"""

from dataclasses import dataclass
from typing import Optional

from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.razorpay import notes as razorpay_notes
from packages.razorpay.models.domain.enums import CustomerType
from packages.razorpay.repositories.store import BillingStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedReference:
    customer_type: CustomerType
    reference_id: str


class ReferenceResolver:
    """
    Resolve a Razorpay customer id (or subscription notes) to a reference.

    Order: organization customers (when organization billing is on), then
    user customers, then the referenceId stamped into the subscription notes
    at creation. Returns None when nothing links; dashboard-created
    subscriptions are expected to land there.
    """

    def __init__(self, store: BillingStore, organization_enabled: bool = False):
        self.store = store
        self.organization_enabled = organization_enabled

    @trace_span
    async def resolve(
        self,
        customer_id: Optional[str],
        notes: Optional[dict[str, str]] = None,
    ) -> Optional[ResolvedReference]:
        if customer_id:
            if self.organization_enabled:
                organization = await self.store.organizations.get_by_razorpay_customer_id(
                    customer_id
                )
                if organization:
                    return ResolvedReference(
                        CustomerType.ORGANIZATION, str(organization.id)
                    )

            user = await self.store.users.get_by_razorpay_customer_id(customer_id)
            if user:
                return ResolvedReference(CustomerType.USER, str(user.id))

        reference_id = razorpay_notes.reference_id_from_notes(notes)
        if reference_id:
            user_id = (notes or {}).get(razorpay_notes.USER_ID)
            customer_type = (
                CustomerType.USER if user_id == reference_id else CustomerType.ORGANIZATION
            )
            logger.info(
                f"Resolved reference {reference_id} from subscription notes",
                extra={"customer_id": customer_id, "reference_id": reference_id},
            )
            return ResolvedReference(customer_type, reference_id)

        return None
