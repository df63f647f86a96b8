from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.session import get_db
from packages.auth.models.domain.session import SessionContext
from packages.razorpay.errors import RazorpayErrorCode, bad_request, unauthorized
from packages.razorpay.models.domain.enums import CustomerType, ReferenceAction
from packages.razorpay.plugin import RazorpayPlugin
from packages.razorpay.repositories.store import BillingStore
from packages.razorpay.services.reference_resolver import ResolvedReference

logger = get_logger(__name__)


def get_billing_store(db_session: AsyncSession = Depends(get_db)) -> BillingStore:
    return BillingStore(db_session)


@trace_span
async def authorize_reference(
    plugin: RazorpayPlugin,
    context: SessionContext,
    reference_id: Optional[str],
    customer_type: Optional[CustomerType],
    action: ReferenceAction,
) -> ResolvedReference:
    """
    Decide which billed entity an action applies to, and whether the caller may act on it.

    Organizations always go through the authorize_reference hook. A user acting
    on their own id needs no hook; any other explicit reference does.
    """
    options = plugin.options
    hook = options.authorize_reference
    user, session = context.user, context.session

    if customer_type == CustomerType.ORGANIZATION:
        if not options.organization_enabled:
            raise bad_request(RazorpayErrorCode.ORGANIZATION_SUBSCRIPTION_NOT_ENABLED)
        if hook is None:
            logger.error(
                "Organization subscriptions require authorize_reference in the Razorpay plugin options"
            )
            raise bad_request(RazorpayErrorCode.AUTHORIZE_REFERENCE_REQUIRED)

        organization_reference = reference_id or (
            str(session.active_organization_id)
            if session.active_organization_id is not None
            else None
        )
        if not organization_reference:
            raise bad_request(RazorpayErrorCode.ORGANIZATION_REFERENCE_ID_REQUIRED)
        if not await hook(user, session, organization_reference, action):
            raise unauthorized()
        return ResolvedReference(CustomerType.ORGANIZATION, organization_reference)

    own_reference = str(user.id)
    if not reference_id or reference_id == own_reference:
        return ResolvedReference(CustomerType.USER, own_reference)

    if hook is None:
        logger.error(
            "Passing a referenceId requires authorize_reference in the Razorpay plugin options",
            extra={"user_id": user.id, "reference_id": reference_id},
        )
        raise bad_request(RazorpayErrorCode.REFERENCE_ID_NOT_ALLOWED)
    if not await hook(user, session, reference_id, action):
        raise unauthorized()
    return ResolvedReference(CustomerType.USER, reference_id)
