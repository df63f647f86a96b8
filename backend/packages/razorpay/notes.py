"""
Razorpay `notes` helpers.

Razorpay keeps free-form key/value notes (max 15 pairs) on customers and
subscriptions. The plugin stamps its own keys there so webhooks can be
traced back to local rows; those keys always win over caller-supplied notes.
"""

from typing import Optional

from packages.razorpay.models.domain.enums import CustomerType

USER_ID = "userId"
ORGANIZATION_ID = "organizationId"
CUSTOMER_TYPE = "customerType"
SUBSCRIPTION_ID = "subscriptionId"
REFERENCE_ID = "referenceId"


def _merge(internal: dict[str, str], *user_notes: Optional[dict]) -> dict[str, str]:
    merged: dict[str, str] = {}
    for notes in reversed([n for n in user_notes if n]):
        merged.update({str(k): str(v) for k, v in notes.items()})
    merged.update(internal)
    return merged


def subscription_notes(
    user_id: int | str,
    subscription_id: int | str,
    reference_id: str,
    *user_notes: Optional[dict],
) -> dict[str, str]:
    return _merge(
        {
            USER_ID: str(user_id),
            SUBSCRIPTION_ID: str(subscription_id),
            REFERENCE_ID: str(reference_id),
        },
        *user_notes,
    )


def customer_notes(
    customer_type: CustomerType, entity_id: int | str, *user_notes: Optional[dict]
) -> dict[str, str]:
    key = USER_ID if customer_type == CustomerType.USER else ORGANIZATION_ID
    return _merge(
        {CUSTOMER_TYPE: customer_type.value, key: str(entity_id)}, *user_notes
    )


def reference_id_from_notes(notes: Optional[dict]) -> Optional[str]:
    if not notes:
        return None
    return notes.get(REFERENCE_ID) or None


def subscription_id_from_notes(notes: Optional[dict]) -> Optional[int]:
    """Local subscription id stamped at creation, None if absent or garbled."""
    if not notes:
        return None
    try:
        return int(notes.get(SUBSCRIPTION_ID, ""))
    except ValueError:
        return None
