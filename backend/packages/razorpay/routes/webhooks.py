"""
Webhook endpoint for Razorpay events.

Public endpoint (no auth required) - signature validated internally.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from common.db.session import get_db
from packages.razorpay.plugin import RazorpayPlugin, get_razorpay_plugin
from packages.razorpay.repositories.store import BillingStore
from packages.razorpay.webhooks.razorpay_webhook import handle_razorpay_webhook

router = APIRouter()


@router.post("/razorpay/webhook")
async def razorpay_webhook(
    request: Request,
    plugin: RazorpayPlugin = Depends(get_razorpay_plugin),
    db_session: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    """
    Receive webhook events from Razorpay.

    Responds 200 {"success": true} for every correctly signed event,
    whatever the outcome of processing it.
    """
    return await handle_razorpay_webhook(request, plugin, BillingStore(db_session))
