import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import Settings, get_settings
from storefront.core.exceptions import InvoiceValidationError
from storefront.dependencies import get_db, get_notifications
from storefront.schemas.inventory import ShopifyInventoryLevelWebhook
from storefront.services.inventory_webhook_processor import InventoryWebhookProcessor, verify_shopify_hmac
from storefront.services.notification_service import TelegramNotificationService
from storefront.services.payment_webhook_processor import PaymentWebhookProcessor, verify_stripe_signature

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _parse_json(body: bytes) -> dict:
    try:
        payload = json.loads(body)
    except ValueError:
        raise InvoiceValidationError("Webhook body is not valid JSON", code="validation/invalid-request")
    if not isinstance(payload, dict):
        raise InvoiceValidationError("Webhook body must be a JSON object", code="validation/invalid-request")
    return payload


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    notifications: TelegramNotificationService = Depends(get_notifications),
    settings: Settings = Depends(get_settings),
):
    """Stripe invoice lifecycle events"""
    body = await request.body()
    verify_stripe_signature(
        body,
        request.headers.get("Stripe-Signature"),
        settings.STRIPE_WEBHOOK_SECRET,
        tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    )
    event = _parse_json(body)

    processor = PaymentWebhookProcessor(db, notifications)
    result = await processor.process_event(event)
    return {"received": True, **result}


@router.post("/shopify/inventory-levels")
async def shopify_inventory_levels_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Shopify inventory_levels/update"""
    body = await request.body()
    verify_shopify_hmac(body, request.headers.get("X-Shopify-Hmac-Sha256"), settings.SHOPIFY_WEBHOOK_SECRET)
    try:
        update = ShopifyInventoryLevelWebhook.model_validate(_parse_json(body))
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e

    processor = InventoryWebhookProcessor(db)
    result = await processor.process_inventory_level(update)
    return {"received": True, **result}
