"""
Keeps the local stock cache of Shopify-linked products in step with
Shopify's ``inventory_levels/update`` webhook.
"""

import base64
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.enums import StockAction, StockSource
from storefront.core.exceptions import WebhookSignatureError
from storefront.schemas.inventory import ShopifyInventoryLevelWebhook
from storefront.services.inventory_service import InventoryService

logger = logging.getLogger(__name__)


def verify_shopify_hmac(payload: bytes, header: Optional[str], secret: str) -> None:
    """Shopify signs the raw body with HMAC-SHA256, base64 encoded."""
    if not secret:
        raise WebhookSignatureError("Shopify webhook secret is not configured")
    if not header:
        raise WebhookSignatureError("No signature provided")

    digest = hmac.new(secret.encode(), payload, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode()
    if not hmac.compare_digest(expected, header.strip()):
        raise WebhookSignatureError("Invalid signature")


class InventoryWebhookProcessor:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.inventory = InventoryService(db)

    async def process_inventory_level(self, update: ShopifyInventoryLevelWebhook) -> Dict[str, Any]:
        item_id = str(update.inventory_item_id)
        result = {"inventory_item_id": item_id, "status": "ignored"}

        if update.available is None:
            logger.debug(f"Inventory level for item {item_id} carries no quantity; ignoring")
            return result

        inventory = await self.inventory.get_inventory_by_shopify_inventory_item_id(item_id)
        if inventory is None:
            logger.debug(f"No inventory record for Shopify item {item_id}; ignoring")
            return result

        if not inventory.is_shopify_linked:
            logger.info(f"Product {inventory.product_id} is not linked to Shopify; level update ignored")
            return result

        location_id = str(update.location_id) if update.location_id is not None else None
        if location_id and location_id != inventory.shopify_location_id:
            logger.debug(f"Level update for {inventory.product_id} at other location {location_id}; ignoring")
            return result

        previous = inventory.stock
        await self.inventory.set_stock(
            inventory,
            update.available,
            StockAction.SHOPIFY_WEBHOOK,
            StockSource.SHOPIFY_WEBHOOK,
            reference_id=item_id,
            reference_type="shopify_inventory_item",
        )
        await self.db.commit()

        logger.info(f"Shopify level for {inventory.product_id}: {previous} -> {inventory.stock}")
        result.update(status="updated", product_id=inventory.product_id, stock=inventory.stock)
        return result
