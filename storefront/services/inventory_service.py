"""
Purpose: Access to the local inventory ledger (``product_inventory``).

The order flow only reads from here. Writes happen in the webhook
processors (Stripe payment confirmation for standalone products, Shopify
inventory levels for linked products) and the operator CLI, and every
stock change is appended to ``inventory_sync_log``.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.enums import StockAction, StockSource
from storefront.core.utils import generate_id
from storefront.models.inventory import ProductInventory, InventorySyncLog
from storefront.schemas.inventory import InventoryUpsert

logger = logging.getLogger(__name__)


def is_shopify_linked(inventory: Optional[ProductInventory]) -> bool:
    """Linkage is re-derived from the record every time it is asked for."""
    return bool(inventory is not None and inventory.is_shopify_linked)


class InventoryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_inventory_by_product_id(self, product_id: str) -> Optional[ProductInventory]:
        return await self.db.get(ProductInventory, product_id, populate_existing=True)

    async def get_inventory_by_shopify_inventory_item_id(self, inventory_item_id: str) -> Optional[ProductInventory]:
        result = await self.db.execute(
            select(ProductInventory).where(
                ProductInventory.shopify_inventory_item_id == str(inventory_item_id)
            )
        )
        return result.scalars().first()

    async def upsert_inventory(self, data: InventoryUpsert, commit: bool = True) -> ProductInventory:
        """
        Insert or update the ledger row for a product.

        Linkage fields are overwritten as given, so passing ``None`` unlinks.
        """
        inventory = await self.get_inventory_by_product_id(data.product_id)
        values = data.model_dump()

        if inventory is None:
            inventory = ProductInventory(**values)
            self.db.add(inventory)
            logger.info(f"Created inventory record for {data.product_id} (stock={data.stock})")
        else:
            for key, value in values.items():
                setattr(inventory, key, value)
            logger.info(f"Updated inventory record for {data.product_id} (stock={data.stock})")

        await self.db.flush()
        if commit:
            await self.db.commit()
        return inventory

    async def adjust_stock(
        self,
        product_id: str,
        delta: int,
        action: StockAction,
        source: StockSource,
        reference_id: Optional[str] = None,
        reference_type: Optional[str] = None,
    ) -> Optional[ProductInventory]:
        """
        Apply a relative stock change and log it. Does not commit.

        Stock never goes below zero: an oversell found here is logged and
        clamped, since the sale has already been paid for.

        Returns:
            The updated record, or None when the product has no ledger row
        """
        inventory = await self.get_inventory_by_product_id(product_id)
        if inventory is None:
            logger.warning(f"No inventory record for product {product_id}; stock change {delta:+d} skipped")
            return None

        current = inventory.stock or 0
        new_stock = current + delta
        if new_stock < 0:
            logger.warning(
                f"Oversell on product {product_id}: stock {current}, change {delta:+d} "
                f"(reference {reference_id}); clamping to 0"
            )
            new_stock = 0

        inventory.stock = new_stock
        self._log_change(product_id, action, source, new_stock - current, new_stock, reference_id, reference_type)
        logger.info(f"Product {product_id}: stock {current} -> {new_stock} ({action.value})")
        return inventory

    async def set_stock(
        self,
        inventory: ProductInventory,
        new_stock: int,
        action: StockAction,
        source: StockSource,
        reference_id: Optional[str] = None,
        reference_type: Optional[str] = None,
    ) -> ProductInventory:
        """Overwrite the cached stock with an absolute value. Does not commit."""
        current = inventory.stock or 0
        new_stock = max(0, int(new_stock))
        inventory.stock = new_stock
        inventory.last_synced_at = datetime.now(timezone.utc)
        inventory.sync_error = None
        self._log_change(inventory.product_id, action, source, new_stock - current, new_stock,
                         reference_id, reference_type)
        return inventory

    def _log_change(self, product_id, action, source, change, stock_after, reference_id, reference_type):
        self.db.add(InventorySyncLog(
            id=generate_id(),
            product_id=product_id,
            action=action.value,
            source=source.value,
            stock_change=change,
            stock_after=stock_after,
            reference_id=reference_id,
            reference_type=reference_type,
        ))
