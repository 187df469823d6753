# storefront/models/inventory.py
"""
Local inventory ledger.

One row per product. For standalone products ``stock`` is the source of
truth; for Shopify-linked products it is only a cache that Shopify's
inventory webhook keeps current.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text
from sqlalchemy.sql import func

from storefront.database import Base


class ProductInventory(Base):
    __tablename__ = "product_inventory"

    product_id = Column(String, primary_key=True)
    stock = Column(Integer, nullable=False, default=0, server_default="0")

    # Shopify linkage
    shopify_product_id = Column(String, nullable=True)
    shopify_variant_id = Column(String, nullable=True, index=True)
    shopify_inventory_item_id = Column(String, nullable=True, index=True)
    shopify_location_id = Column(String, nullable=True)
    sync_enabled = Column(Boolean, nullable=False, default=False, server_default="0")
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    sync_error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_shopify_linked(self) -> bool:
        """
        Derived on every read, never stored: all three Shopify identifiers
        present and sync switched on.
        """
        return bool(
            self.shopify_variant_id
            and self.shopify_inventory_item_id
            and self.shopify_location_id
            and self.sync_enabled
        )

    def __repr__(self):
        return (f"<ProductInventory(product_id='{self.product_id}', stock={self.stock}, "
                f"linked={self.is_shopify_linked})>")


class InventorySyncLog(Base):
    """
    Audit trail for every local stock change.
    """
    __tablename__ = "inventory_sync_log"

    id = Column(String, primary_key=True)
    product_id = Column(String, nullable=False, index=True)
    action = Column(String, nullable=False)   # b2b_order_paid, b2b_order_void, shopify_webhook, manual
    source = Column(String, nullable=False)   # stripe_webhook, shopify_webhook, cli
    stock_change = Column(Integer, nullable=False)
    stock_after = Column(Integer, nullable=False)
    reference_id = Column(String, nullable=True, index=True)
    reference_type = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
