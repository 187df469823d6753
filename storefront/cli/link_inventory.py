# storefront/cli/link_inventory.py
import asyncio
import click

from storefront.core.enums import StockAction, StockSource
from storefront.database import async_session
from storefront.schemas.inventory import InventoryUpsert
from storefront.services.inventory_service import InventoryService


async def _link(product_id, stock, shopify_product_id, variant_id, inventory_item_id, location_id, sync_enabled):
    async with async_session() as session:
        service = InventoryService(session)
        existing = await service.get_inventory_by_product_id(product_id)
        current = existing.stock if existing is not None else 0

        record = await service.upsert_inventory(
            InventoryUpsert(
                product_id=product_id,
                stock=current,
                shopify_product_id=shopify_product_id,
                shopify_variant_id=variant_id,
                shopify_inventory_item_id=inventory_item_id,
                shopify_location_id=location_id,
                sync_enabled=sync_enabled,
            ),
            commit=False,
        )

        if stock is not None and stock != current:
            await service.adjust_stock(product_id, stock - current, StockAction.MANUAL, StockSource.CLI,
                                       reference_type="cli")

        await session.commit()
        return record


@click.command("link-inventory")
@click.option("--product-id", required=True, help="Catalog product id")
@click.option("--stock", type=click.IntRange(min=0), default=None, help="Set local stock (standalone products)")
@click.option("--shopify-product-id", default=None)
@click.option("--variant-id", default=None, help="Shopify variant id")
@click.option("--inventory-item-id", default=None, help="Shopify inventory item id")
@click.option("--location-id", default=None, help="Shopify location id")
@click.option("--sync/--no-sync", "sync_enabled", default=True, help="Enable Shopify sync for this product")
def link_inventory(product_id, stock, shopify_product_id, variant_id, inventory_item_id, location_id, sync_enabled):
    """Create or update the inventory record of a product, including its Shopify linkage.

    Omitting the Shopify ids unlinks the product, making it standalone.
    """
    record = asyncio.run(_link(
        product_id, stock, shopify_product_id, variant_id, inventory_item_id, location_id, sync_enabled
    ))

    kind = "Shopify-linked" if record.is_shopify_linked else "standalone"
    click.echo(f"{record.product_id}: {kind}, stock={record.stock}")


if __name__ == "__main__":
    link_inventory()
