# tests/unit/services/test_inventory_service.py
import pytest
from sqlalchemy import select

from storefront.core.enums import StockAction, StockSource
from storefront.models.inventory import InventorySyncLog, ProductInventory
from storefront.schemas.inventory import InventoryUpsert
from storefront.services.inventory_service import InventoryService, is_shopify_linked


@pytest.fixture
def service(db_session):
    return InventoryService(db_session)


async def sync_log(db_session, product_id):
    result = await db_session.execute(
        select(InventorySyncLog).where(InventorySyncLog.product_id == product_id)
    )
    return list(result.scalars().all())


def test_is_shopify_linked_requires_all_ids_and_sync():
    linked = ProductInventory(product_id="P", shopify_variant_id="v", shopify_inventory_item_id="i",
                              shopify_location_id="l", sync_enabled=True)
    assert is_shopify_linked(linked) is True

    for field in ("shopify_variant_id", "shopify_inventory_item_id", "shopify_location_id"):
        partial = ProductInventory(product_id="P", shopify_variant_id="v", shopify_inventory_item_id="i",
                                   shopify_location_id="l", sync_enabled=True)
        setattr(partial, field, None)
        assert is_shopify_linked(partial) is False

    linked.sync_enabled = False
    assert is_shopify_linked(linked) is False
    assert is_shopify_linked(None) is False


@pytest.mark.asyncio
async def test_upsert_creates_then_updates(service):
    created = await service.upsert_inventory(InventoryUpsert(product_id="P1", stock=4))
    assert created.stock == 4
    assert created.is_shopify_linked is False

    updated = await service.upsert_inventory(InventoryUpsert(
        product_id="P1", stock=4, shopify_variant_id="v", shopify_inventory_item_id="i",
        shopify_location_id="l", sync_enabled=True,
    ))

    fetched = await service.get_inventory_by_product_id("P1")
    assert fetched is updated
    assert fetched.is_shopify_linked is True


@pytest.mark.asyncio
async def test_lookup_by_shopify_inventory_item_id(service, seed_inventory):
    await seed_inventory("P2", linked=True, shopify_inventory_item_id="4411")

    found = await service.get_inventory_by_shopify_inventory_item_id(4411)

    assert found.product_id == "P2"
    assert await service.get_inventory_by_shopify_inventory_item_id("nope") is None


@pytest.mark.asyncio
async def test_adjust_stock_logs_the_change(service, seed_inventory, db_session):
    await seed_inventory("P1", stock=10)

    record = await service.adjust_stock("P1", -3, StockAction.B2B_ORDER_PAID, StockSource.STRIPE_WEBHOOK,
                                        reference_id="in_1", reference_type="stripe_invoice")
    await db_session.commit()

    assert record.stock == 7
    [entry] = await sync_log(db_session, "P1")
    assert entry.action == "b2b_order_paid"
    assert entry.source == "stripe_webhook"
    assert entry.stock_change == -3
    assert entry.stock_after == 7
    assert entry.reference_id == "in_1"


@pytest.mark.asyncio
async def test_adjust_stock_clamps_oversell_at_zero(service, seed_inventory, db_session, caplog):
    await seed_inventory("P1", stock=2)

    record = await service.adjust_stock("P1", -5, StockAction.B2B_ORDER_PAID, StockSource.STRIPE_WEBHOOK)
    await db_session.commit()

    assert record.stock == 0
    assert "Oversell" in caplog.text
    [entry] = await sync_log(db_session, "P1")
    assert entry.stock_change == -2


@pytest.mark.asyncio
async def test_adjust_stock_unknown_product(service):
    assert await service.adjust_stock("GHOST", -1, StockAction.MANUAL, StockSource.CLI) is None


@pytest.mark.asyncio
async def test_set_stock_records_sync_time(service, seed_inventory, db_session):
    record = await seed_inventory("P2", stock=1, linked=True)

    await service.set_stock(record, 9, StockAction.SHOPIFY_WEBHOOK, StockSource.SHOPIFY_WEBHOOK)
    await db_session.commit()

    assert record.stock == 9
    assert record.last_synced_at is not None
    [entry] = await sync_log(db_session, "P2")
    assert entry.stock_change == 8
