# tests/unit/services/test_order_service.py
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from storefront.core.exceptions import OrderAccessDeniedError, OrderNotFoundError, OrderPersistenceError
from storefront.core.utils import generate_id
from storefront.models.inventory import ProductInventory
from storefront.services.order_service import OrderService


def order_data(user_id="user-1", invoice_id=None, **overrides):
    data = {
        "id": generate_id(),
        "user_id": user_id,
        "stripe_invoice_id": invoice_id or f"in_{generate_id()[:8]}",
        "total_amount": Decimal("25.00"),
        "subtotal": Decimal("20.00"),
        "tax": Decimal("0.00"),
        "shipping": Decimal("5.00"),
        "currency": "eur",
    }
    data.update(overrides)
    return data


def item_data(product_id, linked=False, quantity=1):
    return {
        "id": generate_id(),
        "product_id": product_id,
        "product_name": f"Product {product_id}",
        "quantity": quantity,
        "unit_price": Decimal("10.00"),
        "total_price": Decimal("10.00") * quantity,
        "is_shopify_linked": linked,
    }


@pytest.fixture
def service(db_session):
    return OrderService(db_session)


"""
1. Writes
"""

@pytest.mark.asyncio
async def test_create_order_with_items(service):
    order = await service.create_order_with_items(order_data(), [item_data("P1"), item_data("P2", linked=True)])

    stored = await service.get_order_with_items(order.id)
    assert stored is not None
    assert [i.product_id for i in stored.items] == ["P1", "P2"]
    assert [i.position for i in stored.items] == [0, 1]
    assert [i.is_shopify_linked for i in stored.items] == [False, True]
    assert all(i.stock_processed is False for i in stored.items)


@pytest.mark.asyncio
async def test_items_keep_request_order(service):
    items = [item_data(p) for p in ("Z", "A", "M")]

    order = await service.create_order_with_items(order_data(), items)

    stored = await service.get_order_with_items(order.id)
    assert [i.product_id for i in stored.items] == ["Z", "A", "M"]


@pytest.mark.asyncio
async def test_failed_write_rolls_back_everything(service, db_session, mocker):
    mocker.patch.object(db_session, "commit", side_effect=SQLAlchemyError("disk full"))
    data = order_data()

    with pytest.raises(OrderPersistenceError):
        await service.create_order_with_items(data, [item_data("P1")])

    mocker.stopall()
    assert await service.get_order_with_items(data["id"]) is None


@pytest.mark.asyncio
async def test_duplicate_invoice_id_is_a_persistence_error(service):
    await service.create_order_with_items(order_data(invoice_id="in_dup"), [item_data("P1")])

    with pytest.raises(OrderPersistenceError):
        await service.create_order_with_items(order_data(invoice_id="in_dup"), [item_data("P1")])


@pytest.mark.asyncio
async def test_linked_flag_survives_relinking(service, db_session, seed_inventory):
    record = await seed_inventory("P2", linked=True)
    order = await service.create_order_with_items(order_data(), [item_data("P2", linked=True)])

    # Unlink the product after the sale
    record.shopify_location_id = None
    record.sync_enabled = False
    await db_session.commit()

    stored = await service.get_order_with_items(order.id)
    inventory = await db_session.get(ProductInventory, "P2", populate_existing=True)
    assert inventory.is_shopify_linked is False
    assert stored.items[0].is_shopify_linked is True


"""
2. Reads
"""

@pytest.mark.asyncio
async def test_list_orders_for_user_only(service):
    mine = await service.create_order_with_items(order_data("user-1"), [item_data("P1")])
    await service.create_order_with_items(order_data("user-2"), [item_data("P1")])

    orders = await service.get_orders_with_items_by_user_id("user-1")

    assert [o.id for o in orders] == [mine.id]
    assert len(orders[0].items) == 1


@pytest.mark.asyncio
async def test_list_orders_excludes_orders_without_invoice(service):
    await service.create_order_with_items(order_data(stripe_invoice_id=None), [item_data("P1")])

    assert await service.get_orders_with_items_by_user_id("user-1") == []


@pytest.mark.asyncio
async def test_list_orders_paginates_orders_not_rows(service):
    for _ in range(3):
        await service.create_order_with_items(order_data(), [item_data("P1"), item_data("P2")])

    first = await service.get_orders_with_items_by_user_id("user-1", limit=2, offset=0)
    rest = await service.get_orders_with_items_by_user_id("user-1", limit=2, offset=2)

    assert len(first) == 2
    assert len(rest) == 1
    assert all(len(o.items) == 2 for o in first + rest)
    assert not {o.id for o in first} & {o.id for o in rest}


@pytest.mark.asyncio
async def test_get_order_by_invoice_id(service):
    order = await service.create_order_with_items(order_data(invoice_id="in_lookup"), [item_data("P1")])

    found = await service.get_order_by_invoice_id("in_lookup")

    assert found.id == order.id
    assert await service.get_order_by_invoice_id("in_other") is None


@pytest.mark.asyncio
async def test_get_order_for_user_checks_owner(service):
    order = await service.create_order_with_items(order_data("user-1"), [item_data("P1")])

    assert (await service.get_order_for_user(order.id, "user-1")).id == order.id

    with pytest.raises(OrderAccessDeniedError):
        await service.get_order_for_user(order.id, "user-2")

    with pytest.raises(OrderNotFoundError):
        await service.get_order_for_user("missing", "user-1")
