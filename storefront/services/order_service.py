"""
Order persistence and queries.

An order and its line items are written in one transaction. Reads load
the order together with its items in a single joined query.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from storefront.core.exceptions import OrderAccessDeniedError, OrderNotFoundError, OrderPersistenceError
from storefront.models.order import Order, OrderItem

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def create_order(self, order_data: Dict[str, Any]) -> Order:
        """Stage an order row in the session."""
        order = Order(**order_data)
        self.db.add(order)
        return order

    def create_order_items(self, order_id: str, items_data: Sequence[Dict[str, Any]]) -> List[OrderItem]:
        """Stage line items for an order, keeping their given order."""
        items = []
        for position, data in enumerate(items_data):
            item = OrderItem(order_id=order_id, position=position, **data)
            self.db.add(item)
            items.append(item)
        return items

    async def create_order_with_items(
        self,
        order_data: Dict[str, Any],
        items_data: Sequence[Dict[str, Any]],
    ) -> Order:
        """
        Write the order header and all line items in one transaction.

        Raises:
            OrderPersistenceError: If the write fails; nothing is left behind
        """
        try:
            order = self.create_order(order_data)
            await self.db.flush()
            self.create_order_items(order.id, items_data)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            raise OrderPersistenceError(f"Failed to store order: {str(e)}") from e

        logger.info(f"Stored order {order.id} with {len(items_data)} items (invoice {order.stripe_invoice_id})")
        return order

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_orders_with_items_by_user_id(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Order]:
        """Orders backed by a Stripe invoice, newest first, items included."""
        page = (
            select(Order.id)
            .where(Order.user_id == user_id, Order.stripe_invoice_id.is_not(None))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .offset(offset)
        )
        query = (
            select(Order)
            .options(joinedload(Order.items))
            .where(Order.id.in_(page))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return list(result.unique().scalars().all())

    async def get_order_with_items(self, order_id: str) -> Optional[Order]:
        query = (
            select(Order)
            .options(joinedload(Order.items))
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.unique().scalars().first()

    async def get_order_by_invoice_id(self, stripe_invoice_id: str) -> Optional[Order]:
        query = (
            select(Order)
            .options(joinedload(Order.items))
            .where(Order.stripe_invoice_id == stripe_invoice_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.unique().scalars().first()

    async def get_order_for_user(self, order_id: str, user_id: str) -> Order:
        """
        Load an order for its owner.

        Raises:
            OrderNotFoundError: No such order
            OrderAccessDeniedError: The order belongs to someone else
        """
        order = await self.get_order_with_items(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")

        # Distinct 403 reveals that the order exists; kept as the frontend relies on it
        if order.user_id != user_id:
            logger.warning(f"User {user_id} tried to read order {order_id} owned by another user")
            raise OrderAccessDeniedError(f"Order {order_id} does not belong to this user")

        return order
