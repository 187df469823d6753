"""
Stock check that gates invoice creation.

Each requested item is classified by the ledger record of its product:

- Shopify-linked: Shopify is the source of truth, so live availability is
  queried through the Shopify sync service.
- Standalone: the local ``product_inventory.stock`` is the source of truth.

The result is all-or-nothing. If any item fails, the caller gets every
shortfall and no item is cleared for invoicing.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Union

from storefront.core.exceptions import ShopifySyncError
from storefront.schemas.invoice import InvoiceItemRequest
from storefront.services.inventory_service import InventoryService
from storefront.services.shopify.sync_client import ShopifySyncClient

logger = logging.getLogger(__name__)

NOT_IN_INVENTORY = "Product not found in inventory"
STOCK_CHECK_FAILED = "Shopify stock check failed"


@dataclass(frozen=True)
class LinkedItem:
    """An item whose stock lives on Shopify."""
    item: InvoiceItemRequest
    available: int

    @property
    def product_id(self) -> str:
        return self.item.product_id


@dataclass(frozen=True)
class StandaloneItem:
    """An item whose stock lives in the local ledger."""
    item: InvoiceItemRequest
    available: int

    @property
    def product_id(self) -> str:
        return self.item.product_id


ClassifiedItem = Union[LinkedItem, StandaloneItem]


@dataclass(frozen=True)
class StockShortfall:
    product_id: str
    available: int
    requested: int
    error: str

    def as_detail(self) -> dict:
        return {
            "product_id": self.product_id,
            "available": self.available,
            "requested": self.requested,
            "error": self.error,
        }


@dataclass
class StockValidationResult:
    # Request order is preserved; only populated when every item passed
    items: List[ClassifiedItem] = field(default_factory=list)
    errors: List[StockShortfall] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def linked_items(self) -> List[LinkedItem]:
        return [i for i in self.items if isinstance(i, LinkedItem)]

    @property
    def standalone_items(self) -> List[StandaloneItem]:
        return [i for i in self.items if isinstance(i, StandaloneItem)]


def _insufficient(requested: int, available: int) -> str:
    return f"Insufficient stock: need {requested}, have {available}"


class StockValidator:
    def __init__(self, inventory: InventoryService, shopify: ShopifySyncClient):
        self.inventory = inventory
        self.shopify = shopify

    async def validate_stock(self, items: List[InvoiceItemRequest]) -> StockValidationResult:
        """
        Check every item against its source of truth.

        Items are checked one by one, in request order. A failed Shopify
        query counts as a shortfall and is not retried.
        """
        passed: List[ClassifiedItem] = []
        errors: List[StockShortfall] = []

        for item in items:
            outcome = await self._check_item(item)
            if isinstance(outcome, StockShortfall):
                errors.append(outcome)
            else:
                passed.append(outcome)

        if errors:
            logger.info(f"Stock validation failed for {len(errors)} of {len(items)} items")
            return StockValidationResult(items=[], errors=errors)

        result = StockValidationResult(items=passed)
        logger.info(
            f"Stock validated: {len(result.linked_items)} Shopify items, "
            f"{len(result.standalone_items)} standalone items"
        )
        return result

    async def _check_item(self, item: InvoiceItemRequest) -> Union[ClassifiedItem, StockShortfall]:
        product_id = item.product_id
        requested = item.quantity

        inventory = await self.inventory.get_inventory_by_product_id(product_id)
        if inventory is None:
            return StockShortfall(product_id, 0, requested, NOT_IN_INVENTORY)

        if inventory.is_shopify_linked:
            return await self._check_shopify(item)

        available = inventory.stock or 0
        if available < requested:
            return StockShortfall(product_id, available, requested, _insufficient(requested, available))
        return StandaloneItem(item=item, available=available)

    async def _check_shopify(self, item: InvoiceItemRequest) -> Union[LinkedItem, StockShortfall]:
        product_id = item.product_id
        requested = item.quantity

        try:
            results = await self.shopify.check_stock([(product_id, requested)])
        except ShopifySyncError as e:
            logger.error(f"Shopify stock check failed for {product_id}: {e}")
            return StockShortfall(product_id, 0, requested, STOCK_CHECK_FAILED)

        check = next((r for r in results if r.product_id == product_id), None)
        if check is None:
            return StockShortfall(product_id, 0, requested, STOCK_CHECK_FAILED)

        if not check.sufficient or check.available < requested:
            return StockShortfall(product_id, check.available, requested,
                                  _insufficient(requested, check.available))
        return LinkedItem(item=item, available=check.available)
