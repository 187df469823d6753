from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.base import BaseSchema


class InventoryUpsert(BaseSchema):
    product_id: str
    stock: int = Field(default=0, ge=0)
    shopify_product_id: Optional[str] = None
    shopify_variant_id: Optional[str] = None
    shopify_inventory_item_id: Optional[str] = None
    shopify_location_id: Optional[str] = None
    sync_enabled: bool = False


class StockCheckResult(BaseModel):
    """One row of the Shopify sync service's /inventory/check response."""
    model_config = ConfigDict(extra="ignore")

    product_id: str
    available: int = 0
    requested: int = 0
    sufficient: bool = False
    error: Optional[str] = None


class StockDeductionLine(BaseModel):
    model_config = ConfigDict(extra="ignore")

    product_id: str
    success: bool = False
    new_quantity: Optional[int] = None
    error: Optional[str] = None


class StockDeductionResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = False
    results: List[StockDeductionLine] = Field(default_factory=list)


class ShopifyInventoryLevelWebhook(BaseModel):
    """Payload of Shopify's inventory_levels/update webhook."""
    model_config = ConfigDict(extra="ignore")

    inventory_item_id: Union[int, str]
    location_id: Optional[Union[int, str]] = None
    available: Optional[int] = None
