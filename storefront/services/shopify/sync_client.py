# storefront/services/shopify/sync_client.py

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from pydantic import ValidationError

from storefront.core.config import get_settings
from storefront.core.exceptions import ShopifySyncError
from storefront.schemas.inventory import StockCheckResult, StockDeductionResult

logger = logging.getLogger(__name__)

# Shopify inventory adjustment reason used for B2B invoices
DEDUCTION_REASON = "other"


class ShopifySyncClient:
    """
    Client for the Shopify sync service.

    Only two operations are consumed here: a live stock check (Shopify is
    the source of truth for linked products) and a batched deduction after
    an invoice has been created.
    """

    def __init__(self, base_url: Optional[str] = None, service_token: Optional[str] = None,
                 timeout: Optional[float] = None):
        settings = get_settings()
        self.base_url = (base_url or settings.SHOPIFY_SYNC_SERVICE_URL).rstrip('/')
        self.service_token = service_token if service_token is not None else settings.SERVICE_SECRET
        self.timeout = timeout or settings.SERVICE_TIMEOUT_SECONDS

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Service-Token": self.service_token,
        }

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, headers=self._get_headers(), json=payload)

                if response.status_code != 200:
                    logger.error(f"Shopify sync service error on {path}: {response.text}")
                    raise ShopifySyncError(f"Shopify sync call {path} failed with status {response.status_code}")

                return response.json()

        except httpx.RequestError as e:
            logger.error(f"Network error calling Shopify sync {path}: {str(e)}")
            raise ShopifySyncError(f"Network error calling {path}: {str(e)}")
        except ValueError as e:
            raise ShopifySyncError(f"Invalid JSON from {path}: {str(e)}")

    async def check_stock(self, items: Sequence[Tuple[str, int]]) -> List[StockCheckResult]:
        """
        Query Shopify for live availability.

        Args:
            items: (product_id, requested_quantity) pairs

        Returns:
            One StockCheckResult per product, in response order

        Raises:
            ShopifySyncError: If the service is unreachable or answers with an error
        """
        payload = {
            "products": [
                {"product_id": product_id, "requested_quantity": quantity}
                for product_id, quantity in items
            ]
        }
        data = await self._post("/inventory/check", payload)

        if not data.get("success", False):
            raise ShopifySyncError(data.get("error") or "Shopify stock check reported failure")

        try:
            return [StockCheckResult.model_validate(row) for row in data.get("items", [])]
        except ValidationError as e:
            raise ShopifySyncError(f"Malformed stock check response: {e}") from e

    async def deduct_stock(self, items: Sequence[Tuple[str, int]], reference_id: str) -> StockDeductionResult:
        """
        Deduct stock on Shopify for a batch of products.

        Every line carries ``reference_id`` (the Stripe invoice id) so the
        adjustment can be traced back to the sale. Shopify's own webhook
        updates the local stock cache afterwards.
        """
        payload = {
            "products": [
                {
                    "product_id": product_id,
                    "quantity": quantity,
                    "reason": DEDUCTION_REASON,
                    "reference_id": reference_id,
                }
                for product_id, quantity in items
            ]
        }
        data = await self._post("/sync/deduct", payload)
        try:
            return StockDeductionResult.model_validate(data)
        except ValidationError as e:
            raise ShopifySyncError(f"Malformed deduction response: {e}") from e
