# storefront/services/stripe/client.py

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from storefront.core.config import get_settings
from storefront.core.exceptions import StripeServiceError
from storefront.schemas.invoice import InvoiceItemRequest, ShippingAddress, StripeInvoice

logger = logging.getLogger(__name__)


class StripeServiceClient:
    """
    Client for the internal Stripe service.

    The Stripe service owns the Stripe SDK and API keys; this side only
    speaks its JSON envelope ``{"success": bool, "data": ..., "error": {...}}``.
    All amounts are integer cents.
    """

    def __init__(self, base_url: Optional[str] = None, service_token: Optional[str] = None,
                 timeout: Optional[float] = None):
        settings = get_settings()
        self.base_url = (base_url or settings.STRIPE_SERVICE_URL).rstrip('/')
        self.service_token = service_token if service_token is not None else settings.SERVICE_SECRET
        self.timeout = timeout or settings.SERVICE_TIMEOUT_SECONDS

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Service-Token": self.service_token,
        }

    @staticmethod
    def _build_invoice_payload(
        customer_id: str,
        user_id: str,
        items: List[InvoiceItemRequest],
        shipping_cost_cents: int = 0,
        notes: Optional[str] = None,
        shipping_address: Optional[ShippingAddress] = None,
        locale: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {
            "customer_id": customer_id,
            "user_id": user_id,
            "items": [
                {
                    "stripe_price_id": item.stripe_price_id,
                    "quantity": item.quantity,
                    "metadata": {
                        "product_id": item.metadata.product_id,
                        "product_name": item.metadata.product_name or "",
                        "shopify_variant_id": item.metadata.shopify_variant_id or "",
                    },
                }
                for item in items
            ],
            "shipping_cost_cents": shipping_cost_cents or 0,
            "notes": notes or "",
            "shipping_address": shipping_address.model_dump(exclude_none=True) if shipping_address else None,
        }
        if locale:
            payload["locale"] = locale
        return payload

    async def create_invoice(
        self,
        customer_id: str,
        user_id: str,
        items: List[InvoiceItemRequest],
        shipping_cost_cents: int = 0,
        notes: Optional[str] = None,
        shipping_address: Optional[ShippingAddress] = None,
        locale: Optional[str] = None,
    ) -> StripeInvoice:
        """
        Create, finalize and send a Stripe invoice for the given items.

        Args:
            customer_id: Stripe customer id of the buyer
            user_id: Internal user id (stored in invoice metadata)
            items: The literal request items, in request order
            shipping_cost_cents: Shipping charge added as its own line
            notes: Free-text footer for the invoice
            shipping_address: Used to update the Stripe customer
            locale: Preferred invoice language

        Returns:
            StripeInvoice: ids, URLs, amount due and product line items

        Raises:
            StripeServiceError: If the request fails or the service reports an error
        """
        url = f"{self.base_url}/invoices"
        payload = self._build_invoice_payload(
            customer_id, user_id, items, shipping_cost_cents, notes, shipping_address, locale
        )

        logger.info(f"Creating Stripe invoice for customer {customer_id} ({len(items)} items)")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, headers=self._get_headers(), json=payload)
        except httpx.RequestError as e:
            logger.error(f"Network error creating Stripe invoice: {str(e)}")
            raise StripeServiceError(f"Network error creating invoice: {str(e)}")

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400 or not body.get("success") or not body.get("data"):
            error = body.get("error") or {}
            message = error.get("message") or response.text or "Failed to create invoice in Stripe"
            logger.error(f"Stripe service error ({response.status_code}): {message}")
            raise StripeServiceError(message)

        try:
            invoice = StripeInvoice.model_validate(body["data"])
        except ValidationError as e:
            logger.error(f"Malformed invoice from Stripe service: {e}")
            raise StripeServiceError("Stripe service returned a malformed invoice") from e

        logger.info(f"Stripe invoice created: {invoice.invoice_id}")
        return invoice
