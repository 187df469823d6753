"""Telegram relay notifications for invoice events."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from storefront.core.config import Settings
from storefront.schemas.invoice import ShippingAddress, StripeInvoice

logger = logging.getLogger(__name__)

class TelegramNotificationService:
    """Fire-and-forget client for the Telegram notification relay."""

    def __init__(self, settings: Settings):
        self._settings = settings

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def send_invoice_created(
        self,
        *,
        invoice: StripeInvoice,
        user_id: str,
        customer_email: Optional[str] = None,
        order_id: Optional[str] = None,
        order_items: Optional[Sequence[Dict[str, Any]]] = None,
        shipping_address: Optional[ShippingAddress] = None,
        user_info: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Announce a newly created invoice.

        Args:
            invoice: The Stripe invoice that was just created.
            user_id: Internal id of the buyer.
            order_id: Local order id, ``None`` if the order row was not written.
            order_items: ``product_name``/``quantity``/``unit_price`` summaries.
        """
        if not self._ready():
            logger.warning("Telegram relay not configured; invoice %s notification skipped", invoice.invoice_id)
            return False

        address = shipping_address.model_dump(exclude_none=True) if shipping_address else {}
        payload = {
            "id": invoice.invoice_id,
            "number": invoice.invoice_number,
            "amount_due": invoice.amount_due,
            "currency": invoice.currency,
            "customer_email": customer_email,
            "lines": {
                "data": [
                    {
                        "amount": line.total_price_cents,
                        "quantity": line.quantity,
                        "description": line.product_name or "Product",
                    }
                    for line in invoice.product_line_items
                ]
            },
            "metadata": {
                "order_metadata": json.dumps({
                    "user_id": user_id,
                    "order_id": order_id,
                    "invoice_url": invoice.hosted_invoice_url,
                    "status": invoice.status,
                    "user_info": user_info,
                    "order_items": list(order_items or []),
                    "shipping_address": {
                        "company": address.get("company"),
                        "contact_person": address.get("contact_person"),
                        "street": address.get("street"),
                        "zip_code": address.get("zip_code"),
                        "city": address.get("city"),
                    },
                }, default=str),
            },
        }
        return await self._dispatch("/notifications/invoice/created", payload)

    async def send_invoice_paid(
        self,
        *,
        invoice_id: str,
        amount_paid: int,
        currency: str,
        order_id: Optional[str] = None,
        customer_email: Optional[str] = None,
    ) -> bool:
        """Announce that a previously created invoice has been paid."""
        if not self._ready():
            logger.warning("Telegram relay not configured; paid notification for %s skipped", invoice_id)
            return False

        payload = {
            "id": invoice_id,
            "amount_paid": amount_paid,
            "currency": currency,
            "customer_email": customer_email,
            "metadata": {"order_id": order_id},
        }
        return await self._dispatch("/notifications/invoice/paid", payload)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _ready(self) -> bool:
        return bool(self._settings.TELEGRAM_SERVICE_URL)

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Service-Token": self._settings.SERVICE_SECRET,
        }

    async def _dispatch(self, path: str, payload: Dict[str, Any]) -> bool:
        url = f"{self._settings.TELEGRAM_SERVICE_URL.rstrip('/')}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._settings.SERVICE_TIMEOUT_SECONDS) as client:
                response = await client.post(url, headers=self._headers(), json=payload)
            if response.status_code >= 400:
                logger.warning("Telegram relay rejected %s (%s): %s", path, response.status_code, response.text)
                return False
            logger.info("Telegram notification sent: %s for %s", path, payload.get("id"))
            return True
        except Exception as exc:
            logger.error("Failed to send Telegram notification %s: %s", path, exc, exc_info=True)
            return False


def summarize_order_items(items: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Compact line summaries for notification payloads."""
    return [
        {
            "product_name": item["product_name"],
            "quantity": item["quantity"],
            "unit_price": str(item["unit_price"]),
        }
        for item in items
    ]
