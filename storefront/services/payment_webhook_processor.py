"""
Purpose: Applies Stripe invoice lifecycle events to local orders and stock.

Functionality:
- invoice.finalized: mirrors the open status and refreshes invoice links.
- invoice.paid: marks the order paid and deducts local stock for the
  standalone lines. Lines flagged ``is_shopify_linked`` are skipped, Shopify
  was already deducted when the invoice was created and its own webhook
  keeps the local cache current.
- invoice.voided: marks the order voided and gives back the stock of any
  standalone line that had been deducted.

Every event id is recorded in ``webhook_events``; a delivery whose id was
already processed is acknowledged without touching anything. The
``stock_processed`` flag on each line guards the stock change itself, so a
replayed paid event can never deduct twice.
"""

import hashlib
import hmac
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.enums import OrderStatus, StockAction, StockSource, StripeInvoiceStatus
from storefront.core.exceptions import WebhookSignatureError
from storefront.core.utils import best_effort, generate_id
from storefront.models.order import Order
from storefront.models.webhook import WebhookEvent
from storefront.services.inventory_service import InventoryService
from storefront.services.notification_service import TelegramNotificationService
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)

STRIPE_SOURCE = "stripe"
INVOICE_REFERENCE = "stripe_invoice"

HANDLED_EVENTS = ("invoice.finalized", "invoice.paid", "invoice.voided")


def verify_stripe_signature(
    payload: bytes,
    header: Optional[str],
    secret: str,
    tolerance: int = 300,
    now: Optional[int] = None,
) -> None:
    """
    Check a ``Stripe-Signature`` header of the form ``t=<ts>,v1=<sig>[,v1=<sig>]``.

    Raises:
        WebhookSignatureError: Missing header, stale timestamp or no matching signature
    """
    if not secret:
        raise WebhookSignatureError("Stripe webhook secret is not configured")
    if not header:
        raise WebhookSignatureError("No signature provided")

    timestamp = None
    signatures = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)

    if not timestamp or not signatures:
        raise WebhookSignatureError("Malformed signature header")

    try:
        ts = int(timestamp)
    except ValueError:
        raise WebhookSignatureError("Malformed signature timestamp")

    current = int(time.time()) if now is None else now
    if tolerance and abs(current - ts) > tolerance:
        raise WebhookSignatureError("Signature timestamp outside the tolerance window")

    signed_payload = f"{timestamp}.".encode() + payload
    expected = hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise WebhookSignatureError("Invalid signature")


def _from_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class PaymentWebhookProcessor:
    def __init__(self, db: AsyncSession, notifications: Optional[TelegramNotificationService] = None):
        self.db = db
        self.orders = OrderService(db)
        self.inventory = InventoryService(db)
        self.notifications = notifications

    async def process_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply one Stripe event.

        Returns a small summary dict. Handler errors are recorded on the
        event row and re-raised so that Stripe retries the delivery.
        """
        event_id = event.get("id")
        event_type = event.get("type", "")
        result = {"event_id": event_id, "type": event_type, "status": "ignored"}

        if not event_id:
            logger.warning(f"Stripe event without id ignored (type {event_type})")
            return result

        record = await self._get_event(event_id)
        if record is not None and record.processed:
            logger.info(f"Stripe event {event_id} already processed; skipping")
            result["status"] = "duplicate"
            return result

        if record is None:
            record = WebhookEvent(
                id=generate_id(),
                event_id=event_id,
                event_type=event_type,
                source=STRIPE_SOURCE,
                payload=event,
            )
            self.db.add(record)

        invoice = (event.get("data") or {}).get("object") or {}
        paid_order = None

        try:
            if event_type in HANDLED_EVENTS:
                order = await self.orders.get_order_by_invoice_id(invoice.get("id"))
                if order is None:
                    logger.warning(f"No order for Stripe invoice {invoice.get('id')} ({event_type}); acknowledging")
                    result["status"] = "order_not_found"
                elif event_type == "invoice.finalized":
                    self._apply_finalized(order, invoice)
                    result["status"] = "processed"
                elif event_type == "invoice.paid":
                    await self._apply_paid(order, invoice)
                    paid_order = order
                    result["status"] = "processed"
                else:
                    await self._apply_voided(order, invoice)
                    result["status"] = "processed"
            else:
                logger.debug(f"Unhandled Stripe event type: {event_type}")

            record.processed = True
            record.success = True
            record.processed_at = datetime.now(timezone.utc)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error processing Stripe event {event_id} ({event_type}): {str(e)}", exc_info=True)
            await self._record_failure(event_id, event_type, event, str(e))
            raise

        if paid_order is not None and self.notifications is not None:
            await best_effort(
                "paid notification",
                self.notifications.send_invoice_paid,
                invoice_id=paid_order.stripe_invoice_id,
                amount_paid=invoice.get("amount_paid") or 0,
                currency=invoice.get("currency") or paid_order.currency,
                order_id=paid_order.id,
                customer_email=invoice.get("customer_email"),
            )

        return result

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def _apply_finalized(self, order: Order, invoice: Dict[str, Any]) -> None:
        order.stripe_status = StripeInvoiceStatus.OPEN.value
        order.invoice_url = invoice.get("hosted_invoice_url") or order.invoice_url
        order.invoice_pdf = invoice.get("invoice_pdf") or order.invoice_pdf
        order.invoice_number = invoice.get("number") or order.invoice_number
        order.due_date = _from_timestamp(invoice.get("due_date")) or order.due_date
        logger.info(f"Order {order.id}: invoice {order.stripe_invoice_id} finalized")

    async def _apply_paid(self, order: Order, invoice: Dict[str, Any]) -> None:
        transitions = invoice.get("status_transitions") or {}
        order.status = OrderStatus.PAID.value
        order.stripe_status = StripeInvoiceStatus.PAID.value
        order.paid_at = _from_timestamp(transitions.get("paid_at")) or datetime.now(timezone.utc)

        deducted = 0
        for item in order.items:
            if item.is_shopify_linked or item.stock_processed:
                continue
            await self.inventory.adjust_stock(
                item.product_id,
                -item.quantity,
                StockAction.B2B_ORDER_PAID,
                StockSource.STRIPE_WEBHOOK,
                reference_id=order.stripe_invoice_id,
                reference_type=INVOICE_REFERENCE,
            )
            item.stock_processed = True
            deducted += 1

        logger.info(
            f"Order {order.id} paid: deducted local stock for {deducted} standalone items "
            f"(invoice {order.stripe_invoice_id})"
        )

    async def _apply_voided(self, order: Order, invoice: Dict[str, Any]) -> None:
        order.status = OrderStatus.VOIDED.value
        order.stripe_status = StripeInvoiceStatus.VOID.value

        restored = 0
        for item in order.items:
            if item.is_shopify_linked or not item.stock_processed:
                continue
            await self.inventory.adjust_stock(
                item.product_id,
                item.quantity,
                StockAction.B2B_ORDER_VOID,
                StockSource.STRIPE_WEBHOOK,
                reference_id=order.stripe_invoice_id,
                reference_type=INVOICE_REFERENCE,
            )
            item.stock_processed = False
            restored += 1

        logger.info(f"Order {order.id} voided: restored stock for {restored} standalone items")

    # ------------------------------------------------------------------
    # Event log
    # ------------------------------------------------------------------
    async def _get_event(self, event_id: str) -> Optional[WebhookEvent]:
        result = await self.db.execute(select(WebhookEvent).where(WebhookEvent.event_id == event_id))
        return result.scalars().first()

    async def _record_failure(self, event_id: str, event_type: str, event: Dict[str, Any], error: str) -> None:
        record = await self._get_event(event_id)
        if record is None:
            record = WebhookEvent(
                id=generate_id(),
                event_id=event_id,
                event_type=event_type,
                source=STRIPE_SOURCE,
                payload=event,
            )
            self.db.add(record)
        record.processed = False
        record.success = False
        record.error_message = error[:1000]
        await self.db.commit()
