"""
Purpose: Coordinates B2B invoice creation across the stock sources, Stripe and the local database.

Flow (one request, strictly sequential):

    validating -> invoicing -> persisting -> compensating -> notifying -> done
         \\             \\
          failed         failed

- validating:   all-or-nothing stock check (Shopify live for linked items,
                local ledger for standalone items). Failure -> 400, no side effects.
- invoicing:    Stripe invoice for the literal request items. Failure -> 500,
                nothing written, no stock touched.
- persisting:   order + line items, each line tagged with its linked flag.
- compensating: one batched Shopify deduction for the linked items.
- notifying:    Telegram summary.

Once the Stripe invoice exists there is no way back: the invoice is never
voided from here, and persisting/compensating/notifying are best-effort.
A failure in any of them is logged and the caller still gets the invoice.
Standalone items get no stock change in this flow at all; the payment
webhook deducts them when the invoice is paid, using the linked flag
stored on each line.
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

from storefront.core.config import Settings, get_settings
from storefront.core.enums import InvoiceFlowState, OrderStatus, StripeInvoiceStatus
from storefront.core.exceptions import (
    InsufficientStockError,
    InvoiceCreationError,
    InvoiceValidationError,
    StripeServiceError,
)
from storefront.core.security import AuthenticatedUser
from storefront.core.utils import best_effort, cents_to_amount, generate_id
from storefront.schemas.invoice import (
    CreateInvoiceRequest,
    InvoiceCreatedResponse,
    StripeInvoice,
    StripeInvoiceLine,
)
from storefront.schemas.inventory import StockDeductionResult
from storefront.services.notification_service import TelegramNotificationService, summarize_order_items
from storefront.services.order_service import OrderService
from storefront.services.shopify.sync_client import ShopifySyncClient
from storefront.services.stock_validator import (
    ClassifiedItem,
    LinkedItem,
    StandaloneItem,
    StockValidationResult,
    StockValidator,
)
from storefront.services.stripe.client import StripeServiceClient

logger = logging.getLogger(__name__)


@dataclass
class InvoiceFlow:
    """State of a single invoice creation request."""
    user: AuthenticatedUser
    request: CreateInvoiceRequest
    state: InvoiceFlowState = InvoiceFlowState.VALIDATING
    history: List[InvoiceFlowState] = field(default_factory=lambda: [InvoiceFlowState.VALIDATING])
    validation: Optional[StockValidationResult] = None
    invoice: Optional[StripeInvoice] = None
    order_id: Optional[str] = None
    order_items: List[Dict[str, Any]] = field(default_factory=list)
    deduction: Optional[StockDeductionResult] = None
    notified: bool = False
    failure_reason: Optional[str] = None

    def advance(self, state: InvoiceFlowState) -> None:
        logger.debug(f"Invoice flow for user {self.user.user_id}: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def fail(self, reason: str) -> None:
        self.failure_reason = reason
        self.advance(InvoiceFlowState.FAILED)


class InvoiceOrchestrator:
    def __init__(
        self,
        validator: StockValidator,
        stripe: StripeServiceClient,
        orders: OrderService,
        shopify: ShopifySyncClient,
        notifications: TelegramNotificationService,
        settings: Optional[Settings] = None,
    ):
        self.validator = validator
        self.stripe = stripe
        self.orders = orders
        self.shopify = shopify
        self.notifications = notifications
        self.settings = settings or get_settings()

    async def create_invoice(self, user: AuthenticatedUser, request: CreateInvoiceRequest) -> InvoiceCreatedResponse:
        flow = await self.run(user, request)
        invoice = flow.invoice
        return InvoiceCreatedResponse(
            invoice_id=invoice.invoice_id,
            invoice_url=invoice.hosted_invoice_url,
            amount=invoice.amount_due,
            currency=invoice.currency,
            status=invoice.status,
            order_id=flow.order_id,
        )

    async def run(self, user: AuthenticatedUser, request: CreateInvoiceRequest) -> InvoiceFlow:
        """
        Drive one request through the flow.

        Raises:
            InvoiceValidationError: Empty item list
            InsufficientStockError: Any item failed the stock check
            InvoiceCreationError: Stripe did not create an invoice
        """
        flow = InvoiceFlow(user=user, request=request)

        if not request.items:
            flow.fail("no items")
            raise InvoiceValidationError("Invoice items are required")

        # Validating
        flow.validation = await self.validator.validate_stock(request.items)
        if not flow.validation.success:
            flow.fail("insufficient stock")
            raise InsufficientStockError([e.as_detail() for e in flow.validation.errors])

        # Invoicing
        flow.advance(InvoiceFlowState.INVOICING)
        try:
            flow.invoice = await self.stripe.create_invoice(
                customer_id=user.stripe_customer_id,
                user_id=user.user_id,
                items=request.items,
                shipping_cost_cents=request.shipping_cost,
                notes=request.notes,
                shipping_address=request.shipping_address,
                locale=request.locale,
            )
        except StripeServiceError as e:
            flow.fail(f"stripe: {e}")
            raise InvoiceCreationError(f"Failed to create Stripe invoice: {e}") from e

        # The Stripe invoice now exists and is never retracted from here on.
        flow.advance(InvoiceFlowState.PERSISTING)
        await self._persist(flow)

        flow.advance(InvoiceFlowState.COMPENSATING)
        await self._compensate(flow)

        flow.advance(InvoiceFlowState.NOTIFYING)
        await self._notify(flow)

        flow.advance(InvoiceFlowState.DONE)
        logger.info(f"Invoice created: {flow.invoice.invoice_id} for user {user.user_id} (order {flow.order_id})")
        return flow

    # ------------------------------------------------------------------
    # Persisting
    # ------------------------------------------------------------------
    async def _persist(self, flow: InvoiceFlow) -> None:
        stored = await best_effort("persist order", self._store_order, flow)
        if stored is None:
            logger.error(
                f"order persistence failed: invoice {flow.invoice.invoice_id} exists in Stripe "
                f"without a local order (user {flow.user.user_id})"
            )
            return

        flow.order_id = stored.id

    async def _store_order(self, flow: InvoiceFlow):
        order_data = self._build_order(generate_id(), flow)
        flow.order_items = self._build_order_items(flow.validation.items, flow.invoice.product_line_items)
        return await self.orders.create_order_with_items(order_data, flow.order_items)

    def _build_order(self, order_id: str, flow: InvoiceFlow) -> Dict[str, Any]:
        invoice = flow.invoice
        request = flow.request
        lines = invoice.product_line_items

        if lines:
            subtotal_cents = sum(line.total_price_cents for line in lines)
            tax_cents = sum(line.tax_cents for line in lines)
        else:
            subtotal_cents = max(invoice.amount_due - request.shipping_cost - request.tax_amount, 0)
            tax_cents = request.tax_amount

        address = request.shipping_address
        billing = request.metadata.billing_address if request.metadata else None

        return {
            "id": order_id,
            "user_id": flow.user.user_id,
            "stripe_invoice_id": invoice.invoice_id,
            "status": OrderStatus.PENDING.value,
            "stripe_status": StripeInvoiceStatus.DRAFT.value,
            "total_amount": cents_to_amount(invoice.amount_due),
            "subtotal": cents_to_amount(subtotal_cents),
            "tax": cents_to_amount(tax_cents),
            "shipping": cents_to_amount(request.shipping_cost),
            "shipping_cost_cents": request.shipping_cost,
            "currency": invoice.currency or self.settings.DEFAULT_CURRENCY,
            "invoice_url": invoice.hosted_invoice_url,
            "invoice_pdf": invoice.invoice_pdf,
            "invoice_number": invoice.invoice_number,
            "shipping_address_street": (address.street if address else None) or "",
            "shipping_address_city": (address.city if address else None) or "",
            "shipping_address_zip_code": (address.zip_code if address else None) or "",
            "shipping_address_country": (address.country if address else None) or "",
            "shipping_address_company": address.company if address else None,
            "shipping_address_contact": address.contact_person if address else None,
            "billing_address": billing,
            "notes": request.notes or None,
        }

    @staticmethod
    def _match_lines(classified: List[ClassifiedItem], lines: List[StripeInvoiceLine]) -> List[Optional[StripeInvoiceLine]]:
        """
        Pair each requested item with its Stripe line.

        Lines are matched on the product id in their metadata, falling back
        to position for lines without one.
        """
        by_product: Dict[str, Deque[StripeInvoiceLine]] = defaultdict(deque)
        unkeyed: Deque[StripeInvoiceLine] = deque()
        for line in lines:
            if line.product_id:
                by_product[line.product_id].append(line)
            else:
                unkeyed.append(line)

        matched: List[Optional[StripeInvoiceLine]] = []
        for entry in classified:
            queue = by_product.get(entry.product_id)
            if queue:
                matched.append(queue.popleft())
            elif unkeyed:
                matched.append(unkeyed.popleft())
            else:
                matched.append(None)
        return matched

    def _build_order_items(self, classified: List[ClassifiedItem], lines: List[StripeInvoiceLine]) -> List[Dict[str, Any]]:
        items = []
        for entry, line in zip(classified, self._match_lines(classified, lines)):
            request_item = entry.item
            quantity = (line.quantity if line else None) or request_item.quantity
            unit_cents = line.unit_price_cents if line else 0
            total_cents = line.total_price_cents if line else unit_cents * quantity

            if isinstance(entry, LinkedItem):
                linked = True
            elif isinstance(entry, StandaloneItem):
                linked = False
            else:
                raise TypeError(f"Unclassified item for product {entry.product_id}")

            items.append({
                "id": generate_id(),
                "product_id": request_item.product_id,
                "product_name": (line.product_name if line else None)
                                or request_item.metadata.product_name or "Product",
                "product_sku": line.sku if line else None,
                "b2b_sku": line.storefront_sku if line else None,
                "brand": line.brand if line else None,
                "image_url": line.image_url if line else None,
                "quantity": quantity,
                "unit_price": cents_to_amount(unit_cents),
                "total_price": cents_to_amount(total_cents),
                "tax_cents": line.tax_cents if line else None,
                "shopify_variant_id": request_item.metadata.shopify_variant_id,
                "stripe_price_id": request_item.stripe_price_id,
                "stripe_invoice_item_id": line.id if line else None,
                "is_shopify_linked": linked,
            })
        return items

    # ------------------------------------------------------------------
    # Compensating
    # ------------------------------------------------------------------
    async def _compensate(self, flow: InvoiceFlow) -> None:
        linked = flow.validation.linked_items
        standalone = flow.validation.standalone_items

        if standalone:
            logger.info(
                f"{len(standalone)} standalone items on invoice {flow.invoice.invoice_id} - "
                f"stock will be deducted by the payment webhook"
            )

        if not linked:
            return

        invoice_id = flow.invoice.invoice_id
        result = await best_effort(
            "shopify deduction",
            self.shopify.deduct_stock,
            [(entry.product_id, entry.item.quantity) for entry in linked],
            reference_id=invoice_id,
        )
        flow.deduction = result

        if result is None:
            logger.warning(f"Failed to deduct Shopify stock for invoice {invoice_id}; reconcile manually")
        elif result.success:
            logger.info(f"Shopify inventory deducted for {len(linked)} items on invoice {invoice_id}")
        else:
            failed = [r.product_id for r in result.results if not r.success]
            logger.warning(f"Some Shopify stock deductions failed for invoice {invoice_id}: {failed}")

    # ------------------------------------------------------------------
    # Notifying
    # ------------------------------------------------------------------
    async def _notify(self, flow: InvoiceFlow) -> None:
        sent = await best_effort("telegram notification", self._send_created, flow)
        flow.notified = bool(sent)

    async def _send_created(self, flow: InvoiceFlow) -> bool:
        request = flow.request
        return await self.notifications.send_invoice_created(
            invoice=flow.invoice,
            user_id=flow.user.user_id,
            customer_email=flow.user.email,
            order_id=flow.order_id,
            order_items=summarize_order_items(flow.order_items),
            shipping_address=request.shipping_address,
            user_info=request.metadata.user_info if request.metadata else None,
        )
