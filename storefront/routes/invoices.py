"""Invoice routes: B2B invoice creation and the caller's order history."""
import logging

from fastapi import APIRouter, Depends, Query

from storefront.core.config import get_settings
from storefront.core.security import AuthenticatedUser, require_stripe_customer
from storefront.dependencies import get_invoice_orchestrator, get_order_service
from storefront.schemas.invoice import (
    CreateInvoiceRequest,
    InvoiceCreatedResponse,
    InvoiceListResponse,
    InvoiceRead,
)
from storefront.services.invoice_orchestrator import InvoiceOrchestrator
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/invoices", tags=["invoices"])

settings = get_settings()


@router.post("", response_model=InvoiceCreatedResponse, response_model_by_alias=True)
@router.post("/", response_model=InvoiceCreatedResponse, response_model_by_alias=True,
             include_in_schema=False)
async def create_invoice(
    request: CreateInvoiceRequest,
    user: AuthenticatedUser = Depends(require_stripe_customer),
    orchestrator: InvoiceOrchestrator = Depends(get_invoice_orchestrator),
):
    """
    Validate stock, create the Stripe invoice and record the order.

    Stock shortfalls answer 400 with the itemized list; a Stripe failure
    answers 500. Anything that fails after the invoice exists is logged and
    the invoice is still returned.
    """
    return await orchestrator.create_invoice(user, request)


@router.get("", response_model=InvoiceListResponse, response_model_by_alias=True)
@router.get("/", response_model=InvoiceListResponse, response_model_by_alias=True,
            include_in_schema=False)
async def list_invoices(
    limit: int = Query(settings.ORDER_LIST_LIMIT, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: AuthenticatedUser = Depends(require_stripe_customer),
    orders: OrderService = Depends(get_order_service),
):
    rows = await orders.get_orders_with_items_by_user_id(user.user_id, limit=limit, offset=offset)
    invoices = [InvoiceRead.from_order(order) for order in rows]
    return InvoiceListResponse(invoices=invoices, total=len(invoices))


@router.get("/{order_id}", response_model=InvoiceRead, response_model_by_alias=True)
async def get_invoice(
    order_id: str,
    user: AuthenticatedUser = Depends(require_stripe_customer),
    orders: OrderService = Depends(get_order_service),
):
    order = await orders.get_order_for_user(order_id, user.user_id)
    return InvoiceRead.from_order(order)
