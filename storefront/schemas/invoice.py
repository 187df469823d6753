"""
Invoice / order schemas for the /invoices API and the Stripe service payloads.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from storefront.schemas.base import ApiSchema


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class InvoiceItemMetadata(ApiSchema):
    product_id: str = Field(min_length=1)
    product_name: Optional[str] = None
    shopify_variant_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "externalVariantId", "shopifyVariantId", "shopify_variant_id"
        ),
    )


class InvoiceItemRequest(ApiSchema):
    stripe_price_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("priceRef", "stripePriceId", "stripe_price_id"),
        serialization_alias="priceRef",
    )
    quantity: int = Field(gt=0)
    metadata: InvoiceItemMetadata

    @property
    def product_id(self) -> str:
        return self.metadata.product_id


class ShippingAddress(ApiSchema):
    model_config = ConfigDict(extra="allow")

    street: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    company: Optional[str] = None
    contact_person: Optional[str] = None


class InvoiceRequestMetadata(ApiSchema):
    notes: Optional[str] = None
    shipping_address: Optional[ShippingAddress] = None
    billing_address: Optional[Dict[str, Any]] = None
    user_info: Optional[Dict[str, Any]] = None


class CreateInvoiceRequest(ApiSchema):
    items: List[InvoiceItemRequest] = Field(default_factory=list)
    # Minor units (cents)
    shipping_cost: int = Field(default=0, ge=0)
    tax_amount: int = Field(default=0, ge=0)
    locale: Optional[str] = None
    metadata: Optional[InvoiceRequestMetadata] = None

    @property
    def notes(self) -> Optional[str]:
        return self.metadata.notes if self.metadata else None

    @property
    def shipping_address(self) -> Optional[ShippingAddress]:
        return self.metadata.shipping_address if self.metadata else None


# ---------------------------------------------------------------------------
# Stripe service payloads (snake_case on the wire)
# ---------------------------------------------------------------------------

class StripeInvoiceLine(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    product_name: Optional[str] = None
    sku: Optional[str] = None
    b2b_sku: Optional[str] = None
    brand: Optional[str] = None
    quantity: int = 1
    unit_price_cents: int = 0
    total_price_cents: int = 0
    tax_cents: int = 0
    image_url: Optional[str] = None
    currency: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def product_id(self) -> Optional[str]:
        return self.metadata.get("product_id") or self.metadata.get("productId") or None

    @property
    def storefront_sku(self) -> Optional[str]:
        return self.b2b_sku or self.metadata.get("b2b_sku") or None


class StripeInvoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    invoice_id: str
    invoice_number: Optional[str] = None
    invoice_pdf: Optional[str] = None
    hosted_invoice_url: Optional[str] = None
    status: str = "draft"
    amount_due: int
    currency: str = "eur"
    product_line_items: List[StripeInvoiceLine] = Field(default_factory=list)
    shipping_line_item: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class StockShortfallDetail(ApiSchema):
    product_id: str
    available: int
    requested: int
    error: str


class InsufficientStockResponse(ApiSchema):
    error: str = "Insufficient Stock"
    code: str = "inventory/insufficient-stock"
    details: List[StockShortfallDetail]


class InvoiceCreatedResponse(ApiSchema):
    invoice_id: str
    invoice_url: Optional[str] = None
    # Minor units, as returned by Stripe
    amount: int
    currency: str
    status: str
    order_id: Optional[str] = None


class OrderItemRead(ApiSchema):
    id: str
    product_id: Optional[str] = None
    product_name: str
    product_sku: Optional[str] = None
    b2b_sku: Optional[str] = None
    brand: Optional[str] = None
    image_url: Optional[str] = None
    quantity: int
    unit_price: float
    total_price: float
    stripe_invoice_item_id: Optional[str] = None
    stripe_price_id: Optional[str] = None
    shopify_variant_id: Optional[str] = None
    linked: bool = Field(
        validation_alias=AliasChoices("linked", "is_shopify_linked"),
        serialization_alias="linked",
    )


class ShippingAddressRead(ApiSchema):
    street: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    company: Optional[str] = None
    contact_person: Optional[str] = None


class InvoiceRead(ApiSchema):
    id: Optional[str] = None          # Stripe invoice id
    order_id: str
    invoice_number: Optional[str] = None
    total_amount: float
    subtotal: float
    tax: float
    shipping: float
    currency: str
    status: Optional[str] = None      # Stripe status
    order_status: str
    invoice_url: Optional[str] = None
    invoice_pdf: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    tracking_number: Optional[str] = None
    shipping_address: ShippingAddressRead
    items: List[OrderItemRead] = Field(default_factory=list)

    @classmethod
    def from_order(cls, order) -> "InvoiceRead":
        return cls(
            id=order.stripe_invoice_id,
            order_id=order.id,
            invoice_number=order.invoice_number,
            total_amount=order.total_amount,
            subtotal=order.subtotal,
            tax=order.tax,
            shipping=order.shipping,
            currency=order.currency,
            status=order.stripe_status,
            order_status=order.status,
            invoice_url=order.invoice_url,
            invoice_pdf=order.invoice_pdf,
            notes=order.notes,
            created_at=order.order_date,
            paid_at=order.paid_at,
            due_date=order.due_date,
            tracking_number=order.tracking_number,
            shipping_address=ShippingAddressRead(
                street=order.shipping_address_street,
                city=order.shipping_address_city,
                zip_code=order.shipping_address_zip_code,
                country=order.shipping_address_country,
                company=order.shipping_address_company,
                contact_person=order.shipping_address_contact,
            ),
            items=[OrderItemRead.model_validate(item) for item in order.items],
        )


class InvoiceListResponse(ApiSchema):
    invoices: List[InvoiceRead]
    total: int
