# storefront/models/order.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.database import Base
from storefront.core.enums import OrderStatus, StripeInvoiceStatus


class Order(Base):
    """
    A B2B order, created once per successful Stripe invoice.

    ``id`` is generated locally; ``stripe_invoice_id`` links it to the
    payable invoice on Stripe's side.
    """
    __tablename__ = "orders"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    stripe_invoice_id = Column(String, nullable=True, unique=True, index=True)

    # Order status
    status = Column(String, nullable=False, default=OrderStatus.PENDING.value)
    stripe_status = Column(String, nullable=True, default=StripeInvoiceStatus.DRAFT.value)

    # Financial details (major units)
    total_amount = Column(Numeric(12, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    shipping = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_cost_cents = Column(Integer, nullable=True)
    currency = Column(String, nullable=False, default="eur")

    # Invoice details
    invoice_url = Column(String, nullable=True)
    invoice_pdf = Column(String, nullable=True)
    invoice_number = Column(String, nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Shipping address snapshot
    shipping_address_street = Column(String, nullable=False, default="")
    shipping_address_city = Column(String, nullable=False, default="")
    shipping_address_zip_code = Column(String, nullable=False, default="")
    shipping_address_country = Column(String, nullable=False, default="")
    shipping_address_company = Column(String, nullable=True)
    shipping_address_contact = Column(String, nullable=True)

    # Billing address (stored as JSON for simplicity)
    billing_address = Column(JSON, nullable=True)

    notes = Column(Text, nullable=True)
    tracking_number = Column(String, nullable=True)

    # Timestamps
    order_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return (f"<Order(id='{self.id}', invoice='{self.stripe_invoice_id}', "
                f"status='{self.status}', stripe_status='{self.stripe_status}')>")


class OrderItem(Base):
    """
    One line of an order.

    Name, SKUs, brand and image are a historical snapshot taken at invoice time.
    ``is_shopify_linked`` is decided once, at creation, from the stock
    check and is never recomputed: it tells the payment webhook whether
    the line's stock lives on Shopify or in the local ledger.
    """
    __tablename__ = "order_items"

    id = Column(String, primary_key=True)
    order_id = Column(String, ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    # Not a foreign key: deleting a product must not touch its order history
    product_id = Column(String, nullable=True, index=True)
    product_name = Column(String, nullable=False)
    product_sku = Column(String, nullable=True)
    b2b_sku = Column(String, nullable=True)
    brand = Column(String, nullable=True)
    image_url = Column(String, nullable=True)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    tax_cents = Column(Integer, nullable=True)

    shopify_variant_id = Column(String, nullable=True)
    stripe_price_id = Column(String, nullable=True)
    stripe_invoice_item_id = Column(String, nullable=True)

    is_shopify_linked = Column(Boolean, nullable=False, default=False)
    # Set once the payment webhook has deducted local stock for this line
    stock_processed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="items")
