from enum import Enum


class OrderStatus(str, Enum):
    """Local order lifecycle"""
    PENDING = "pending"
    PAID = "paid"
    VOIDED = "voided"


class StripeInvoiceStatus(str, Enum):
    """Mirror of the Stripe invoice status"""
    DRAFT = "draft"
    OPEN = "open"
    PAID = "paid"
    VOID = "void"
    UNCOLLECTIBLE = "uncollectible"


class InvoiceFlowState(str, Enum):
    """Steps of the invoice creation flow"""
    VALIDATING = "validating"
    INVOICING = "invoicing"
    PERSISTING = "persisting"
    COMPENSATING = "compensating"
    NOTIFYING = "notifying"
    DONE = "done"
    FAILED = "failed"


class StockAction(str, Enum):
    """Reasons recorded in the inventory sync log"""
    B2B_ORDER_PAID = "b2b_order_paid"
    B2B_ORDER_VOID = "b2b_order_void"
    SHOPIFY_WEBHOOK = "shopify_webhook"
    MANUAL = "manual"


class StockSource(str, Enum):
    STRIPE_WEBHOOK = "stripe_webhook"
    SHOPIFY_WEBHOOK = "shopify_webhook"
    CLI = "cli"
