from .base import BaseSchema, ApiSchema
from .invoice import (
    CreateInvoiceRequest,
    InvoiceItemRequest,
    InvoiceItemMetadata,
    InvoiceCreatedResponse,
    InvoiceListResponse,
    InvoiceRead,
    OrderItemRead,
    StripeInvoice,
    StripeInvoiceLine,
    StockShortfallDetail,
)
from .inventory import (
    InventoryUpsert,
    StockCheckResult,
    StockDeductionResult,
    ShopifyInventoryLevelWebhook,
)
