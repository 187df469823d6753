from typing import Any, Dict, List, Optional


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    status_code: int = 500
    code: str = "internal"

    def __init__(self, message: str = "", *, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class AuthenticationError(BaseServiceError):
    """Raised when the caller's bearer token cannot be validated."""
    status_code = 401
    code = "unauthenticated"


class MissingStripeCustomerError(BaseServiceError):
    """Raised when the caller has no Stripe customer id yet."""
    status_code = 400
    code = "failed-precondition"


class InvoiceValidationError(BaseServiceError):
    """Raised when an invoice request is malformed."""
    status_code = 400
    code = "validation/missing-items"


class InsufficientStockError(BaseServiceError):
    """Raised when one or more requested items fail the stock check."""
    status_code = 400
    code = "inventory/insufficient-stock"

    def __init__(self, details: List[Dict[str, Any]]):
        super().__init__("Insufficient Stock")
        self.details = details


class StripeServiceError(BaseServiceError):
    """Raised when the Stripe service call fails."""
    code = "invoices/stripe-failed"


class InvoiceCreationError(StripeServiceError):
    """Raised when no payable invoice could be created."""
    pass


class ShopifySyncError(BaseServiceError):
    """Raised when the Shopify sync service cannot be reached or errors."""
    code = "inventory/shopify-sync-failed"


class NotificationError(BaseServiceError):
    """Raised when the notification relay rejects a message."""
    code = "notifications/failed"


class OrderPersistenceError(BaseServiceError):
    """Raised when an order or its line items cannot be written."""
    code = "orders/persistence-failed"


class OrderNotFoundError(BaseServiceError):
    """Raised when an order does not exist."""
    status_code = 404
    code = "orders/not-found"


class OrderAccessDeniedError(BaseServiceError):
    """Raised when an order belongs to another user."""
    status_code = 403
    code = "orders/unauthorized"


class WebhookSignatureError(BaseServiceError):
    """Raised when a webhook signature is missing or invalid."""
    status_code = 401
    code = "webhooks/invalid-signature"
