from .inventory import ProductInventory, InventorySyncLog
from .order import Order, OrderItem
from .webhook import WebhookEvent

__all__ = [
    "ProductInventory",
    "InventorySyncLog",
    "Order",
    "OrderItem",
    "WebhookEvent",
]
