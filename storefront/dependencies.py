from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import Settings, get_settings
from storefront.database import async_session
from storefront.services.inventory_service import InventoryService
from storefront.services.invoice_orchestrator import InvoiceOrchestrator
from storefront.services.notification_service import TelegramNotificationService
from storefront.services.order_service import OrderService
from storefront.services.shopify.sync_client import ShopifySyncClient
from storefront.services.stock_validator import StockValidator
from storefront.services.stripe.client import StripeServiceClient


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def get_stripe_client() -> StripeServiceClient:
    return StripeServiceClient()


def get_shopify_client() -> ShopifySyncClient:
    return ShopifySyncClient()


def get_notifications(settings: Settings = Depends(get_settings)) -> TelegramNotificationService:
    return TelegramNotificationService(settings)


def get_order_service(db: AsyncSession = Depends(get_db)) -> OrderService:
    return OrderService(db)


def get_invoice_orchestrator(
    db: AsyncSession = Depends(get_db),
    stripe: StripeServiceClient = Depends(get_stripe_client),
    shopify: ShopifySyncClient = Depends(get_shopify_client),
    notifications: TelegramNotificationService = Depends(get_notifications),
    settings: Settings = Depends(get_settings),
) -> InvoiceOrchestrator:
    validator = StockValidator(InventoryService(db), shopify)
    return InvoiceOrchestrator(
        validator=validator,
        stripe=stripe,
        orders=OrderService(db),
        shopify=shopify,
        notifications=notifications,
        settings=settings,
    )
