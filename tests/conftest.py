# tests/conftest.py
import os

# Settings are read lazily from the environment; pin them before storefront is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SERVICE_SECRET"] = "test-service-secret"
os.environ["AUTH_SERVICE_URL"] = "http://auth.test"
os.environ["STRIPE_SERVICE_URL"] = "http://stripe.test"
os.environ["SHOPIFY_SYNC_SERVICE_URL"] = "http://shopify-sync.test"
os.environ["TELEGRAM_SERVICE_URL"] = "http://telegram.test"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["SHOPIFY_WEBHOOK_SECRET"] = "shpss_test"

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from storefront.core.config import clear_settings_cache, get_settings
from storefront.core.security import AuthenticatedUser, get_current_user
from storefront.database import Base
from storefront.dependencies import get_db, get_notifications, get_shopify_client, get_stripe_client
from storefront.main import app
from storefront.models.inventory import ProductInventory
from storefront.schemas.inventory import StockCheckResult, StockDeductionLine, StockDeductionResult
from storefront.schemas.invoice import StripeInvoice, StripeInvoiceLine
from storefront.services.notification_service import TelegramNotificationService

clear_settings_cache()

TEST_DATABASE_URL = "sqlite+aiosqlite://"

UNIT_PRICE_CENTS = 1000

@pytest.fixture
def settings():
    """Provide test settings"""
    return get_settings()

@pytest.fixture(scope="function")
async def test_engine():
    """In-memory SQLite engine with fresh tables for each test function."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()

@pytest.fixture
async def db_session(test_engine):
    """Provide a database session for tests"""
    async_session_local = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session_local() as session:
        yield session
        await session.rollback()

@pytest.fixture
def seed_inventory(db_session):
    """Insert ledger rows; ``linked=True`` fills in all three Shopify ids and enables sync."""
    async def _seed(product_id, stock=0, linked=False, **fields):
        if linked:
            fields.setdefault("shopify_variant_id", f"var-{product_id}")
            fields.setdefault("shopify_inventory_item_id", f"inv-{product_id}")
            fields.setdefault("shopify_location_id", "loc-1")
            fields.setdefault("sync_enabled", True)
        record = ProductInventory(product_id=product_id, stock=stock, **fields)
        db_session.add(record)
        await db_session.commit()
        return record

    return _seed

# ---------------------------------------------------------------------------
# Fakes for the outbound services
# ---------------------------------------------------------------------------

class FakeShopifySync:
    """In-memory stand-in for the Shopify sync service."""

    def __init__(self, available=None):
        self.available = dict(available or {})
        self.check_calls = []
        self.deduct_calls = []
        self.check_error = None
        self.deduct_error = None

    async def check_stock(self, items):
        self.check_calls.append(list(items))
        if self.check_error:
            raise self.check_error
        results = []
        for product_id, requested in items:
            available = self.available.get(product_id, 0)
            results.append(StockCheckResult(
                product_id=product_id,
                available=available,
                requested=requested,
                sufficient=available >= requested,
            ))
        return results

    async def deduct_stock(self, items, reference_id):
        self.deduct_calls.append({"items": list(items), "reference_id": reference_id})
        if self.deduct_error:
            raise self.deduct_error
        return StockDeductionResult(
            success=True,
            results=[
                StockDeductionLine(
                    product_id=product_id,
                    success=True,
                    new_quantity=self.available.get(product_id, 0) - quantity,
                )
                for product_id, quantity in items
            ],
        )

class FakeStripeService:
    """Builds an invoice from the request items at a flat unit price."""

    def __init__(self, invoice_id="in_test_001"):
        self.invoice_id = invoice_id
        self.calls = []
        self.error = None

    async def create_invoice(self, customer_id, user_id, items, shipping_cost_cents=0, notes=None,
                             shipping_address=None, locale=None):
        self.calls.append({
            "customer_id": customer_id,
            "user_id": user_id,
            "items": list(items),
            "shipping_cost_cents": shipping_cost_cents,
            "notes": notes,
            "shipping_address": shipping_address,
            "locale": locale,
        })
        if self.error:
            raise self.error

        lines = [
            StripeInvoiceLine(
                id=f"il_{index}",
                product_name=item.metadata.product_name or f"Product {item.product_id}",
                sku=f"SKU-{item.product_id}",
                brand="Acme",
                quantity=item.quantity,
                unit_price_cents=UNIT_PRICE_CENTS,
                total_price_cents=UNIT_PRICE_CENTS * item.quantity,
                tax_cents=0,
                currency="eur",
                metadata={"product_id": item.product_id},
            )
            for index, item in enumerate(items)
        ]
        return StripeInvoice(
            invoice_id=self.invoice_id,
            invoice_number="INV-0001",
            invoice_pdf=f"https://stripe.test/{self.invoice_id}.pdf",
            hosted_invoice_url=f"https://stripe.test/i/{self.invoice_id}",
            status="open",
            amount_due=sum(line.total_price_cents for line in lines) + (shipping_cost_cents or 0),
            currency="eur",
            product_line_items=lines,
        )

@pytest.fixture
def shopify_sync():
    return FakeShopifySync()

@pytest.fixture
def stripe_service():
    return FakeStripeService()

@pytest.fixture
def notifications(mocker):
    service = mocker.AsyncMock(spec=TelegramNotificationService)
    service.send_invoice_created.return_value = True
    service.send_invoice_paid.return_value = True
    return service

@pytest.fixture
def current_user():
    return AuthenticatedUser(user_id="user-1", email="buyer@example.com", stripe_customer_id="cus_123")

@pytest.fixture
async def test_client(db_session, shopify_sync, stripe_service, notifications, current_user):
    """HTTP client bound to the app with the database and outbound services overridden"""
    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_shopify_client] = lambda: shopify_sync
    app.dependency_overrides[get_stripe_client] = lambda: stripe_service
    app.dependency_overrides[get_notifications] = lambda: notifications
    app.dependency_overrides[get_current_user] = lambda: current_user

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()

@pytest.fixture
def invoice_payload():
    """Build a POST /invoices body from (product_id, quantity) pairs"""
    def _payload(*items, **extra):
        body = {
            "items": [
                {
                    "priceRef": f"price_{product_id}",
                    "quantity": quantity,
                    "metadata": {"productId": product_id, "productName": f"Product {product_id}"},
                }
                for product_id, quantity in items
            ],
        }
        body.update(extra)
        return body

    return _payload

