# tests/unit/services/test_service_clients.py
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from storefront.core.exceptions import AuthenticationError, ShopifySyncError, StripeServiceError
from storefront.core.security import validate_token
from storefront.schemas.invoice import CreateInvoiceRequest
from storefront.services.notification_service import TelegramNotificationService
from storefront.services.shopify.sync_client import ShopifySyncClient
from storefront.services.stripe.client import StripeServiceClient


def mock_response(status_code=200, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    response.text = text or json.dumps(body or {})
    return response


@pytest.fixture
def request_items(invoice_payload):
    return CreateInvoiceRequest.model_validate(invoice_payload(("P1", 2), ("P2", 1))).items


"""
1. Stripe service client
"""

STRIPE_INVOICE = {
    "invoice_id": "in_1",
    "invoice_number": "INV-1",
    "invoice_pdf": "https://stripe.test/in_1.pdf",
    "hosted_invoice_url": "https://stripe.test/i/in_1",
    "status": "open",
    "amount_due": 3000,
    "currency": "eur",
    "product_line_items": [
        {"id": "il_1", "product_name": "Product P1", "quantity": 2, "unit_price_cents": 1000,
         "total_price_cents": 2000, "metadata": {"product_id": "P1"}},
    ],
}


@pytest.mark.asyncio
async def test_stripe_create_invoice_success(mocker, request_items):
    mock_post = AsyncMock(return_value=mock_response(200, {"success": True, "data": STRIPE_INVOICE}))
    mocker.patch('httpx.AsyncClient.post', mock_post)

    client = StripeServiceClient()
    invoice = await client.create_invoice("cus_1", "user-1", request_items, shipping_cost_cents=500,
                                          notes="hello", locale="de")

    assert invoice.invoice_id == "in_1"
    assert invoice.amount_due == 3000
    assert invoice.product_line_items[0].product_id == "P1"

    url = mock_post.call_args.args[0]
    kwargs = mock_post.call_args.kwargs
    assert url == "http://stripe.test/invoices"
    assert kwargs["headers"]["X-Service-Token"] == "test-service-secret"
    payload = kwargs["json"]
    assert payload["customer_id"] == "cus_1"
    assert payload["shipping_cost_cents"] == 500
    assert payload["locale"] == "de"
    assert [i["stripe_price_id"] for i in payload["items"]] == ["price_P1", "price_P2"]
    assert payload["items"][0]["metadata"]["product_id"] == "P1"


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    mock_response(500, {"success": False, "error": {"message": "Stripe down"}}),
    mock_response(200, {"success": False, "error": {"message": "No such price"}}),
    mock_response(200, {"success": True, "data": None}),
    mock_response(200, {"success": True, "data": {"amount_due": 100}}),
    mock_response(502, None, text="Bad Gateway"),
])
async def test_stripe_create_invoice_failures(mocker, request_items, response):
    mocker.patch('httpx.AsyncClient.post', AsyncMock(return_value=response))

    with pytest.raises(StripeServiceError):
        await StripeServiceClient().create_invoice("cus_1", "user-1", request_items)


@pytest.mark.asyncio
async def test_stripe_network_error(mocker, request_items):
    mocker.patch('httpx.AsyncClient.post', AsyncMock(side_effect=httpx.ConnectError("refused")))

    with pytest.raises(StripeServiceError):
        await StripeServiceClient().create_invoice("cus_1", "user-1", request_items)


"""
2. Shopify sync client
"""

@pytest.mark.asyncio
async def test_shopify_check_stock(mocker):
    body = {"success": True, "items": [
        {"product_id": "P2", "available": 7, "requested": 3, "sufficient": True},
    ]}
    mock_post = AsyncMock(return_value=mock_response(200, body))
    mocker.patch('httpx.AsyncClient.post', mock_post)

    results = await ShopifySyncClient().check_stock([("P2", 3)])

    assert results[0].available == 7
    assert results[0].sufficient is True
    assert mock_post.call_args.args[0] == "http://shopify-sync.test/inventory/check"
    assert mock_post.call_args.kwargs["json"] == {"products": [{"product_id": "P2", "requested_quantity": 3}]}


@pytest.mark.asyncio
async def test_shopify_check_stock_reported_failure(mocker):
    mocker.patch('httpx.AsyncClient.post',
                 AsyncMock(return_value=mock_response(200, {"success": False, "error": "not linked"})))

    with pytest.raises(ShopifySyncError):
        await ShopifySyncClient().check_stock([("P2", 1)])


@pytest.mark.asyncio
async def test_shopify_malformed_check_row(mocker):
    body = {"success": True, "items": [{"available": 5}]}
    mocker.patch('httpx.AsyncClient.post', AsyncMock(return_value=mock_response(200, body)))

    with pytest.raises(ShopifySyncError):
        await ShopifySyncClient().check_stock([("P2", 1)])


@pytest.mark.asyncio
async def test_shopify_malformed_deduction_result(mocker):
    body = {"success": True, "results": [{"success": True, "new_quantity": 4}]}
    mocker.patch('httpx.AsyncClient.post', AsyncMock(return_value=mock_response(200, body)))

    with pytest.raises(ShopifySyncError):
        await ShopifySyncClient().deduct_stock([("P2", 1)], reference_id="in_1")


@pytest.mark.asyncio
async def test_shopify_http_error(mocker):
    mocker.patch('httpx.AsyncClient.post', AsyncMock(return_value=mock_response(503, {"error": "busy"})))

    with pytest.raises(ShopifySyncError):
        await ShopifySyncClient().deduct_stock([("P2", 1)], reference_id="in_1")


@pytest.mark.asyncio
async def test_shopify_deduct_stock_tags_reference(mocker):
    body = {"success": True, "results": [{"product_id": "P2", "success": True, "new_quantity": 4}]}
    mock_post = AsyncMock(return_value=mock_response(200, body))
    mocker.patch('httpx.AsyncClient.post', mock_post)

    result = await ShopifySyncClient().deduct_stock([("P2", 3), ("P3", 1)], reference_id="in_9")

    assert result.success is True
    assert result.results[0].new_quantity == 4
    products = mock_post.call_args.kwargs["json"]["products"]
    assert {p["reference_id"] for p in products} == {"in_9"}
    assert [(p["product_id"], p["quantity"]) for p in products] == [("P2", 3), ("P3", 1)]


"""
3. Telegram relay
"""

@pytest.mark.asyncio
async def test_telegram_paid_notification(mocker, settings):
    mock_post = AsyncMock(return_value=mock_response(200, {"ok": True}))
    mocker.patch('httpx.AsyncClient.post', mock_post)

    sent = await TelegramNotificationService(settings).send_invoice_paid(
        invoice_id="in_1", amount_paid=3000, currency="eur", order_id="o-1"
    )

    assert sent is True
    assert mock_post.call_args.args[0] == "http://telegram.test/notifications/invoice/paid"
    assert mock_post.call_args.kwargs["json"]["metadata"] == {"order_id": "o-1"}


@pytest.mark.asyncio
async def test_telegram_failures_return_false(mocker, settings):
    from storefront.schemas.invoice import StripeInvoice

    invoice = StripeInvoice.model_validate(STRIPE_INVOICE)
    service = TelegramNotificationService(settings)

    mocker.patch('httpx.AsyncClient.post', AsyncMock(return_value=mock_response(500, {"error": "x"})))
    assert await service.send_invoice_created(invoice=invoice, user_id="user-1") is False

    mocker.patch('httpx.AsyncClient.post', AsyncMock(side_effect=httpx.ConnectError("refused")))
    assert await service.send_invoice_created(invoice=invoice, user_id="user-1") is False


@pytest.mark.asyncio
async def test_telegram_not_configured(mocker, settings):
    mock_post = AsyncMock()
    mocker.patch('httpx.AsyncClient.post', mock_post)
    unconfigured = settings.model_copy(update={"TELEGRAM_SERVICE_URL": None})

    sent = await TelegramNotificationService(unconfigured).send_invoice_paid(
        invoice_id="in_1", amount_paid=1, currency="eur"
    )

    assert sent is False
    mock_post.assert_not_called()


"""
4. Auth service
"""

@pytest.mark.asyncio
async def test_validate_token(mocker, settings):
    body = {"valid": True, "user": {"id": "user-7", "email": "b@example.com", "stripeCustomerId": "cus_7"}}
    mock_post = AsyncMock(return_value=mock_response(200, body))
    mocker.patch('httpx.AsyncClient.post', mock_post)

    user = await validate_token("tok", settings)

    assert (user.user_id, user.email, user.stripe_customer_id) == ("user-7", "b@example.com", "cus_7")
    assert mock_post.call_args.args[0] == "http://auth.test/auth/validate"
    assert mock_post.call_args.kwargs["json"] == {"accessToken": "tok"}


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    mock_response(401, {"error": "expired"}),
    mock_response(200, {"valid": False}),
    mock_response(200, None),
])
async def test_validate_token_rejected(mocker, settings, response):
    mocker.patch('httpx.AsyncClient.post', AsyncMock(return_value=response))

    with pytest.raises(AuthenticationError):
        await validate_token("tok", settings)
