# storefront/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.core.config import get_settings
from storefront.core.exceptions import BaseServiceError, InsufficientStockError
from storefront.core.logging_config import configure_logging
from storefront.database import engine
from storefront.routes import health, invoices, webhooks
from storefront.schemas.invoice import InsufficientStockResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    settings = get_settings()
    logger.info(f"Starting storefront order service ({settings.ENVIRONMENT})")
    yield
    await engine.dispose()
    logger.info("Storefront order service stopped")


app = FastAPI(
    title="Storefront Orders",
    lifespan=lifespan
)


@app.exception_handler(InsufficientStockError)
async def insufficient_stock_handler(request: Request, exc: InsufficientStockError):
    body = InsufficientStockResponse.model_validate({"details": exc.details})
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(by_alias=True))


@app.exception_handler(BaseServiceError)
async def service_error_handler(request: Request, exc: BaseServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request",
            "code": "validation/invalid-request",
            "details": jsonable_errors(exc),
        },
    )


def jsonable_errors(exc) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


# Webhooks authenticate by signature, invoices by bearer token
app.include_router(invoices.router)
app.include_router(webhooks.router)
app.include_router(health.router)
