"""HTTP server exposing the Nitro dashboard as a JSON API."""

import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .bot_template import render_bot_code
from .config import BotConfigStore, ConfigStore
from .exceptions import HttpError, NitroError, RefundNotAllowedError, UnconfiguredError
from .models import (
    BotConfig,
    OfferInput,
    PaymentRequest,
    ProductInput,
)
from .views import NitroViews

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("nitro-http-server")

VERSION = "0.1.0"


# Request/Response Models
class NitroSettingsUpdate(BaseModel):
    endpoint: Optional[str] = None
    api_token: Optional[str] = None


class MercadoPagoSettingsUpdate(BaseModel):
    access_token: Optional[str] = None
    public_key: Optional[str] = None


class SettingsRequest(BaseModel):
    nitro: Optional[NitroSettingsUpdate] = None
    mercadopago: Optional[MercadoPagoSettingsUpdate] = None


class RefundRequest(BaseModel):
    amount: Optional[int] = None


def create_app(
    store: Optional[ConfigStore] = None,
    bot_store: Optional[BotConfigStore] = None,
    views: Optional[NitroViews] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        store: Configuration store. Defaults to ConfigStore()
        bot_store: Bot settings store sharing the same storage
        views: Page loaders. Defaults to NitroViews(store)
    """
    store = store or ConfigStore()
    bot_store = bot_store or BotConfigStore(store.storage)
    views = views or NitroViews(store)

    app = FastAPI(
        title="Nitro Pagamentos Dashboard",
        description="HTTP API for managing Nitro Pagamentos products and transactions",
        version=VERSION,
    )
    app.state.store = store
    app.state.bot_store = bot_store
    app.state.views = views

    @app.exception_handler(UnconfiguredError)
    async def unconfigured_handler(request: Request, exc: UnconfiguredError):
        return JSONResponse(status_code=409, content={"detail": "needs configuration"})

    @app.exception_handler(RefundNotAllowedError)
    async def refund_not_allowed_handler(request: Request, exc: RefundNotAllowedError):
        return JSONResponse(status_code=409, content={"detail": str(exc), "status": exc.status})

    @app.exception_handler(HttpError)
    async def http_error_handler(request: Request, exc: HttpError):
        logger.error(f"{request.url.path}: {exc}")
        return JSONResponse(
            status_code=502,
            content={"detail": str(exc), "provider_status": exc.status_code, "provider_body": exc.body},
        )

    @app.exception_handler(NitroError)
    async def nitro_error_handler(request: Request, exc: NitroError):
        logger.error(f"{request.url.path}: {exc}")
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "Nitro Pagamentos Dashboard",
            "version": VERSION,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "settings": {"get": "GET /settings", "save": "PUT /settings", "test": "POST /settings/test"},
                "dashboard": "GET /dashboard",
                "products": {
                    "list": "GET /products",
                    "create": "POST /products",
                    "get": "GET /products/{hash}",
                    "update": "PUT /products/{hash}",
                    "offers": "POST|PUT /products/{hash}/offers",
                },
                "categories": "GET /categories",
                "transactions": {
                    "list": "GET /transactions?status=all",
                    "create": "POST /transactions",
                    "get": "GET /transactions/{hash}",
                    "refund": "POST /transactions/{hash}/refund",
                },
                "installments": "GET /installments?amount=",
                "checkout": "GET /checkout/{hash}",
                "bot": {"get": "GET /bot-config", "save": "PUT /bot-config", "code": "GET /bot-config/code"},
            },
            "configured": store.is_configured(),
        }

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "configured": store.is_configured()}

    # Settings endpoints
    @app.get("/settings")
    async def get_settings():
        """Get the API settings with secrets masked."""
        config = store.config
        return {
            "nitro": {"endpoint": config.nitro.endpoint, "api_token_set": bool(config.nitro.api_token)},
            "mercadopago": {
                "access_token_set": bool(config.mercadopago and config.mercadopago.access_token),
                "public_key": config.mercadopago.public_key if config.mercadopago else "",
            },
            "configured": store.is_configured(),
        }

    @app.put("/settings")
    async def save_settings(request: SettingsRequest):
        """Save the API settings."""
        if request.nitro is not None:
            store.update_nitro(**request.nitro.model_dump())
        if request.mercadopago is not None:
            store.update_mercadopago(**request.mercadopago.model_dump())
        return {"success": True, "configured": store.is_configured()}

    @app.post("/settings/test")
    async def test_settings():
        """Probe the configured endpoint with the stored token."""
        status = await views.test_connection()
        return {"status": status.value}

    # Dashboard
    @app.get("/dashboard")
    async def dashboard():
        """Sales statistics."""
        view = await views.load_dashboard()
        return view.model_dump(mode="json")

    # Product endpoints
    @app.get("/products")
    async def list_products():
        """List products and categories."""
        view = await views.load_products()
        return view.model_dump(mode="json")

    @app.post("/products")
    async def create_product(product: ProductInput):
        """Create a product."""
        result = views.save_product(product)
        if not result.success:
            raise HTTPException(status_code=502, detail=result.message)
        return result.model_dump(mode="json")

    @app.get("/products/{product_hash}")
    async def get_product(product_hash: str):
        """Get a product."""
        with views.client() as client:
            product = client.get_product(product_hash)
        return product.model_dump(mode="json")

    @app.put("/products/{product_hash}")
    async def update_product(product_hash: str, changes: dict[str, Any]):
        """Update a product."""
        result = views.save_product(changes, product_hash=product_hash)
        if not result.success:
            raise HTTPException(status_code=502, detail=result.message)
        return result.model_dump(mode="json")

    @app.post("/products/{product_hash}/offers")
    async def create_offer(product_hash: str, offer: OfferInput):
        """Create an offer for a product."""
        with views.client() as client:
            created = client.create_offer(product_hash, offer)
        return created.model_dump(mode="json")

    @app.put("/products/{product_hash}/offers")
    async def update_offer(product_hash: str, changes: dict[str, Any]):
        """Update the offer of a product."""
        with views.client() as client:
            updated = client.update_offer(product_hash, changes)
        return updated.model_dump(mode="json")

    @app.get("/categories")
    async def list_categories():
        """List categories."""
        with views.client() as client:
            categories = client.list_categories()
        return [category.model_dump() for category in categories]

    # Transaction endpoints
    @app.get("/transactions")
    async def list_transactions(status: str = "all"):
        """List transactions, optionally filtered by status."""
        view = await views.load_transactions(status)
        return view.model_dump(mode="json")

    @app.post("/transactions")
    async def create_payment(payment: PaymentRequest):
        """Create a payment."""
        with views.client() as client:
            transaction = client.create_payment(payment)
        return transaction.model_dump(mode="json")

    @app.get("/transactions/{transaction_hash}")
    async def get_transaction(transaction_hash: str):
        """Get a transaction."""
        with views.client() as client:
            transaction = client.get_transaction(transaction_hash)
        return transaction.model_dump(mode="json")

    @app.post("/transactions/{transaction_hash}/refund")
    async def refund_transaction(transaction_hash: str, request: Optional[RefundRequest] = None):
        """Refund a paid transaction."""
        amount = request.amount if request else None
        result = views.refund_transaction(transaction_hash, amount)
        if not result.success:
            raise HTTPException(status_code=502, detail=result.message)
        return result.model_dump(mode="json")

    @app.get("/installments")
    async def get_installments(amount: int):
        """Installment options for an amount in cents."""
        with views.client() as client:
            return client.get_installments(amount)

    @app.get("/checkout/{checkout_hash}")
    async def get_checkout(checkout_hash: str):
        """Public checkout lookup."""
        with views.client() as client:
            return client.get_checkout(checkout_hash)

    # Bot endpoints
    @app.get("/bot-config")
    async def get_bot_config():
        """Saved bot settings."""
        return bot_store.config.model_dump()

    @app.put("/bot-config")
    async def save_bot_config(config: BotConfig):
        """Overwrite the bot settings."""
        bot_store.save(config)
        return {"success": True}

    @app.get("/bot-config/code")
    async def bot_code():
        """Generated bot source code."""
        return {"code": render_bot_code(bot_store.config)}

    return app


def run_http_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """
    Run the HTTP server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to bind to (default: 8000)
        reload: Enable hot reloading (default: False)
    """
    import uvicorn

    logger.info(f"Starting server on {host}:{port} (reload={'enabled' if reload else 'disabled'})")

    if reload:
        # Hot reloading - watches for file changes
        uvicorn.run(
            "nitro_server.http_server:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            reload_dirs=["nitro_server"],
            log_level="info",
        )
    else:
        uvicorn.run(create_app(), host=host, port=port, log_level="info")
