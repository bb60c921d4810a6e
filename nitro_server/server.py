"""MCP Server for the Nitro Pagamentos API."""

import asyncio
import json
import logging
from typing import Any, Optional

from mcp.server import Server
from mcp.types import Resource, Tool, TextContent
from pydantic import AnyUrl

from .bot_template import render_bot_code
from .config import BotConfigStore, ConfigStore
from .exceptions import HttpError, RefundNotAllowedError, UnconfiguredError
from .formatting import category_name, format_currency, payment_method_label, status_label
from .models import ConnectionStatus, OfferInput, PaymentRequest, Transaction
from .views import NitroViews, ViewTracker

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("nitro-mcp-server")

NEEDS_CONFIGURATION = (
    "Configuração necessária: set the Nitro API token with nitro_configure "
    "(or NITRO_API_TOKEN) before loading data."
)

HASH_SCHEMA = {"type": "string", "description": "Provider-assigned hash"}

PRODUCT_PROPERTIES = {
    "title": {"type": "string", "description": "Product title"},
    "cover": {"type": "string", "description": "Cover image URL"},
    "sale_page": {"type": "string", "description": "Sale page URL"},
    "payment_type": {"type": "integer", "description": "Payment type code"},
    "product_type": {"type": "string", "enum": ["digital", "fisico"]},
    "delivery_type": {"type": "integer", "description": "Delivery type code"},
    "id_category": {"type": "integer", "description": "Category ID"},
    "amount": {"type": "integer", "description": "Price in cents"},
}

OFFER_PROPERTIES = {
    "product_hash": HASH_SCHEMA,
    "title": {"type": "string", "description": "Offer title"},
    "cover": {"type": "string", "description": "Cover image URL"},
    "amount": {"type": "integer", "description": "Price in cents"},
}


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _transaction_lines(transaction: Transaction) -> list[str]:
    lines = [
        f"Hash: {transaction.hash}",
        f"   Amount: {format_currency(transaction.amount)}",
        f"   Status: {status_label(transaction.status)}",
        f"   Method: {payment_method_label(transaction.payment_method)}",
    ]
    if transaction.customer:
        lines.append(f"   Customer: {transaction.customer.name} <{transaction.customer.email}>")
    if transaction.created_at:
        lines.append(f"   Date: {transaction.created_at}")
    return lines


class NitroTools:
    """MCP tools and resources backed by the Nitro views."""

    def __init__(
        self,
        store: ConfigStore,
        bot_store: BotConfigStore,
        views: Optional[NitroViews] = None,
    ) -> None:
        self.store = store
        self.bot_store = bot_store
        self.views = views or NitroViews(store)
        self.tracker: ViewTracker[str] = ViewTracker()

    def list_resources(self) -> list[Resource]:
        """List available resources."""
        resources = []

        if self.store.is_configured():
            resources.extend(
                [
                    Resource(
                        uri=AnyUrl("nitro://dashboard"),
                        name="Dashboard",
                        mimeType="application/json",
                        description="Sales statistics and recent transactions",
                    ),
                    Resource(
                        uri=AnyUrl("nitro://transactions"),
                        name="Transactions",
                        mimeType="application/json",
                        description="All transactions",
                    ),
                ]
            )

        return resources

    async def read_resource(self, uri: str) -> str:
        """Load a page, remember it if it is still the latest, and return its JSON."""
        if uri == "nitro://dashboard":
            ticket = self.tracker.begin("dashboard")
            state = (await self.views.load_dashboard()).model_dump_json(indent=2)
        elif uri == "nitro://transactions":
            ticket = self.tracker.begin("transactions")
            state = (await self.views.load_transactions()).model_dump_json(indent=2)
        else:
            raise ValueError(f"Unknown resource: {uri}")

        if not self.tracker.commit(ticket, state):
            # A newer load of the same page finished first
            return self.tracker.get(ticket[0]) or state
        return state

    def list_tools(self) -> list[Tool]:
        """List available tools."""
        return [
            Tool(
                name="nitro_get_settings",
                description="Show the current Nitro API settings and whether a token is configured",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="nitro_configure",
                description="Save Nitro API endpoint/token and optional Mercado Pago credentials",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "endpoint": {"type": "string", "description": "Base URL ending with /"},
                        "api_token": {"type": "string", "description": "Nitro API token"},
                        "mercadopago_access_token": {"type": "string"},
                        "mercadopago_public_key": {"type": "string"},
                    },
                },
            ),
            Tool(
                name="nitro_test_connection",
                description="Check that the configured endpoint accepts the token",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="nitro_dashboard",
                description="Sales totals, product/transaction/customer counts and the 5 most recent transactions",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="nitro_list_products",
                description="List products with their categories",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="nitro_get_product",
                description="Get a product by hash",
                inputSchema={
                    "type": "object",
                    "properties": {"hash": HASH_SCHEMA},
                    "required": ["hash"],
                },
            ),
            Tool(
                name="nitro_save_product",
                description="Create a product, or update it when hash is given",
                inputSchema={
                    "type": "object",
                    "properties": {"hash": HASH_SCHEMA, **PRODUCT_PROPERTIES},
                },
            ),
            Tool(
                name="nitro_create_offer",
                description="Create an offer for a product",
                inputSchema={
                    "type": "object",
                    "properties": OFFER_PROPERTIES,
                    "required": ["product_hash", "title", "amount"],
                },
            ),
            Tool(
                name="nitro_update_offer",
                description="Update the offer of a product",
                inputSchema={
                    "type": "object",
                    "properties": OFFER_PROPERTIES,
                    "required": ["product_hash"],
                },
            ),
            Tool(
                name="nitro_list_transactions",
                description="List transactions, optionally filtered by status",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "status": {
                            "type": "string",
                            "enum": ["all", "paid", "pending", "cancelled", "refunded"],
                            "default": "all",
                        },
                    },
                },
            ),
            Tool(
                name="nitro_get_transaction",
                description="Get a transaction by hash",
                inputSchema={
                    "type": "object",
                    "properties": {"hash": HASH_SCHEMA},
                    "required": ["hash"],
                },
            ),
            Tool(
                name="nitro_refund_transaction",
                description="Refund a paid transaction (full refund unless amount is given)",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "hash": HASH_SCHEMA,
                        "amount": {"type": "integer", "description": "Partial amount in cents"},
                    },
                    "required": ["hash"],
                },
            ),
            Tool(
                name="nitro_create_payment",
                description="Create a payment (pix, credit_card or billet)",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "payment": {
                            "type": "object",
                            "description": "Payment request: amount, payment_method, customer, cart, ...",
                        },
                    },
                    "required": ["payment"],
                },
            ),
            Tool(
                name="nitro_list_categories",
                description="List product categories",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="nitro_get_installments",
                description="Get installment options for an amount",
                inputSchema={
                    "type": "object",
                    "properties": {"amount": {"type": "integer", "description": "Amount in cents"}},
                    "required": ["amount"],
                },
            ),
            Tool(
                name="nitro_get_checkout",
                description="Get a public checkout by hash",
                inputSchema={
                    "type": "object",
                    "properties": {"hash": HASH_SCHEMA},
                    "required": ["hash"],
                },
            ),
            Tool(
                name="nitro_get_bot_config",
                description="Show the saved Discord bot settings",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="nitro_save_bot_config",
                description="Save Discord bot settings; channels, roles and messages are merged per field",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "token": {"type": "string"},
                        "prefix": {"type": "string"},
                        "channels": {"type": "object", "description": "sales, logs, support"},
                        "roles": {"type": "object", "description": "admin, moderator, customer"},
                        "messages": {
                            "type": "object",
                            "description": "welcome, purchase_success, purchase_error",
                        },
                    },
                },
            ),
            Tool(
                name="nitro_bot_code",
                description="Generate the Discord bot source code with the saved settings",
                inputSchema={"type": "object", "properties": {}},
            ),
        ]

    async def call(self, name: str, arguments: Optional[dict[str, Any]]) -> list[TextContent]:
        """Handle a tool call."""
        arguments = arguments or {}
        try:
            return await self._dispatch(name, arguments)
        except UnconfiguredError:
            return _text(NEEDS_CONFIGURATION)
        except RefundNotAllowedError as e:
            return _text(f"Refund not allowed: {e}")
        except HttpError as e:
            logger.error(f"Error executing tool {name}: {e}", exc_info=True)
            return _text(f"Error: {e}\n{json.dumps(e.body, indent=2, default=str)}")
        except Exception as e:
            logger.error(f"Error executing tool {name}: {e}", exc_info=True)
            return _text(f"Error: {str(e)}")

    async def _dispatch(self, name: str, arguments: dict[str, Any]) -> list[TextContent]:
        if name == "nitro_get_settings":
            config = self.store.config
            result_lines = [
                f"Endpoint: {config.nitro.endpoint}",
                f"Configured: {'yes' if self.store.is_configured() else 'no'}",
                f"Mercado Pago: {'set' if config.mercadopago and config.mercadopago.access_token else 'not set'}",
            ]
            return _text("\n".join(result_lines))

        elif name == "nitro_configure":
            if "endpoint" in arguments or "api_token" in arguments:
                self.store.update_nitro(
                    endpoint=arguments.get("endpoint"), api_token=arguments.get("api_token")
                )
            if "mercadopago_access_token" in arguments or "mercadopago_public_key" in arguments:
                self.store.update_mercadopago(
                    access_token=arguments.get("mercadopago_access_token"),
                    public_key=arguments.get("mercadopago_public_key"),
                )
            return _text("✅ Settings saved")

        elif name == "nitro_test_connection":
            status = await self.views.test_connection()
            if status == ConnectionStatus.SUCCESS:
                return _text("✅ Conectado")
            return _text("❌ Erro: the API did not accept the endpoint/token")

        elif name == "nitro_dashboard":
            view = await self.views.load_dashboard()
            if view.needs_configuration:
                return _text(NEEDS_CONFIGURATION)
            if view.error:
                return _text(f"Error loading dashboard: {view.error}")

            stats = view.stats
            result_lines = [
                f"Total sales: {format_currency(stats.total_sales)}",
                f"Products: {stats.total_products}",
                f"Transactions: {stats.total_transactions}",
                f"Customers: {stats.total_customers}",
                "\nRecent transactions:",
            ]
            if not stats.recent_transactions:
                result_lines.append("No transactions yet")
            for i, transaction in enumerate(stats.recent_transactions, 1):
                result_lines.append(f"\n{i}. " + "\n".join(_transaction_lines(transaction)))
            return _text("\n".join(result_lines))

        elif name == "nitro_list_products":
            view = await self.views.load_products()
            if view.needs_configuration:
                return _text(NEEDS_CONFIGURATION)
            if view.error:
                return _text(f"Error loading products: {view.error}")
            if not view.products:
                return _text("No products found")

            result_lines = [f"Found {len(view.products)} product(s):\n"]
            for i, product in enumerate(view.products, 1):
                result_lines.append(f"\n{i}. {product.title}")
                result_lines.append(f"   Hash: {product.hash}")
                result_lines.append(f"   Price: {format_currency(product.amount)}")
                result_lines.append(f"   Type: {product.product_type.value}")
                result_lines.append(f"   Category: {category_name(view.categories, product.id_category)}")
            return _text("\n".join(result_lines))

        elif name == "nitro_get_product":
            with self.views.client() as client:
                product = client.get_product(arguments["hash"])
            return _text(product.model_dump_json(indent=2))

        elif name == "nitro_save_product":
            product_hash = arguments.get("hash")
            data = {k: v for k, v in arguments.items() if k in PRODUCT_PROPERTIES}
            result = self.views.save_product(data, product_hash=product_hash)
            icon = "✅" if result.success else "❌"
            return _text(f"{icon} {result.message}")

        elif name == "nitro_create_offer":
            offer_input = OfferInput.model_validate(arguments)
            with self.views.client() as client:
                offer = client.create_offer(arguments["product_hash"], offer_input)
            return _text(f"✅ Offer {offer.hash} created\n{offer.model_dump_json(indent=2)}")

        elif name == "nitro_update_offer":
            changes = {k: v for k, v in arguments.items() if k in OFFER_PROPERTIES and k != "product_hash"}
            with self.views.client() as client:
                offer = client.update_offer(arguments["product_hash"], changes)
            return _text(f"✅ Offer {offer.hash} updated\n{offer.model_dump_json(indent=2)}")

        elif name == "nitro_list_transactions":
            status = arguments.get("status", "all")
            view = await self.views.load_transactions(status)
            if view.needs_configuration:
                return _text(NEEDS_CONFIGURATION)
            if view.error:
                return _text(f"Error loading transactions: {view.error}")
            if not view.transactions:
                return _text("No transactions found")

            result_lines = [f"Found {len(view.transactions)} transaction(s):\n"]
            for i, transaction in enumerate(view.transactions, 1):
                result_lines.append(f"\n{i}. " + "\n".join(_transaction_lines(transaction)))
            return _text("\n".join(result_lines))

        elif name == "nitro_get_transaction":
            with self.views.client() as client:
                transaction = client.get_transaction(arguments["hash"])
            return _text(transaction.model_dump_json(indent=2))

        elif name == "nitro_refund_transaction":
            result = self.views.refund_transaction(arguments["hash"], arguments.get("amount"))
            icon = "✅" if result.success else "❌"
            return _text(f"{icon} {result.message}")

        elif name == "nitro_create_payment":
            payment = PaymentRequest.model_validate(arguments["payment"])
            with self.views.client() as client:
                transaction = client.create_payment(payment)
            return _text("✅ Payment created\n" + "\n".join(_transaction_lines(transaction)))

        elif name == "nitro_list_categories":
            with self.views.client() as client:
                categories = client.list_categories()
            if not categories:
                return _text("No categories found")
            return _text("\n".join(f"{c.id}: {c.name}" for c in categories))

        elif name == "nitro_get_installments":
            with self.views.client() as client:
                installments = client.get_installments(int(arguments["amount"]))
            return _text(json.dumps(installments, indent=2, ensure_ascii=False))

        elif name == "nitro_get_checkout":
            with self.views.client() as client:
                checkout = client.get_checkout(arguments["hash"])
            return _text(json.dumps(checkout, indent=2, ensure_ascii=False))

        elif name == "nitro_get_bot_config":
            return _text(self.bot_store.config.model_dump_json(indent=2))

        elif name == "nitro_save_bot_config":
            config = self.bot_store.config
            top_level = {k: arguments[k] for k in ("token", "prefix") if k in arguments}
            if top_level:
                config = config.model_copy(update=top_level)
            if "channels" in arguments:
                config = config.with_channels(**arguments["channels"])
            if "roles" in arguments:
                config = config.with_roles(**arguments["roles"])
            if "messages" in arguments:
                config = config.with_messages(**arguments["messages"])
            self.bot_store.save(config)
            return _text("✅ Bot settings saved")

        elif name == "nitro_bot_code":
            return _text(render_bot_code(self.bot_store.config))

        return _text(f"Unknown tool: {name}")


def create_server(tools: NitroTools) -> Server:
    """Create an MCP server exposing the given tools."""
    app = Server("nitro-mcp-server")

    @app.list_resources()
    async def list_resources() -> list[Resource]:
        """List available resources."""
        return tools.list_resources()

    @app.read_resource()
    async def read_resource(uri: AnyUrl) -> str:
        """Read a resource by URI."""
        return await tools.read_resource(str(uri))

    @app.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return tools.list_tools()

    @app.call_tool()
    async def call_tool(name: str, arguments: Any) -> list[TextContent]:
        """Handle tool calls."""
        return await tools.call(name, arguments)

    return app


async def main() -> None:
    """Main entry point for the MCP server."""
    store = ConfigStore()
    bot_store = BotConfigStore(store.storage)
    tools = NitroTools(store, bot_store)
    app = create_server(tools)

    if store.is_configured():
        logger.info(f"Nitro API configured at {store.nitro.endpoint}")
    else:
        logger.warning("No Nitro API token configured (NITRO_API_TOKEN)")
        logger.warning("Data tools will ask for configuration until nitro_configure is used")

    logger.info("Starting Nitro MCP Server...")

    # Import and run the server
    from mcp.server.stdio import stdio_server

    async with stdio_server() as (read_stream, write_stream):
        await app.run(
            read_stream,
            write_stream,
            app.create_initialization_options(),
        )


if __name__ == "__main__":
    asyncio.run(main())
