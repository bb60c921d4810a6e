"""Data models for Nitro Pagamentos entities and local configuration."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


DEFAULT_ENDPOINT = "https://api.nitropagamentos.com/api/"


class ProductType(str, Enum):
    """Kind of product sold."""

    DIGITAL = "digital"
    PHYSICAL = "fisico"


class TransactionStatus(str, Enum):
    """Transaction status as reported by the remote API."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """Supported payment methods."""

    PIX = "pix"
    CREDIT_CARD = "credit_card"
    BILLET = "billet"


class ConnectionStatus(str, Enum):
    """Outcome of a connection probe."""

    SUCCESS = "success"
    FAILURE = "failure"


class Product(BaseModel):
    """Represents a catalog product."""

    hash: str = Field(description="Provider-assigned product identifier")
    title: str = Field(description="Product title")
    cover: Optional[str] = Field(None, description="Cover image URL")
    sale_page: str = Field("", description="Sale page URL")
    payment_type: int = Field(1, description="Payment type code")
    product_type: ProductType = Field(ProductType.DIGITAL, description="digital or fisico")
    delivery_type: int = Field(1, description="Delivery type code")
    id_category: int = Field(1, description="Category ID")
    amount: int = Field(ge=0, description="Price in cents")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ProductInput(BaseModel):
    """Fields sent when creating a product."""

    title: str
    cover: Optional[str] = None
    sale_page: str = ""
    payment_type: int = 1
    product_type: ProductType = ProductType.DIGITAL
    delivery_type: int = 1
    id_category: int = 1
    amount: int = Field(0, ge=0, description="Price in cents")


class Offer(BaseModel):
    """Represents an alternate price or bundle for a product."""

    hash: str
    title: str
    cover: Optional[str] = None
    amount: int = Field(ge=0, description="Price in cents")
    product_hash: Optional[str] = Field(None, description="Hash of the owning product")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class OfferInput(BaseModel):
    """Fields sent when creating an offer."""

    title: str
    cover: Optional[str] = None
    amount: int = Field(ge=0, description="Price in cents")


class Customer(BaseModel):
    """Buyer identity and address."""

    name: str
    email: str
    phone_number: str = ""
    document: str = ""
    street_name: str = ""
    number: str = ""
    complement: Optional[str] = None
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""


class CartItem(BaseModel):
    """Line item of a transaction."""

    product_hash: str
    title: str
    cover: Optional[str] = None
    price: int = Field(description="Unit price in cents")
    quantity: int = Field(1, ge=1)
    operation_type: int = 1
    tangible: bool = False


class Card(BaseModel):
    """Credit card data for card payments."""

    number: str
    holder_name: str
    exp_month: int
    exp_year: int
    cvv: str


class Transaction(BaseModel):
    """Represents a purchase record."""

    hash: str
    amount: int = Field(description="Amount in cents")
    status: TransactionStatus
    payment_method: PaymentMethod
    customer: Optional[Customer] = None
    cart: list[CartItem] = Field(default_factory=list)
    installments: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PaymentRequest(BaseModel):
    """Input for creating a payment."""

    amount: int = Field(ge=0, description="Amount in cents")
    offer_hash: Optional[str] = None
    payment_method: PaymentMethod
    card: Optional[Card] = None
    customer: Customer
    cart: list[CartItem]
    installments: Optional[int] = None
    expire_in_days: Optional[int] = None
    postback_url: Optional[str] = None


class Category(BaseModel):
    """Product category."""

    id: int
    name: str


class NitroSettings(BaseModel):
    """Connection settings for the Nitro API."""

    endpoint: str = Field(DEFAULT_ENDPOINT, description="Base URL, trailing slash included")
    api_token: str = Field("", description="Opaque API token")


class MercadoPagoSettings(BaseModel):
    """Optional Mercado Pago credentials."""

    access_token: str = ""
    public_key: str = ""


class ApiConfig(BaseModel):
    """Persisted connection configuration."""

    nitro: NitroSettings = Field(default_factory=NitroSettings)
    mercadopago: Optional[MercadoPagoSettings] = None


class BotChannels(BaseModel):
    """Discord channel IDs."""

    sales: str = ""
    logs: str = ""
    support: str = ""


class BotRoles(BaseModel):
    """Discord role IDs."""

    admin: str = ""
    moderator: str = ""
    customer: str = ""


class BotMessages(BaseModel):
    """Messages the bot sends."""

    welcome: str = "Bem-vindo ao nosso servidor! Use !produtos para ver nossos produtos."
    purchase_success: str = "✅ Compra realizada com sucesso! Você receberá o produto em breve."
    purchase_error: str = (
        "❌ Erro ao processar a compra. Tente novamente ou entre em contato com o suporte."
    )


class BotConfig(BaseModel):
    """Settings embedded into the generated bot code."""

    token: str = ""
    prefix: str = "!"
    channels: BotChannels = Field(default_factory=BotChannels)
    roles: BotRoles = Field(default_factory=BotRoles)
    messages: BotMessages = Field(default_factory=BotMessages)

    def with_channels(self, **changes: str) -> "BotConfig":
        """Return a copy with some channel IDs replaced."""
        channels = self.channels.model_copy(update=changes)
        return self.model_copy(update={"channels": channels})

    def with_roles(self, **changes: str) -> "BotConfig":
        """Return a copy with some role IDs replaced."""
        roles = self.roles.model_copy(update=changes)
        return self.model_copy(update={"roles": roles})

    def with_messages(self, **changes: str) -> "BotConfig":
        """Return a copy with some messages replaced."""
        messages = self.messages.model_copy(update=changes)
        return self.model_copy(update={"messages": messages})


class DashboardStats(BaseModel):
    """Summary statistics shown on the dashboard."""

    total_sales: int = Field(0, description="Sum of paid transaction amounts in cents")
    total_products: int = 0
    total_transactions: int = 0
    total_customers: int = Field(0, description="Distinct customer emails")
    recent_transactions: list[Transaction] = Field(default_factory=list)


class DashboardView(BaseModel):
    """State of the dashboard page."""

    needs_configuration: bool = False
    stats: DashboardStats = Field(default_factory=DashboardStats)
    error: Optional[str] = None


class ProductsView(BaseModel):
    """State of the products page."""

    needs_configuration: bool = False
    products: list[Product] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    error: Optional[str] = None


class TransactionsView(BaseModel):
    """State of the transactions page."""

    needs_configuration: bool = False
    status_filter: str = "all"
    transactions: list[Transaction] = Field(default_factory=list)
    error: Optional[str] = None


class ActionResult(BaseModel):
    """Outcome of a user action (save, refund)."""

    success: bool
    message: str
    data: Optional[Any] = None
