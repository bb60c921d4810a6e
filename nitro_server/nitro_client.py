"""Nitro Pagamentos API client."""

import logging
from typing import Any, Optional, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError

from .exceptions import HttpError, MalformedResponseError, TransportError
from .models import (
    Category,
    NitroSettings,
    Offer,
    OfferInput,
    PaymentRequest,
    Product,
    ProductInput,
    Transaction,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

JSON_HEADERS = {"Accept": "application/json"}
JSON_BODY_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}
TOKEN_PARAM = "?api_token="


def decode_list(body: Any, model: type[ModelT]) -> list[ModelT]:
    """
    Unwrap a list envelope.

    A missing or null "data" field is an empty list.

    Raises:
        MalformedResponseError: If the body is not an object or an item does not validate
    """
    if not isinstance(body, dict):
        raise MalformedResponseError(f"Expected a JSON object, got {type(body).__name__}")
    items = body.get("data")
    if items is None:
        return []
    if not isinstance(items, list):
        raise MalformedResponseError(f"Expected 'data' to be a list, got {type(items).__name__}")
    try:
        return [model.model_validate(item) for item in items]
    except ValidationError as e:
        raise MalformedResponseError(f"Invalid {model.__name__} in response: {e}") from e


def decode_entity(body: Any, model: type[ModelT]) -> ModelT:
    """
    Unwrap a single-entity envelope.

    Raises:
        MalformedResponseError: If "data" is missing or does not validate
    """
    data = decode_data(body)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(f"Invalid {model.__name__} in response: {e}") from e


def decode_data(body: Any) -> Any:
    """Return the raw "data" field of an envelope, which must be present."""
    if not isinstance(body, dict):
        raise MalformedResponseError(f"Expected a JSON object, got {type(body).__name__}")
    data = body.get("data")
    if data is None:
        raise MalformedResponseError("Response is missing the 'data' field")
    return data


class NitroClient:
    """Client for the Nitro Pagamentos public API."""

    def __init__(
        self,
        endpoint: str,
        api_token: str,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Initialize the Nitro client.

        Args:
            endpoint: Base URL of the API, e.g. https://api.nitropagamentos.com/api/
            api_token: API token sent as the api_token query parameter
            transport: Optional httpx transport (used by tests)
        """
        self.endpoint = endpoint
        self.api_token = api_token
        self.client = httpx.Client(timeout=30.0, transport=transport)

    @classmethod
    def from_settings(
        cls, settings: NitroSettings, transport: Optional[httpx.BaseTransport] = None
    ) -> "NitroClient":
        """Build a client from stored Nitro settings."""
        return cls(settings.endpoint, settings.api_token, transport=transport)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.client.close()

    def __enter__(self) -> "NitroClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def url(self, path: str) -> str:
        """Build an authenticated URL for path."""
        return f"{self.endpoint}{path}{TOKEN_PARAM}{self.api_token}"

    def public_url(self, path: str) -> str:
        """Build a URL for path without the token."""
        return f"{self.endpoint}{path}"

    def _request(
        self,
        method: str,
        url: str,
        json_body: Optional[Union[dict[str, Any], list[Any]]] = None,
    ) -> Any:
        """
        Send a request and return the parsed JSON body.

        Raises:
            TransportError: If no response was received
            HttpError: If the status is not 2xx
            MalformedResponseError: If the body is not JSON
        """
        headers = JSON_BODY_HEADERS if method in ("POST", "PUT") else JSON_HEADERS

        logger.debug(f"{method} {self._redact(url)}")
        try:
            response = self.client.request(method, url, json=json_body, headers=headers)
        except httpx.TransportError as e:
            logger.error(f"{method} {self._redact(url)} failed: {e}")
            raise TransportError(str(e)) from e

        if not response.is_success:
            body: Any
            try:
                body = response.json()
            except ValueError:
                body = response.text
            logger.error(f"{method} {self._redact(url)} returned {response.status_code}")
            raise HttpError(response.status_code, body, url=self._redact(url))

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Response from {self._redact(url)} is not JSON") from e

    def _redact(self, url: str) -> str:
        # The token is always the last thing in the URL, see url()
        base, sep, _ = url.partition(TOKEN_PARAM)
        if not sep:
            return url
        return f"{base}{TOKEN_PARAM}***"

    # Products

    def list_products(self) -> list[Product]:
        """List all products."""
        body = self._request("GET", self.url("public/v1/products"))
        products = decode_list(body, Product)
        logger.info(f"Fetched {len(products)} products")
        return products

    def get_product(self, product_hash: str) -> Product:
        """Get a single product by hash."""
        body = self._request("GET", self.url(f"public/v1/products/{product_hash}"))
        return decode_entity(body, Product)

    def create_product(self, product: ProductInput) -> Product:
        """Create a product."""
        logger.info(f"Creating product '{product.title}'")
        body = self._request("POST", self.url("public/v1/products"), product.model_dump(mode="json"))
        return decode_entity(body, Product)

    def update_product(self, product_hash: str, changes: dict[str, Any]) -> Product:
        """
        Update a product.

        Args:
            product_hash: Product to update
            changes: Fields to change
        """
        logger.info(f"Updating product {product_hash}")
        body = self._request("PUT", self.url(f"public/v1/products/{product_hash}"), changes)
        return decode_entity(body, Product)

    # Offers

    def create_offer(self, product_hash: str, offer: OfferInput) -> Offer:
        """Create an offer for a product."""
        logger.info(f"Creating offer '{offer.title}' for product {product_hash}")
        body = self._request(
            "POST", self.url(f"public/v1/products/{product_hash}/offers"), offer.model_dump(mode="json")
        )
        return decode_entity(body, Offer)

    def update_offer(self, product_hash: str, changes: dict[str, Any]) -> Offer:
        """Update an offer of a product."""
        logger.info(f"Updating offer of product {product_hash}")
        body = self._request("PUT", self.url(f"public/v1/products/{product_hash}/offers"), changes)
        return decode_entity(body, Offer)

    # Transactions

    def list_transactions(self) -> list[Transaction]:
        """List transactions in the order the API returns them."""
        body = self._request("GET", self.url("public/v1/transactions"))
        transactions = decode_list(body, Transaction)
        logger.info(f"Fetched {len(transactions)} transactions")
        return transactions

    def get_transaction(self, transaction_hash: str) -> Transaction:
        """Get a single transaction by hash."""
        body = self._request("GET", self.url(f"public/v1/transactions/{transaction_hash}"))
        return decode_entity(body, Transaction)

    def create_payment(self, payment: PaymentRequest) -> Transaction:
        """Create a payment transaction."""
        logger.info(f"Creating {payment.payment_method.value} payment of {payment.amount}")
        body = self._request(
            "POST",
            self.url("public/v1/transactions"),
            payment.model_dump(mode="json", exclude_none=True),
        )
        return decode_entity(body, Transaction)

    def refund_transaction(self, transaction_hash: str, amount: Optional[int] = None) -> Transaction:
        """
        Refund a transaction.

        The status is not checked here; callers decide whether a refund is allowed.

        Args:
            transaction_hash: Transaction to refund
            amount: Partial amount in cents; full refund when omitted
        """
        logger.info(f"Refunding transaction {transaction_hash} (amount={amount})")
        payload = {"amount": amount} if amount else {}
        body = self._request("POST", self.url(f"public/v1/transactions/{transaction_hash}/refund"), payload)
        return decode_entity(body, Transaction)

    # Catalog helpers

    def list_categories(self) -> list[Category]:
        """List product categories."""
        body = self._request("GET", self.url("public/v1/products/categories"))
        return decode_list(body, Category)

    def get_installments(self, amount: int) -> Any:
        """Get installment options for an amount in cents."""
        # The API is called with "&amount=" appended to the path, before "?api_token="
        body = self._request("GET", self.url(f"public/v1/installments&amount={amount}"))
        return decode_data(body)

    def get_checkout(self, checkout_hash: str) -> Any:
        """Get a public checkout. This call is not authenticated."""
        return self._request("GET", self.public_url(f"public/v1/checkout/{checkout_hash}"))
