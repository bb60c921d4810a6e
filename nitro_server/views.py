"""Page-level loaders and actions built on the Nitro client."""

import asyncio
import logging
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from pydantic import BaseModel

from .config import ConfigStore
from .connection import check_connection
from .dashboard import build_dashboard_stats
from .exceptions import NitroError, RefundNotAllowedError, UnconfiguredError
from .formatting import filter_transactions
from .models import (
    ActionResult,
    ConnectionStatus,
    DashboardView,
    NitroSettings,
    ProductInput,
    ProductsView,
    TransactionStatus,
    TransactionsView,
)
from .nitro_client import NitroClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[NitroSettings], NitroClient]
ConnectionProbe = Callable[[NitroSettings], ConnectionStatus]
StateT = TypeVar("StateT")


class ViewTracker(Generic[StateT]):
    """
    Keeps the latest state per view and drops results of superseded loads.

    Each load takes a ticket with begin(); only the newest ticket of a
    view may commit, so a slow response arriving after a newer request
    is ignored.
    """

    def __init__(self) -> None:
        self._latest: dict[str, int] = {}
        self._counter = 0
        self.states: dict[str, StateT] = {}

    def begin(self, view: str) -> tuple[str, int]:
        """Start a load of view and return its ticket."""
        self._counter += 1
        self._latest[view] = self._counter
        return (view, self._counter)

    def is_current(self, ticket: tuple[str, int]) -> bool:
        view, number = ticket
        return self._latest.get(view) == number

    def commit(self, ticket: tuple[str, int], state: StateT) -> bool:
        """Store state if ticket is still the latest for its view."""
        if not self.is_current(ticket):
            logger.debug(f"Dropping stale result for view '{ticket[0]}'")
            return False
        self.states[ticket[0]] = state
        return True

    def get(self, view: str) -> Optional[StateT]:
        return self.states.get(view)


class NitroViews:
    """Loads page data and runs user actions against the configured API."""

    def __init__(
        self,
        store: ConfigStore,
        client_factory: Optional[ClientFactory] = None,
        probe: Optional[ConnectionProbe] = None,
    ) -> None:
        """
        Initialize the views.

        Args:
            store: Configuration store holding the credentials
            client_factory: Builds a client from settings. Defaults to NitroClient.from_settings
            probe: Connection probe. Defaults to check_connection
        """
        self.store = store
        self.client_factory = client_factory or NitroClient.from_settings
        self.probe = probe or check_connection

    def client(self) -> NitroClient:
        """Build a client for the current settings."""
        if not self.store.is_configured():
            raise UnconfiguredError()
        return self.client_factory(self.store.nitro)

    async def load_dashboard(self) -> DashboardView:
        """Fetch products and transactions and summarize them."""
        if not self.store.is_configured():
            return DashboardView(needs_configuration=True)

        client = self.client()
        try:
            products, transactions = await asyncio.gather(
                asyncio.to_thread(client.list_products),
                asyncio.to_thread(client.list_transactions),
            )
        except NitroError as e:
            logger.error(f"Error loading dashboard data: {e}", exc_info=True)
            return DashboardView(error=str(e))
        finally:
            client.close()

        return DashboardView(stats=build_dashboard_stats(products, transactions))

    async def load_products(self) -> ProductsView:
        """Fetch products and categories."""
        if not self.store.is_configured():
            return ProductsView(needs_configuration=True)

        client = self.client()
        try:
            products, categories = await asyncio.gather(
                asyncio.to_thread(client.list_products),
                asyncio.to_thread(client.list_categories),
            )
        except NitroError as e:
            logger.error(f"Error loading products: {e}", exc_info=True)
            return ProductsView(error=str(e))
        finally:
            client.close()

        return ProductsView(products=products, categories=categories)

    async def load_transactions(self, status_filter: str = "all") -> TransactionsView:
        """Fetch transactions, keeping those matching status_filter."""
        if not self.store.is_configured():
            return TransactionsView(needs_configuration=True, status_filter=status_filter)

        client = self.client()
        try:
            transactions = await asyncio.to_thread(client.list_transactions)
        except NitroError as e:
            logger.error(f"Error loading transactions: {e}", exc_info=True)
            return TransactionsView(status_filter=status_filter, error=str(e))
        finally:
            client.close()

        return TransactionsView(
            status_filter=status_filter,
            transactions=filter_transactions(transactions, status_filter),
        )

    def save_product(
        self, data: Union[ProductInput, dict[str, Any]], product_hash: Optional[str] = None
    ) -> ActionResult:
        """
        Create a product, or update it when product_hash is given.

        Raises:
            UnconfiguredError: If no API token is configured
        """
        with self.client() as client:
            try:
                if product_hash:
                    changes = data.model_dump(mode="json") if isinstance(data, BaseModel) else data
                    product = client.update_product(product_hash, changes)
                    message = f"Product {product.hash} updated"
                else:
                    product_input = ProductInput.model_validate(data)
                    product = client.create_product(product_input)
                    message = f"Product {product.hash} created"
            except NitroError as e:
                logger.error(f"Error saving product: {e}", exc_info=True)
                return ActionResult(success=False, message=f"Error saving product: {e}")

        return ActionResult(success=True, message=message, data=product)

    def refund_transaction(self, transaction_hash: str, amount: Optional[int] = None) -> ActionResult:
        """
        Refund a paid transaction.

        The transaction is fetched first and the refund is only requested
        when its status is paid.

        Raises:
            UnconfiguredError: If no API token is configured
            RefundNotAllowedError: If the transaction is not paid
        """
        with self.client() as client:
            try:
                transaction = client.get_transaction(transaction_hash)
                if transaction.status != TransactionStatus.PAID:
                    raise RefundNotAllowedError(transaction_hash, transaction.status.value)
                refunded = client.refund_transaction(transaction_hash, amount)
            except RefundNotAllowedError:
                raise
            except NitroError as e:
                logger.error(f"Error refunding transaction {transaction_hash}: {e}", exc_info=True)
                return ActionResult(success=False, message=f"Error refunding transaction: {e}")

        return ActionResult(
            success=True, message=f"Transaction {transaction_hash} refunded", data=refunded
        )

    async def test_connection(self) -> ConnectionStatus:
        """
        Probe the API with the stored credentials.

        Raises:
            UnconfiguredError: If no API token is configured
        """
        return await asyncio.to_thread(self.probe, self.store.nitro)
