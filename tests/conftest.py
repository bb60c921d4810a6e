"""Shared fixtures for the Nitro server tests."""

import json
from typing import Any, Optional

import httpx
import pytest

from nitro_server.config import ConfigStore, LocalStorage
from nitro_server.models import NitroSettings
from nitro_server.nitro_client import NitroClient

ENDPOINT = "https://api.test/api/"
TOKEN = "tok123"


def product_payload(product_hash: str = "prod1", amount: int = 1990, **extra: Any) -> dict[str, Any]:
    data = {
        "hash": product_hash,
        "title": f"Product {product_hash}",
        "cover": None,
        "sale_page": "https://example.com/sale",
        "payment_type": 1,
        "product_type": "digital",
        "delivery_type": 1,
        "id_category": 1,
        "amount": amount,
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-01T00:00:00Z",
    }
    data.update(extra)
    return data


def transaction_payload(
    transaction_hash: str = "tx1",
    status: str = "paid",
    amount: int = 1000,
    email: Optional[str] = "a@x.com",
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "hash": transaction_hash,
        "amount": amount,
        "status": status,
        "payment_method": "pix",
        "cart": [
            {
                "product_hash": "prod1",
                "title": "Product prod1",
                "cover": None,
                "price": amount,
                "quantity": 1,
                "operation_type": 1,
                "tangible": False,
            }
        ],
        "created_at": "2024-01-01T00:00:00Z",
    }
    if email is not None:
        data["customer"] = {"name": "Cliente", "email": email}
    return data


class FakeNitroApi:
    """In-memory stand-in for the remote API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.fail_with: Optional[Exception] = None

    def add(self, method: str, path: str, body: Any, status: int = 200) -> None:
        """Register a response for method and path relative to the endpoint."""
        self.routes[(method, "/api/" + path)] = (status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"message": "not found"})
        status, body = self.routes[key]
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client_factory(self, settings: NitroSettings) -> NitroClient:
        return NitroClient.from_settings(settings, transport=self.transport)

    def json_body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("NITRO_ENDPOINT", "NITRO_API_TOKEN", "NITRO_CONFIG_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "config"))


@pytest.fixture
def store(storage):
    return ConfigStore(storage)


@pytest.fixture
def configured_store(store):
    store.update_nitro(endpoint=ENDPOINT, api_token=TOKEN)
    return store


@pytest.fixture
def api():
    return FakeNitroApi()


@pytest.fixture
def client(api):
    nitro_client = NitroClient(ENDPOINT, TOKEN, transport=api.transport)
    yield nitro_client
    nitro_client.close()
