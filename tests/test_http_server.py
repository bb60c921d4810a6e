"""Tests for the HTTP server."""

import pytest
from fastapi.testclient import TestClient

from conftest import ENDPOINT, product_payload, transaction_payload
from nitro_server.config import BotConfigStore
from nitro_server.connection import check_connection
from nitro_server.http_server import create_app
from nitro_server.views import NitroViews


def _client(store, api):
    views = NitroViews(
        store,
        client_factory=api.client_factory,
        probe=lambda settings: check_connection(settings, transport=api.transport),
    )
    app = create_app(store=store, bot_store=BotConfigStore(store.storage), views=views)
    return TestClient(app)


@pytest.fixture
def http(configured_store, api):
    return _client(configured_store, api)


@pytest.fixture
def unconfigured_http(store, api):
    return _client(store, api)


class TestSettings:
    def test_health_reports_configuration(self, unconfigured_http):
        assert unconfigured_http.get("/health").json() == {"status": "healthy", "configured": False}

    def test_save_settings_masks_token(self, unconfigured_http, store):
        response = unconfigured_http.put("/settings", json={"nitro": {"api_token": "secret"}})

        assert response.json()["configured"] is True
        settings = unconfigured_http.get("/settings").json()
        assert settings["nitro"]["api_token_set"] is True
        assert "secret" not in str(settings)
        assert store.config.nitro.api_token == "secret"

    def test_connection_test(self, http, api):
        api.add("GET", "public/v1/products", {"data": []})

        response = http.post("/settings/test")

        assert response.json() == {"status": "success"}
        assert api.requests[0].url.params["api_token"] == "tok123"

    def test_connection_test_rejected_token(self, http, api):
        api.add("GET", "public/v1/products", {"message": "Unauthenticated."}, status=401)

        assert http.post("/settings/test").json() == {"status": "failure"}

    def test_connection_test_without_token_is_409(self, unconfigured_http, api):
        assert unconfigured_http.post("/settings/test").status_code == 409
        assert api.requests == []


class TestDataEndpoints:
    def test_unconfigured_dashboard_needs_configuration(self, unconfigured_http, api):
        body = unconfigured_http.get("/dashboard").json()

        assert body["needs_configuration"] is True
        assert api.requests == []

    def test_unconfigured_entity_endpoint_is_409(self, unconfigured_http, api):
        response = unconfigured_http.get("/products/p1")

        assert response.status_code == 409
        assert response.json() == {"detail": "needs configuration"}
        assert api.requests == []

    def test_dashboard(self, http, api):
        api.add("GET", "public/v1/products", {"data": [product_payload("p1")]})
        api.add("GET", "public/v1/transactions", {"data": [transaction_payload("t1", amount=4200)]})

        stats = http.get("/dashboard").json()["stats"]

        assert stats["total_sales"] == 4200
        assert stats["total_products"] == 1
        assert stats["recent_transactions"][0]["hash"] == "t1"

    def test_create_product(self, http, api):
        api.add("POST", "public/v1/products", {"data": product_payload("new")})

        response = http.post("/products", json={"title": "Novo", "amount": 100})

        assert response.status_code == 200
        assert response.json()["data"]["hash"] == "new"

    def test_provider_error_is_502(self, http, api):
        api.add("GET", "public/v1/transactions/t1", {"message": "Not found"}, status=404)

        response = http.get("/transactions/t1")

        assert response.status_code == 502
        assert response.json()["provider_status"] == 404
        assert response.json()["provider_body"] == {"message": "Not found"}

    def test_refund_guard_is_409(self, http, api):
        api.add("GET", "public/v1/transactions/t1", {"data": transaction_payload("t1", status="pending")})

        response = http.post("/transactions/t1/refund")

        assert response.status_code == 409
        assert response.json()["status"] == "pending"

    def test_refund_paid(self, http, api):
        api.add("GET", "public/v1/transactions/t1", {"data": transaction_payload("t1", status="paid")})
        api.add("POST", "public/v1/transactions/t1/refund", {"data": transaction_payload("t1", status="refunded")})

        response = http.post("/transactions/t1/refund", json={"amount": 500})

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "refunded"
        assert api.json_body() == {"amount": 500}

    def test_checkout_passthrough(self, http, api):
        api.add("GET", "public/v1/checkout/c1", {"hash": "c1", "pix": {"qr_code": "000201"}})

        assert http.get("/checkout/c1").json() == {"hash": "c1", "pix": {"qr_code": "000201"}}

    def test_transactions_filter(self, http, api):
        api.add(
            "GET",
            "public/v1/transactions",
            {"data": [transaction_payload("t1", status="paid"), transaction_payload("t2", status="pending")]},
        )

        body = http.get("/transactions", params={"status": "pending"}).json()

        assert [t["hash"] for t in body["transactions"]] == ["t2"]


class TestBotConfig:
    def test_save_and_generate_code(self, unconfigured_http):
        config = unconfigured_http.get("/bot-config").json()
        config["prefix"] = "$"
        config["channels"]["sales"] = "999"

        assert unconfigured_http.put("/bot-config", json=config).json() == {"success": True}

        code = unconfigured_http.get("/bot-config/code").json()["code"]
        assert '"prefix": "$"' in code
        assert '"sales": "999"' in code
        assert ENDPOINT not in code
