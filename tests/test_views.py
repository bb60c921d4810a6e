"""Tests for page loaders and actions."""

import asyncio

import httpx
import pytest

from conftest import product_payload, transaction_payload
from nitro_server.exceptions import RefundNotAllowedError, UnconfiguredError
from nitro_server.models import ProductInput, TransactionStatus
from nitro_server.views import NitroViews, ViewTracker


@pytest.fixture
def views(configured_store, api):
    return NitroViews(configured_store, client_factory=api.client_factory)


class TestUnconfigured:
    """Without a token no page may reach the network."""

    @pytest.fixture
    def unconfigured_views(self, store):
        def factory(settings):
            raise AssertionError("client must not be built without a token")

        return NitroViews(store, client_factory=factory)

    def test_dashboard(self, unconfigured_views):
        view = asyncio.run(unconfigured_views.load_dashboard())

        assert view.needs_configuration
        assert view.stats.total_transactions == 0

    def test_products(self, unconfigured_views):
        assert asyncio.run(unconfigured_views.load_products()).needs_configuration

    def test_transactions(self, unconfigured_views):
        view = asyncio.run(unconfigured_views.load_transactions("paid"))

        assert view.needs_configuration
        assert view.status_filter == "paid"

    def test_actions_raise(self, unconfigured_views):
        with pytest.raises(UnconfiguredError):
            unconfigured_views.refund_transaction("t1")
        with pytest.raises(UnconfiguredError):
            unconfigured_views.save_product({"title": "x"})


class TestLoaders:
    def test_dashboard_fetches_products_and_transactions(self, views, api):
        api.add("GET", "public/v1/products", {"data": [product_payload("p1"), product_payload("p2")]})
        api.add(
            "GET",
            "public/v1/transactions",
            {"data": [transaction_payload("t1", amount=1000), transaction_payload("t2", status="pending")]},
        )

        view = asyncio.run(views.load_dashboard())

        assert not view.needs_configuration
        assert view.error is None
        assert view.stats.total_products == 2
        assert view.stats.total_sales == 1000
        paths = sorted(r.url.path for r in api.requests)
        assert paths == ["/api/public/v1/products", "/api/public/v1/transactions"]

    def test_dashboard_error_degrades_to_empty_state(self, views, api):
        api.add("GET", "public/v1/products", {"data": []})
        api.add("GET", "public/v1/transactions", {"message": "Server Error"}, status=500)

        view = asyncio.run(views.load_dashboard())

        assert view.error == "HTTP 500 from Nitro API"
        assert view.stats.total_products == 0

    def test_dashboard_transport_error(self, views, api):
        api.fail_with = httpx.ConnectError("down")

        view = asyncio.run(views.load_dashboard())

        assert view.error is not None

    def test_products_with_categories(self, views, api):
        api.add("GET", "public/v1/products", {"data": [product_payload("p1")]})
        api.add("GET", "public/v1/products/categories", {"data": [{"id": 1, "name": "Cursos"}]})

        view = asyncio.run(views.load_products())

        assert [p.hash for p in view.products] == ["p1"]
        assert view.categories[0].name == "Cursos"

    def test_transactions_filtered(self, views, api):
        api.add(
            "GET",
            "public/v1/transactions",
            {"data": [transaction_payload("t1", status="paid"), transaction_payload("t2", status="cancelled")]},
        )

        view = asyncio.run(views.load_transactions("cancelled"))

        assert [t.hash for t in view.transactions] == ["t2"]

    def test_transactions_error(self, views, api):
        api.add("GET", "public/v1/transactions", {"data": "oops"})

        view = asyncio.run(views.load_transactions())

        assert view.transactions == []
        assert view.error


class TestActions:
    def test_save_product_creates_without_hash(self, views, api):
        api.add("POST", "public/v1/products", {"data": product_payload("new")})

        result = views.save_product(ProductInput(title="Novo", amount=100))

        assert result.success
        assert result.data.hash == "new"
        assert api.requests[0].method == "POST"

    def test_save_product_updates_with_hash(self, views, api):
        api.add("PUT", "public/v1/products/p1", {"data": product_payload("p1", amount=300)})

        result = views.save_product({"amount": 300}, product_hash="p1")

        assert result.success
        assert api.json_body() == {"amount": 300}

    def test_save_product_failure_is_reported(self, views, api):
        api.add("POST", "public/v1/products", {"errors": {"title": ["required"]}}, status=422)

        result = views.save_product({"title": "x"})

        assert not result.success
        assert "422" in result.message

    def test_refund_paid_transaction(self, views, api):
        api.add("GET", "public/v1/transactions/t1", {"data": transaction_payload("t1", status="paid")})
        api.add("POST", "public/v1/transactions/t1/refund", {"data": transaction_payload("t1", status="refunded")})

        result = views.refund_transaction("t1")

        assert result.success
        assert result.data.status == TransactionStatus.REFUNDED

    @pytest.mark.parametrize("status", ["pending", "cancelled", "refunded"])
    def test_refund_refused_unless_paid(self, views, api, status):
        api.add("GET", "public/v1/transactions/t1", {"data": transaction_payload("t1", status=status)})

        with pytest.raises(RefundNotAllowedError):
            views.refund_transaction("t1")

        assert all(not r.url.path.endswith("/refund") for r in api.requests)

    def test_refund_failure_is_reported(self, views, api):
        api.add("GET", "public/v1/transactions/t1", {"data": transaction_payload("t1", status="paid")})
        api.add("POST", "public/v1/transactions/t1/refund", {"message": "denied"}, status=400)

        result = views.refund_transaction("t1", amount=100)

        assert not result.success
        assert api.json_body() == {"amount": 100}


class TestViewTracker:
    def test_latest_load_wins(self):
        tracker = ViewTracker()
        first = tracker.begin("dashboard")
        second = tracker.begin("dashboard")

        assert tracker.commit(second, "new")
        assert not tracker.commit(first, "old")
        assert tracker.get("dashboard") == "new"

    def test_views_are_independent(self):
        tracker = ViewTracker()
        dashboard = tracker.begin("dashboard")
        tracker.begin("transactions")

        assert tracker.is_current(dashboard)
        assert tracker.commit(dashboard, "stats")
