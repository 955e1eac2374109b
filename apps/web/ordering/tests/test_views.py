"""
Integration tests for ordering API views.
"""

from unittest.mock import patch

from django.core.cache import cache
from django.test import Client as DjangoClient

import pytest

from apps.web.backend import MockBackend
from apps.web.ordering.tests.factories import OrderFactory


@pytest.fixture
def api_client() -> DjangoClient:
    """Django test client for API requests."""
    return DjangoClient()


@pytest.fixture(autouse=True)
def mock_backend(backend: MockBackend):
    """Route every view to the test's in-memory backend."""
    with patch("apps.web.ordering.views.get_backend", return_value=backend):
        yield backend


@pytest.fixture
def signed_in(api_client: DjangoClient) -> DjangoClient:
    response = api_client.post(
        "/api/login",
        {"email": "guest@example.com", "password": MockBackend.DEFAULT_PASSWORD},
        content_type="application/json",
    )
    assert response.status_code == 200
    return api_client


def _add_to_cart(client: DjangoClient, dish_id: str, quantity: int = 1):
    return client.post(
        "/api/cart/items",
        {"dish_id": dish_id, "quantity": quantity},
        content_type="application/json",
    )


def _place_order(client: DjangoClient, table_no: str = "5", key: str = "place-1"):
    return client.post(
        "/api/orders",
        {"table_no": table_no},
        content_type="application/json",
        headers={"Idempotency-Key": key},
    )


def _pay(client: DjangoClient, key: str = "pay-1"):
    return client.post(
        "/api/orders/current/pay",
        content_type="application/json",
        headers={"Idempotency-Key": key},
    )


# =============================================================================
# Customer Session
# =============================================================================


class TestLoginView:
    """Tests for POST /api/login and /api/logout."""

    def test_login_success(self, api_client):
        response = api_client.post(
            "/api/login",
            {"email": "guest@example.com", "password": "password"},
            content_type="application/json",
        )

        assert response.status_code == 200
        assert response.json()["customer"]["customer_id"] == "C1"

    def test_login_rejected(self, api_client):
        response = api_client.post(
            "/api/login",
            {"email": "guest@example.com", "password": "wrong"},
            content_type="application/json",
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    def test_login_blank_fields(self, api_client):
        response = api_client.post(
            "/api/login",
            {"email": "", "password": ""},
            content_type="application/json",
        )

        assert response.status_code == 400
        assert response.json()["error_type"] == "ValidationError"

    def test_login_malformed_body(self, api_client):
        response = api_client.post(
            "/api/login", {"email": "guest@example.com"}, content_type="application/json"
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation_error"
        assert data["details"][0]["field"] == "password"

    def test_login_requires_post(self, api_client):
        assert api_client.get("/api/login").status_code == 405

    def test_json_responses_carry_cors_headers(self, api_client):
        response = api_client.get("/api/menu")

        assert response["Access-Control-Allow-Origin"] == "*"
        assert "DELETE" in response["Access-Control-Allow-Methods"]
        assert "Idempotency-Key" in response["Access-Control-Allow-Headers"]

    def test_logout_clears_session(self, signed_in):
        _add_to_cart(signed_in, "D1")

        response = signed_in.post("/api/logout")

        assert response.status_code == 200
        assert signed_in.get("/api/cart").json()["items"] == []
        assert signed_in.get("/api/orders").status_code == 401


class TestProfileView:
    """Tests for GET /api/profile."""

    def test_profile_reloads_customer(self, signed_in, mock_backend):
        response = signed_in.get("/api/profile")

        assert response.status_code == 200
        assert response.json()["customer"]["name"] == "Guest"
        assert "get_customer C1" in mock_backend.calls

    def test_profile_requires_sign_in(self, api_client):
        assert api_client.get("/api/profile").status_code == 401


class TestRegisterView:
    """Tests for POST /api/register."""

    def test_register_then_sign_in(self, api_client):
        response = api_client.post(
            "/api/register",
            {
                "name": "Ravi",
                "email": "ravi@example.com",
                "phone": "98765 43210",
                "password": "secret1",
            },
            content_type="application/json",
        )

        assert response.status_code == 201
        assert response.json()["customer"]["customer_id"] == "C2"
        assert api_client.get("/api/orders").status_code == 401

        login = api_client.post(
            "/api/login",
            {"email": "ravi@example.com", "password": "secret1"},
            content_type="application/json",
        )
        assert login.json()["customer"]["name"] == "Ravi"

    def test_short_password(self, api_client):
        response = api_client.post(
            "/api/register",
            {"name": "Ravi", "email": "ravi@example.com", "password": "123"},
            content_type="application/json",
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "password"

    def test_duplicate_email(self, api_client):
        response = api_client.post(
            "/api/register",
            {"name": "G", "email": "guest@example.com", "password": "secret1"},
            content_type="application/json",
        )

        assert response.status_code == 400
        assert "already registered" in response.json()["error"]


# =============================================================================
# Menu and Tables
# =============================================================================


class TestMenuView:
    """Tests for GET /api/menu."""

    def test_full_menu(self, api_client):
        response = api_client.get("/api/menu")

        assert response.status_code == 200
        assert len(response.json()["dishes"]) == 4

    def test_category_filter(self, api_client):
        response = api_client.get("/api/menu?category=dessert")

        assert [d["dish_id"] for d in response.json()["dishes"]] == ["D4"]

    def test_prices_are_exact(self, api_client):
        dishes = api_client.get("/api/menu").json()["dishes"]
        assert dishes[0]["price"] == "100"


class TestTableViews:
    """Tests for table listing and claiming."""

    def test_claim_requires_sign_in(self, api_client):
        response = api_client.post("/api/tables/1/claim")
        assert response.status_code == 401

    def test_claim_then_unavailable(self, signed_in, mock_backend):
        response = signed_in.post("/api/tables/3/claim")

        assert response.status_code == 200
        assert response.json()["table"]["customer_id"] == "C1"
        available = signed_in.get("/api/tables/available").json()["tables"]
        assert "3" not in [t["table_no"] for t in available]

    def test_table_detail(self, signed_in):
        signed_in.post("/api/tables/3/claim")

        response = signed_in.get("/api/tables/3")

        assert response.status_code == 200
        assert response.json()["table"]["customer_id"] == "C1"

    def test_unknown_table(self, api_client):
        assert api_client.get("/api/tables/99").status_code == 404


# =============================================================================
# Cart
# =============================================================================


class TestCartViews:
    """Tests for the session cart endpoints."""

    def test_add_and_merge(self, api_client):
        _add_to_cart(api_client, "D1", 2)
        response = _add_to_cart(api_client, "D1", 1)

        data = response.json()
        assert response.status_code == 200
        assert len(data["items"]) == 1
        assert data["items"][0]["quantity"] == 3
        assert data["item_count"] == 3
        assert data["total"] == "300"

    def test_cart_survives_requests(self, api_client):
        _add_to_cart(api_client, "D2", 2)

        data = api_client.get("/api/cart").json()

        assert data["items"][0]["dish"]["name"] == "Masala Dosa"
        assert data["total"] == "100"

    def test_unknown_dish(self, api_client):
        response = _add_to_cart(api_client, "D99")

        assert response.status_code == 400
        assert "not found" in response.json()["error"]

    def test_missing_dish_id(self, api_client):
        response = api_client.post(
            "/api/cart/items", {"quantity": 1}, content_type="application/json"
        )
        assert response.status_code == 400

    def test_update_quantity_zero_removes(self, api_client):
        _add_to_cart(api_client, "D1")

        response = api_client.post(
            "/api/cart/items/D1", {"quantity": 0}, content_type="application/json"
        )

        assert response.json()["items"] == []

    def test_remove_item(self, api_client):
        _add_to_cart(api_client, "D1")
        _add_to_cart(api_client, "D2")

        response = api_client.delete("/api/cart/items/D1")

        assert [i["dish"]["dish_id"] for i in response.json()["items"]] == ["D2"]

    def test_clear_cart(self, api_client):
        _add_to_cart(api_client, "D1")

        response = api_client.delete("/api/cart")

        assert response.json() == {"items": [], "item_count": 0, "total": "0"}


# =============================================================================
# Orders
# =============================================================================


class TestPlaceOrderView:
    """Tests for POST /api/orders."""

    def test_requires_sign_in(self, api_client):
        response = _place_order(api_client)
        assert response.status_code == 401

    def test_requires_idempotency_key(self, signed_in):
        _add_to_cart(signed_in, "D1")

        response = signed_in.post(
            "/api/orders", {"table_no": "5"}, content_type="application/json"
        )

        assert response.status_code == 400
        assert "Idempotency-Key" in response.json()["error"]

    def test_place_order(self, signed_in):
        _add_to_cart(signed_in, "D1", 2)

        response = _place_order(signed_in)

        assert response.status_code == 201
        order = response.json()["order"]
        assert order["amount"] == "200"
        assert order["table_no"] == "5"
        assert signed_in.get("/api/cart").json()["items"] == []

    def test_empty_cart(self, signed_in, mock_backend):
        response = _place_order(signed_in)

        assert response.status_code == 400
        assert response.json()["error"] == "Cart is empty"
        assert not any(c.startswith("create_order") for c in mock_backend.calls)

    def test_replay_returns_first_response(self, signed_in, mock_backend):
        _add_to_cart(signed_in, "D1")

        first = _place_order(signed_in, key="same-key")
        second = _place_order(signed_in, key="same-key")

        assert second.status_code == 201
        assert second.json() == first.json()
        assert [c for c in mock_backend.calls if c.startswith("create_order")] == [
            "create_order 5"
        ]

    def test_second_order_is_conflict(self, signed_in):
        _add_to_cart(signed_in, "D1")
        _place_order(signed_in, key="k1")
        _add_to_cart(signed_in, "D2")

        response = _place_order(signed_in, key="k2")

        assert response.status_code == 409
        assert response.json()["order_id"]

    def test_submission_in_flight_for_customer(self, signed_in, mock_backend):
        """Another request for the same customer is still placing an order."""
        _add_to_cart(signed_in, "D1")
        cache.add("ordering:in-flight:C1", "place order")

        response = _place_order(signed_in)

        assert response.status_code == 409
        assert "in progress" in response.json()["error"]
        assert not any(c.startswith("create_order") for c in mock_backend.calls)

    def test_backend_failure_is_retryable(self, signed_in, mock_backend):
        _add_to_cart(signed_in, "D1")
        mock_backend.fail_orders = True

        response = _place_order(signed_in)

        assert response.status_code == 502
        assert response.json()["is_retryable"] is True
        assert len(signed_in.get("/api/cart").json()["items"]) == 1


class TestOrderLifecycleViews:
    """End-to-end: place, add items, wait for serving, pay."""

    def test_full_flow(self, signed_in, mock_backend):
        _add_to_cart(signed_in, "D1", 2)
        order_id = _place_order(signed_in).json()["order"]["order_id"]

        current = signed_in.get("/api/orders/current").json()
        assert current["state"] == "placed"
        assert current["order_id"] == order_id
        assert current["order"]["amount"] == "200"

        # Paying before the food arrives is blocked
        response = _pay(signed_in, key="early")
        assert response.status_code == 409
        assert response.json()["error"] == "Cannot process payment until food is served"

        mock_backend.mark_served(order_id)
        assert signed_in.get("/api/orders/current").json()["state"] == "served"

        # Adding items restarts preparation
        _add_to_cart(signed_in, "D2")
        response = signed_in.post("/api/orders/current/items")
        assert response.status_code == 200
        assert response.json()["order"]["amount"] == "250"
        assert signed_in.get("/api/orders/current").json()["state"] == "placed"

        mock_backend.mark_served(order_id)
        response = _pay(signed_in, key="final")
        assert response.status_code == 200
        assert response.json()["order"]["is_paid"] is True

        current = signed_in.get("/api/orders/current").json()
        assert current["state"] == "no_order"
        assert current["order_id"] is None

    def test_current_adopts_open_order(self, signed_in, mock_backend):
        order = OrderFactory(customer_id="C1")
        mock_backend.add_order(order)

        current = signed_in.get("/api/orders/current").json()

        assert current["state"] == "placed"
        assert current["order_id"] == order.order_id

    def test_add_items_without_order(self, signed_in):
        _add_to_cart(signed_in, "D2")
        response = signed_in.post("/api/orders/current/items")
        assert response.status_code == 400

    def test_history(self, signed_in, mock_backend):
        mock_backend.add_order(OrderFactory(customer_id="C1"))
        mock_backend.add_order(OrderFactory(customer_id="C2"))

        orders = signed_in.get("/api/orders").json()["orders"]

        assert [o["customer_id"] for o in orders] == ["C1"]


class TestOrderDetailView:
    """Tests for GET /api/orders/<order_id>."""

    def test_own_order(self, signed_in, mock_backend):
        order = OrderFactory(customer_id="C1")
        mock_backend.add_order(order)

        response = signed_in.get(f"/api/orders/{order.order_id}")

        assert response.status_code == 200
        assert response.json()["order"]["order_id"] == order.order_id

    def test_other_customers_order_is_hidden(self, signed_in, mock_backend):
        order = OrderFactory(customer_id="C2")
        mock_backend.add_order(order)

        response = signed_in.get(f"/api/orders/{order.order_id}")

        assert response.status_code == 404

    def test_unknown_order(self, signed_in):
        assert signed_in.get("/api/orders/ORD-0").status_code == 404


class TestFeedbackViews:
    """Tests for feedback endpoints."""

    def test_feedback_for_current_order(self, signed_in):
        _add_to_cart(signed_in, "D1")
        order_id = _place_order(signed_in).json()["order"]["order_id"]

        response = signed_in.post(
            "/api/feedback", {"feedback": "Lovely"}, content_type="application/json"
        )

        assert response.status_code == 201
        assert response.json()["feedback"]["order_id"] == order_id
        entries = signed_in.get(f"/api/orders/{order_id}/feedback").json()["feedback"]
        assert [e["feedback"] for e in entries] == ["Lovely"]

    def test_blank_feedback(self, signed_in):
        response = signed_in.post(
            "/api/feedback",
            {"feedback": "  ", "order_id": "ORD-1"},
            content_type="application/json",
        )
        assert response.status_code == 400

    def test_list_own_feedback(self, signed_in, mock_backend):
        signed_in.post(
            "/api/feedback",
            {"feedback": "Lovely", "order_id": "ORD-1"},
            content_type="application/json",
        )
        signed_in.post(
            "/api/feedback",
            {"feedback": "Again", "order_id": "ORD-2"},
            content_type="application/json",
        )

        response = signed_in.get("/api/feedback")

        assert response.status_code == 200
        assert [e["order_id"] for e in response.json()["feedback"]] == [
            "ORD-1",
            "ORD-2",
        ]
        assert "list_feedback_for_customer C1" in mock_backend.calls

    def test_feedback_requires_sign_in(self, api_client):
        assert api_client.get("/api/feedback").status_code == 401

    def test_other_customers_order_feedback_is_hidden(self, signed_in, mock_backend):
        order = OrderFactory(customer_id="C2")
        mock_backend.add_order(order)

        response = signed_in.get(f"/api/orders/{order.order_id}/feedback")

        assert response.status_code == 404
        assert response.json()["error"] == "Order not found"
