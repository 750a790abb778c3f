"""Integration tests for Order API endpoints via TestClient."""

from datetime import datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from app import create_app

CUSTOMER = {"X-User-Id": "31"}
STAFF = {"X-User-Id": "1"}


@pytest.fixture()
def client(settings):
    client = TestClient(create_app(settings))
    assert client.post("/scheduling/rules/defaults").status_code == 201
    return client


def _next_local(settings, weekday, hour=12):
    """Naive business-local datetime for the next given weekday (never today)."""
    today = datetime.now(ZoneInfo(settings.business_timezone)).date()
    ahead = (weekday - today.weekday()) % 7 or 7
    day = today + timedelta(days=ahead)
    return datetime(day.year, day.month, day.day, hour, 0)


def _product(client, name="Pollo asado", price="180.00", stock=10):
    response = client.post("/products", json={"name": name, "price": price, "stock_quantity": stock})
    assert response.status_code == 201
    return response.json()


def _fill_cart(client, product_id, quantity):
    response = client.post("/cart/items", json={"product_id": product_id, "quantity": quantity}, headers=CUSTOMER)
    assert response.status_code == 201


def _checkout(client, **body):
    data = {"type": "IMMEDIATE", "delivery_type": "PICKUP"}
    data.update(body)
    return client.post("/orders", json=data, headers=CUSTOMER)


def _stock(client, product_id):
    return client.get(f"/inventory/{product_id}").json()["stock_quantity"]


class TestCheckout:
    def test_immediate_checkout(self, client):
        chicken = _product(client)
        _fill_cart(client, chicken["id"], 2)

        response = _checkout(client, notes="Extra salsa")

        assert response.status_code == 201
        order = response.json()
        assert order["status"] == "PENDING"
        assert order["user_id"] == 31
        assert Decimal(order["subtotal"]) == Decimal("360.00")
        assert Decimal(order["tax"]) == Decimal("57.60")
        assert Decimal(order["total"]) == Decimal("417.60")
        assert order["is_paid"] is False
        assert [h["notes"] for h in order["status_history"]] == ["Order created"]
        assert _stock(client, chicken["id"]) == 8
        assert client.get("/cart", headers=CUSTOMER).json()["items"] == []

    def test_empty_cart(self, client):
        response = _checkout(client)

        assert response.status_code == 400
        assert response.json()["messages"] == {"cart": ["Cart is empty"]}

    def test_stock_gone_since_adding(self, client):
        chicken = _product(client, stock=3)
        _fill_cart(client, chicken["id"], 3)
        client.post(f"/inventory/{chicken['id']}/adjust", json={"quantity": 1, "type": "ADJUSTMENT", "reason": "Dropped"})

        response = _checkout(client)

        assert response.status_code == 409
        assert _stock(client, chicken["id"]) == 1
        assert client.get("/orders/mine", headers=CUSTOMER).json()["pagination"]["total"] == 0

    def test_scheduled_friday_without_thresholds(self, client, settings):
        salsa = _product(client, name="Salsa", price="15.00")
        _fill_cart(client, salsa["id"], 1)

        response = _checkout(client, type="SCHEDULED", scheduled_for=_next_local(settings, 4).isoformat())

        assert response.status_code == 201
        assert response.json()["type"] == "SCHEDULED"

    def test_scheduled_monday_below_thresholds(self, client, settings):
        chicken = _product(client)
        _fill_cart(client, chicken["id"], 1)

        response = _checkout(client, type="SCHEDULED", scheduled_for=_next_local(settings, 0).isoformat())

        assert response.status_code == 422
        assert response.json()["error"] == "SchedulingRejected"
        assert _stock(client, chicken["id"]) == 10

    def test_scheduled_outside_window(self, client, settings):
        chicken = _product(client)
        _fill_cart(client, chicken["id"], 6)

        response = _checkout(client, type="SCHEDULED", scheduled_for=_next_local(settings, 0, hour=21).isoformat())

        assert response.status_code == 422

    def test_scheduled_without_time(self, client):
        chicken = _product(client)
        _fill_cart(client, chicken["id"], 1)

        assert _checkout(client, type="SCHEDULED").status_code == 400


class TestOrderLifecycle:
    @pytest.fixture()
    def order(self, client):
        chicken = _product(client)
        _fill_cart(client, chicken["id"], 4)
        order = _checkout(client).json()
        order["product_id"] = chicken["id"]
        return order

    def test_read_order(self, client, order):
        response = client.get(f"/orders/{order['id']}")

        assert response.status_code == 200
        assert response.json()["items"][0]["quantity"] == 4

    def test_unknown_order(self, client):
        assert client.get("/orders/missing").status_code == 404

    def test_status_progression(self, client, order):
        for status in ("IN_PREPARATION", "READY_FOR_PICKUP", "DELIVERED"):
            response = client.patch(f"/orders/{order['id']}/status", json={"status": status}, headers=STAFF)
            assert response.status_code == 200

        body = response.json()
        assert body["status"] == "DELIVERED"
        assert body["is_paid"] is True
        assert body["status_history"][-1]["changed_by"] == 1

    def test_illegal_status(self, client, order):
        response = client.patch(f"/orders/{order['id']}/status", json={"status": "DELIVERED"}, headers=STAFF)

        assert response.status_code == 409
        assert response.json()["error"] == "InvalidTransition"

    def test_cancel_restores_stock(self, client, order):
        response = client.post(f"/orders/{order['id']}/cancel", json={"reason": "Too late"}, headers=CUSTOMER)

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        assert response.json()["status_history"][-1]["notes"] == "Too late"
        assert _stock(client, order["product_id"]) == 10

    def test_cancel_without_body(self, client, order):
        response = client.post(f"/orders/{order['id']}/cancel", headers=CUSTOMER)
        assert response.status_code == 200

    def test_cancel_ready_order_is_rejected(self, client, order):
        for status in ("IN_PREPARATION", "READY_FOR_DELIVERY"):
            client.patch(f"/orders/{order['id']}/status", json={"status": status}, headers=STAFF)

        response = client.post(f"/orders/{order['id']}/cancel", headers=CUSTOMER)

        assert response.status_code == 409
        assert _stock(client, order["product_id"]) == 6

    def test_cancel_twice_restores_once(self, client, order):
        client.post(f"/orders/{order['id']}/cancel", headers=CUSTOMER)

        response = client.post(f"/orders/{order['id']}/cancel", headers=CUSTOMER)

        assert response.status_code == 409
        assert _stock(client, order["product_id"]) == 10
        movements = client.get(f"/inventory/{order['product_id']}/movements").json()
        assert [m["type"] for m in movements] == ["IN", "OUT", "ADJUSTMENT"]


class TestOrderQueries:
    def test_list_and_filter(self, client):
        chicken = _product(client)
        for _ in range(3):
            _fill_cart(client, chicken["id"], 1)
            _checkout(client)

        response = client.get("/orders", params={"limit": 2, "status": "PENDING"})

        body = response.json()
        assert response.status_code == 200
        assert len(body["orders"]) == 2
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}

    def test_mine_only_returns_callers_orders(self, client):
        chicken = _product(client)
        _fill_cart(client, chicken["id"], 1)
        _checkout(client)

        assert client.get("/orders/mine", headers=CUSTOMER).json()["pagination"]["total"] == 1
        assert client.get("/orders/mine", headers={"X-User-Id": "77"}).json()["pagination"]["total"] == 0

    def test_today_and_stats(self, client):
        chicken = _product(client, price="100.00")
        _fill_cart(client, chicken["id"], 1)
        order = _checkout(client).json()

        assert [o["id"] for o in client.get("/orders/today").json()] == [order["id"]]

        stats = client.get("/orders/stats").json()
        assert stats["total_orders"] == 1
        assert Decimal(stats["total_sales"]) == Decimal("116.00")
        assert stats["orders_by_type"] == {"IMMEDIATE": 1}

    def test_scheduled_for_date(self, client, settings):
        salsa = _product(client, name="Salsa", price="15.00")
        _fill_cart(client, salsa["id"], 1)
        friday = _next_local(settings, 4)
        order = _checkout(client, type="SCHEDULED", scheduled_for=friday.isoformat()).json()

        response = client.get("/orders/scheduled", params={"date": friday.date().isoformat()})

        assert [o["id"] for o in response.json()] == [order["id"]]
