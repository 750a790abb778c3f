"""Integration tests for the Scheduling API via TestClient."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from app import create_app


@pytest.fixture()
def client(settings):
    return TestClient(create_app(settings))


@pytest.fixture()
def seeded(client):
    response = client.post("/scheduling/rules/defaults")
    assert response.status_code == 201
    return {rule["day_of_week"]: rule for rule in response.json()}


def _next_monday_noon(settings):
    today = datetime.now(ZoneInfo(settings.business_timezone)).date()
    day = today + timedelta(days=(0 - today.weekday()) % 7 or 7)
    return datetime(day.year, day.month, day.day, 12, 0)


class TestRuleEndpoints:
    def test_seed_defaults_once(self, client, seeded):
        assert len(seeded) == 7
        assert seeded[1]["day_name"] == "Monday"

        again = client.post("/scheduling/rules/defaults")
        assert again.json() == []

    def test_create_rule(self, client):
        response = client.post(
            "/scheduling/rules",
            json={"day_of_week": 2, "min_amount": "250.00", "start_time": "9:00", "end_time": "17:00"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["day_name"] == "Tuesday"
        assert body["start_time"] == "09:00"

    def test_duplicate_day_conflicts(self, client, seeded):
        response = client.post("/scheduling/rules", json={"day_of_week": 1})

        assert response.status_code == 409
        assert response.json()["error"] == "Conflict"

    def test_inverted_window(self, client):
        response = client.post("/scheduling/rules", json={"day_of_week": 3, "start_time": "18:00", "end_time": "09:00"})
        assert response.status_code == 400

    def test_malformed_time(self, client):
        response = client.post("/scheduling/rules", json={"day_of_week": 3, "start_time": "25:00"})
        assert response.status_code == 400
        assert response.json()["messages"]["start_time"] == ["must be in HH:MM format"]

    def test_update_toggle_delete(self, client, seeded):
        rule_id = seeded[1]["id"]

        response = client.patch(f"/scheduling/rules/{rule_id}", json={"min_chicken_quantity": 3})
        assert response.json()["min_chicken_quantity"] == 3

        response = client.post(f"/scheduling/rules/{rule_id}/toggle")
        assert response.json()["is_active"] is False

        assert client.delete(f"/scheduling/rules/{rule_id}").status_code == 204
        assert client.get(f"/scheduling/rules/{rule_id}").status_code == 404

    def test_unknown_rule(self, client):
        assert client.get("/scheduling/rules/missing").status_code == 404
        assert client.patch("/scheduling/rules/missing", json={"is_active": False}).status_code == 404
        assert client.delete("/scheduling/rules/missing").status_code == 404


class TestDayInformation:
    def test_weekly(self, client, seeded):
        client.post(f"/scheduling/rules/{seeded[0]['id']}/toggle")

        days = client.get("/scheduling/weekly").json()

        assert [d["day_of_week"] for d in days] == list(range(7))
        assert days[0]["can_schedule"] is False
        assert days[0]["reason"] == "Orders cannot be scheduled for this day"
        assert days[1]["can_schedule"] is True
        assert days[1]["min_chicken_quantity"] == 5

    def test_day_out_of_range(self, client):
        assert client.get("/scheduling/days/7").status_code == 400

    def test_day_without_rule(self, client):
        assert client.get("/scheduling/days/3").json()["can_schedule"] is False

    def test_time_slots(self, client, seeded):
        body = client.get("/scheduling/time-slots", params={"date": "2026-11-02"}).json()

        assert body["day_name"] == "Monday"
        assert body["slots"][0] == "09:00"
        assert body["slots"][-1] == "17:30"
        assert len(body["slots"]) == 18


class TestValidateEndpoint:
    @pytest.fixture()
    def chicken(self, client):
        return client.post("/products", json={"name": "Pollo asado", "price": "180.00", "stock_quantity": 20}).json()

    def test_explicit_items(self, client, settings, seeded, chicken):
        when = _next_monday_noon(settings).isoformat()

        small = client.post(
            "/scheduling/validate",
            json={"scheduled_for": when, "items": [{"product_id": chicken["id"], "quantity": 1}]},
        ).json()
        large = client.post(
            "/scheduling/validate",
            json={"scheduled_for": when, "items": [{"product_id": chicken["id"], "quantity": 5}]},
        ).json()

        assert small["allowed"] is False
        assert "Monday" in small["reason"]
        assert large["allowed"] is True
        assert large["rule"]["day_of_week"] == 1

    def test_callers_cart(self, client, settings, seeded, chicken):
        headers = {"X-User-Id": "4"}
        client.post("/cart/items", json={"product_id": chicken["id"], "quantity": 2}, headers=headers)

        body = client.post(
            "/scheduling/validate",
            json={"scheduled_for": _next_monday_noon(settings).isoformat()},
            headers=headers,
        ).json()

        # 2 × 180 meets the 300 minimum
        assert body["allowed"] is True

    def test_needs_items_or_caller(self, client, settings):
        response = client.post("/scheduling/validate", json={"scheduled_for": _next_monday_noon(settings).isoformat()})
        assert response.status_code == 400
