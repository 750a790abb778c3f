"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the API's request validation and
match the exact field names of its Pydantic request schemas.
"""

import random
import uuid
from datetime import datetime, timedelta

from faker import Faker

fake = Faker("es_MX")

PRESENTATIONS = ["Entero", "Medio", "Cuarto", "Orden", "Litro", ""]


# ---------- Users ----------


def user_headers(user_id: int | None = None) -> dict:
    """Headers carrying a random trusted caller id."""
    return {"X-User-Id": str(user_id or random.randint(1, 10_000_000))}


# ---------- Catalogue ----------


def product_name(flagship: bool = False) -> str:
    suffix = uuid.uuid4().hex[:6]
    if flagship:
        return f"Pollo {fake.word()} {suffix}"[:150]
    return f"{fake.word().capitalize()} {fake.word()} {suffix}"[:150]


def product_data(flagship: bool = False, stock: int | None = None, gifts: list[dict] | None = None) -> dict:
    """Generate CreateProductRequest payload matching schema field names."""
    return {
        "name": product_name(flagship),
        "presentation": random.choice(PRESENTATIONS),
        "description": fake.sentence(),
        "price": f"{random.uniform(15, 400):.2f}",
        "stock_quantity": stock if stock is not None else random.randint(50, 500),
        "min_stock": random.randint(0, 10),
        "gifts": gifts or [],
    }


def gift_allocation(gift_id: str, quantity: int | None = None) -> dict:
    return {"gift_id": gift_id, "quantity": quantity or random.randint(1, 3)}


# ---------- Inventory ----------


def stock_receipt() -> dict:
    """Generate AdjustStockRequest payload for an IN movement."""
    return {
        "quantity": random.randint(10, 100),
        "type": "IN",
        "reason": f"Delivery {fake.bothify('REM-####')}",
    }


# ---------- Ordering ----------


def cart_item_data(product_id: str, quantity: int | None = None, selected_gifts: list[dict] | None = None) -> dict:
    """Generate AddToCartRequest payload."""
    return {
        "product_id": product_id,
        "quantity": quantity or random.randint(1, 3),
        "selected_gifts": selected_gifts or [],
    }


def next_weekday_at(weekday: int, hour: int) -> datetime:
    """Naive business-local datetime on the next ``weekday`` (Python numbering)."""
    today = datetime.now().date()
    day = today + timedelta(days=(weekday - today.weekday()) % 7 or 7)
    return datetime(day.year, day.month, day.day, hour, random.choice([0, 30]))


def checkout_data(scheduled: bool = False) -> dict:
    """Generate CheckoutRequest payload.

    Scheduled orders target a Friday or Saturday, whose default rules carry
    no thresholds, so they are accepted for any cart.
    """
    payload = {
        "type": "SCHEDULED" if scheduled else "IMMEDIATE",
        "delivery_type": random.choice(["PICKUP", "DELIVERY"]),
        "notes": fake.sentence()[:500] if random.random() < 0.3 else None,
        "payment_method": random.choice(["cash", "card", None]),
    }
    if scheduled:
        payload["scheduled_for"] = next_weekday_at(random.choice([4, 5]), random.randint(10, 18)).isoformat()
    return payload


def cancellation_reason() -> dict:
    return {"reason": fake.sentence()[:500]}
