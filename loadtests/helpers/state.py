"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared across
users. State tracks ids returned by creation endpoints so follow-up requests
can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class CatalogueState:
    """Products created by this user, split by role."""

    product_ids: list[str] = field(default_factory=list)
    flagship_ids: list[str] = field(default_factory=list)
    gift_id: str | None = None
    bundle_id: str | None = None


@dataclass
class CartState:
    """Tracks state for a single customer's cart."""

    user_id: int | None = None
    item_ids: list[str] = field(default_factory=list)


@dataclass
class OrderState:
    """Tracks state for a single order lifecycle."""

    user_id: int | None = None
    order_id: str | None = None
    current_status: str = "PENDING"
