"""Cart aggregate: one cart per user, consumed by checkout.

Each CartItem stores its gift selections already multiplied by the item
quantity: selecting 2 gifts per unit on 3 units stores 6. Quantity changes
rescale the stored selections as ``(stored // old_quantity) × new_quantity``.
"""

import json
from decimal import Decimal

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, Text
from protean.utils.globals import current_uow
from sqlalchemy import select

from shared.clock import utcnow
from shared.db import table_of, uow_session
from shared.domain import orderflow
from shared.errors import NotFound


@orderflow.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    selected_gifts = Text()  # JSON array of {"gift_id", "quantity"}, stored totals
    position = Integer(default=0)
    added_at = DateTime()

    def gifts(self):
        """Stored selections as ``{gift_id: quantity}``, in selection order."""
        entries = json.loads(self.selected_gifts) if self.selected_gifts else []
        return {entry["gift_id"]: entry["quantity"] for entry in entries}

    def set_gifts(self, quantities):
        self.selected_gifts = json.dumps(
            [{"gift_id": str(gift_id), "quantity": quantity} for gift_id, quantity in quantities.items()]
        )

    def rescale(self, new_quantity):
        """Change the quantity, keeping the per-unit gift selection."""
        old_quantity = self.quantity
        self.set_gifts({gift_id: (stored // old_quantity) * new_quantity for gift_id, stored in self.gifts().items()})
        self.quantity = new_quantity


def per_unit_gifts(product, selections):
    """Validate gift selections against the product's allocations.

    Args:
        selections: (gift_id, per-unit quantity) pairs.

    Returns ``{gift_id: per_unit_quantity}``.

    Raises:
        ValidationError: a gift is not allocated to the product, is selected
            twice, or exceeds the allocated per-unit quantity.
    """
    result = {}
    for gift_id, quantity in selections:
        allocation = product.allocation_for(gift_id)
        if allocation is None:
            raise ValidationError({"selected_gifts": [f"Gift {gift_id} is not available for {product.display_name}"]})
        if gift_id in result:
            raise ValidationError({"selected_gifts": [f"Gift {gift_id} selected more than once"]})
        if quantity > allocation.quantity:
            raise ValidationError(
                {"selected_gifts": [f"Gift quantity exceeds the allowed limit (maximum: {allocation.quantity})"]}
            )
        result[gift_id] = quantity
    return result


@orderflow.aggregate
class Cart:
    user_id = Integer(required=True, unique=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id):
        now = utcnow()
        return cls(user_id=user_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def lines(self):
        """Items in the order they were first added."""
        return sorted(self.items, key=lambda item: item.position)

    @property
    def is_empty(self):
        return not self.items

    @property
    def item_count(self):
        return sum(item.quantity for item in self.items)

    def subtotal(self, prices):
        """Sum of ``price × quantity``; ``prices`` maps product id to the current unit price."""
        return sum((prices[str(item.product_id)] * item.quantity for item in self.items), Decimal("0"))

    def item_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def get_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise NotFound({"item_id": [f"Cart item {item_id} not found"]})
        return item

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product, quantity, gifts_per_unit=None):
        """Add ``quantity`` units of ``product``, merging into an existing line.

        ``gifts_per_unit`` replaces the line's selections when given; when
        omitted an existing line keeps its per-unit selection.
        """
        now = utcnow()
        self.updated_at = now

        existing = self.item_for(product.id)
        if existing is None:
            item = CartItem(
                product_id=str(product.id),
                quantity=quantity,
                position=max((i.position for i in self.items), default=0) + 1,
                added_at=now,
            )
            item.set_gifts({gift_id: per_unit * quantity for gift_id, per_unit in (gifts_per_unit or {}).items()})
            self.add_items(item)
            return item

        new_quantity = existing.quantity + quantity
        if gifts_per_unit:
            existing.quantity = new_quantity
            existing.set_gifts({gift_id: per_unit * new_quantity for gift_id, per_unit in gifts_per_unit.items()})
        else:
            existing.rescale(new_quantity)
        return existing

    def update_item_quantity(self, item_id, new_quantity):
        item = self.get_item(item_id)
        item.rescale(new_quantity)
        self.updated_at = utcnow()
        return item

    def remove_item(self, item_id):
        self.remove_items(self.get_item(item_id))
        self.updated_at = utcnow()

    def clear(self):
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = utcnow()


@orderflow.repository(part_of=Cart)
class CartRepository:
    def for_user(self, user_id):
        """The user's cart, or None."""
        carts = self._dao.query.filter(user_id=user_id).all().items
        return self.get(carts[0].id) if carts else None

    def lock_for_user(self, user_id):
        """The user's cart with its row locked for the rest of the unit of work, or None.

        Serializes concurrent checkouts of the same cart.
        """
        if not current_uow:
            return self.for_user(user_id)
        table = table_of(self._dao)
        row = (
            uow_session(self._dao)
            .execute(select(table.c.id).where(table.c.user_id == user_id).with_for_update())
            .first()
        )
        return self.get(row.id) if row is not None else None
