"""Order aggregate: an immutable snapshot of a checked-out cart.

Once placed, only ``status``, ``is_paid`` and ``paid_at`` may change; item
prices are copied from the catalogue at checkout and never recomputed. Every
status change appends a StatusChange entry.

State Machine:
    PENDING → IN_PREPARATION → READY_FOR_PICKUP / READY_FOR_DELIVERY → DELIVERED
    CANCELLED (from any non-terminal state)
    DELIVERED and CANCELLED are terminal.
"""

import json
from enum import Enum

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text
from sqlalchemy import func, or_, select, update

from shared.clock import as_utc, utcnow
from shared.db import dao_session, table_of, uow_session
from shared.domain import orderflow
from shared.errors import InvalidTransition, NotFound
from shared.money import as_decimal


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "PENDING"
    IN_PREPARATION = "IN_PREPARATION"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    READY_FOR_DELIVERY = "READY_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class OrderType(Enum):
    IMMEDIATE = "IMMEDIATE"
    SCHEDULED = "SCHEDULED"


class DeliveryType(Enum):
    PICKUP = "PICKUP"
    DELIVERY = "DELIVERY"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.IN_PREPARATION, OrderStatus.CANCELLED},
    OrderStatus.IN_PREPARATION: {
        OrderStatus.READY_FOR_PICKUP,
        OrderStatus.READY_FOR_DELIVERY,
        OrderStatus.CANCELLED,
    },
    OrderStatus.READY_FOR_PICKUP: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.READY_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# States from which a customer-facing cancellation is allowed
_CANCELLABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.IN_PREPARATION,
}

# Everything else on a placed order is frozen
_SNAPSHOT_FIELDS = (
    "user_id",
    "order_type",
    "delivery_type",
    "subtotal",
    "tax",
    "total",
    "scheduled_for",
    "address_id",
    "notes",
    "payment_method",
    "created_at",
)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@orderflow.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    gift_selections = Text()  # JSON array of {"gift_id", "quantity"}
    line_number = Integer(default=0)

    @property
    def price(self):
        return as_decimal(self.unit_price)

    @property
    def line_total(self):
        return self.price * self.quantity

    def gifts(self):
        """Gift selections as (gift_id, quantity) pairs."""
        entries = json.loads(self.gift_selections) if self.gift_selections else []
        return [(entry["gift_id"], entry["quantity"]) for entry in entries]


@orderflow.entity(part_of="Order")
class StatusChange:
    """Append-only audit trail of status changes."""

    status = String(max_length=30, choices=OrderStatus, required=True)
    changed_by = Integer()
    notes = Text()
    sequence = Integer(default=0)
    changed_at = DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@orderflow.aggregate
class Order:
    user_id = Integer(required=True)
    order_type = String(max_length=20, choices=OrderType, required=True)
    delivery_type = String(max_length=20, choices=DeliveryType, required=True)
    status = String(max_length=30, choices=OrderStatus, default=OrderStatus.PENDING.value)
    subtotal = Float(required=True, min_value=0.0)
    tax = Float(required=True, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    scheduled_for = DateTime()
    address_id = Integer()
    notes = Text()
    payment_method = String(max_length=50)
    is_paid = Boolean(default=False)
    paid_at = DateTime()
    items = HasMany(OrderItem)
    status_history = HasMany(StatusChange)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def scheduled_orders_need_a_time(self):
        if self.order_type == OrderType.SCHEDULED.value and self.scheduled_for is None:
            raise ValidationError({"scheduled_for": ["A delivery time is required for scheduled orders"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        user_id,
        order_type,
        delivery_type,
        totals,
        scheduled_for=None,
        address_id=None,
        notes=None,
        payment_method=None,
    ):
        now = utcnow()
        return cls(
            user_id=user_id,
            order_type=OrderType(order_type).value,
            delivery_type=DeliveryType(delivery_type).value,
            status=OrderStatus.PENDING.value,
            subtotal=float(totals.subtotal),
            tax=float(totals.tax),
            total=float(totals.total),
            scheduled_for=scheduled_for,
            address_id=address_id,
            notes=notes,
            payment_method=payment_method,
            is_paid=False,
            created_at=now,
            updated_at=now,
        )

    def add_item(self, product_id, quantity, unit_price, gift_selections=()):
        item = OrderItem(
            product_id=str(product_id),
            quantity=quantity,
            unit_price=float(unit_price),
            gift_selections=json.dumps(
                [{"gift_id": str(gift_id), "quantity": gift_quantity} for gift_id, gift_quantity in gift_selections]
            ),
            line_number=len(self.items) + 1,
        )
        self.add_items(item)
        return item

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def lines(self):
        return sorted(self.items, key=lambda item: item.line_number)

    @property
    def timeline(self):
        """Status history, oldest first."""
        return sorted(self.status_history, key=lambda change: change.sequence)

    # -------------------------------------------------------------------
    # Status machine
    # -------------------------------------------------------------------
    @property
    def current_status(self):
        return OrderStatus(self.status)

    @property
    def is_terminal(self):
        return not _VALID_TRANSITIONS[self.current_status]

    @property
    def can_be_cancelled(self):
        return self.current_status in _CANCELLABLE_STATES

    def assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        current = self.current_status
        target_status = OrderStatus(target_status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition({"status": [f"Cannot change status from {current.value} to {target_status.value}"]})

    def record_status(self, status, changed_by, notes=None):
        self.add_status_history(
            StatusChange(
                status=OrderStatus(status).value,
                changed_by=changed_by,
                notes=notes,
                sequence=max((c.sequence for c in self.status_history), default=0) + 1,
                changed_at=utcnow(),
            )
        )

    def transition_to(self, target_status, changed_by, notes=None):
        """Move to ``target_status`` and append the matching history entry."""
        target_status = OrderStatus(target_status)
        self.assert_can_transition(target_status)

        now = utcnow()
        self.status = target_status.value
        self.updated_at = now
        if target_status == OrderStatus.DELIVERED:
            self.is_paid = True
            self.paid_at = now

        self.record_status(target_status, changed_by, notes)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------
def _comparable(value):
    if hasattr(value, "tzinfo"):
        return as_utc(value)
    if isinstance(value, float):
        return as_decimal(value)
    return value


def _item_signature(order):
    return sorted(
        (str(i.product_id), i.quantity, as_decimal(i.unit_price), i.gift_selections or "[]", i.line_number)
        for i in order.items
    )


@orderflow.repository(part_of=Order)
class OrderRepository:
    def add(self, order):
        """Persist ``order``; a placed order may only change status and payment."""
        try:
            stored = self._dao.get(order.id)
        except ObjectNotFoundError:
            return super().add(order)

        changed = [f for f in _SNAPSHOT_FIELDS if _comparable(getattr(stored, f)) != _comparable(getattr(order, f))]
        if changed:
            raise ValidationError({field: ["Orders are immutable once placed"] for field in changed})
        if _item_signature(stored) != _item_signature(order):
            raise ValidationError({"items": ["Order items are immutable once placed"]})
        return super().add(order)

    def get_order(self, order_id):
        try:
            return self.get(order_id)
        except ObjectNotFoundError:
            raise NotFound({"order_id": [f"Order {order_id} not found"]}) from None

    def claim_status(self, order, target_status):
        """Move the stored status from ``order.status`` to ``target_status`` in one conditional UPDATE.

        Raises:
            InvalidTransition: the stored status is no longer ``order.status``;
                another unit of work changed the order first.
        """
        table = table_of(self._dao)
        result = uow_session(self._dao).execute(
            update(table)
            .where(table.c.id == str(order.id), table.c.status == order.status)
            .values(status=OrderStatus(target_status).value)
        )
        if result.rowcount == 0:
            raise InvalidTransition(
                {"status": [f"Order {order.id} is no longer {order.status}; it was changed concurrently"]}
            )

    # -------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------
    def _orders(self, stmt):
        with dao_session(self._dao) as session:
            order_ids = [row.id for row in session.execute(stmt)]
        return [self.get(order_id) for order_id in order_ids]

    def _criteria(self, user_id=None, status=None, order_type=None, start=None, end=None):
        table = table_of(self._dao)
        criteria = []
        if user_id is not None:
            criteria.append(table.c.user_id == user_id)
        if status is not None:
            criteria.append(table.c.status == OrderStatus(status).value)
        if order_type is not None:
            criteria.append(table.c.order_type == OrderType(order_type).value)
        if start is not None:
            criteria.append(table.c.created_at >= as_utc(start))
        if end is not None:
            criteria.append(table.c.created_at <= as_utc(end))
        return criteria

    def page(self, offset, limit, **filters):
        """``(orders, total)``: newest first, ``limit`` orders from ``offset``."""
        table = table_of(self._dao)
        criteria = self._criteria(**filters)
        with dao_session(self._dao) as session:
            total = session.scalar(select(func.count(table.c.id)).where(*criteria))
        orders = self._orders(
            select(table.c.id)
            .where(*criteria)
            .order_by(table.c.created_at.desc(), table.c.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return orders, total

    def created_or_scheduled_between(self, start, end):
        table = table_of(self._dao)
        return self._orders(
            select(table.c.id)
            .where(
                or_(
                    (table.c.created_at >= start) & (table.c.created_at < end),
                    (table.c.scheduled_for >= start) & (table.c.scheduled_for < end),
                )
            )
            .order_by(table.c.scheduled_for.asc().nulls_last(), table.c.created_at.asc())
        )

    def scheduled_between(self, start, end):
        table = table_of(self._dao)
        return self._orders(
            select(table.c.id)
            .where(
                table.c.order_type == OrderType.SCHEDULED.value,
                table.c.scheduled_for >= start,
                table.c.scheduled_for < end,
                table.c.status != OrderStatus.CANCELLED.value,
            )
            .order_by(table.c.scheduled_for.asc())
        )

    def stats_between(self, start, end):
        """Raw counts and sales for orders created in ``[start, end]``."""
        table = table_of(self._dao)
        in_range = (table.c.created_at >= as_utc(start), table.c.created_at <= as_utc(end))
        with dao_session(self._dao) as session:
            total_orders = session.scalar(select(func.count(table.c.id)).where(*in_range))
            sales = session.scalar(
                select(func.sum(table.c.total)).where(*in_range, table.c.status != OrderStatus.CANCELLED.value)
            )
            by_status = dict(
                session.execute(
                    select(table.c.status, func.count(table.c.id)).where(*in_range).group_by(table.c.status)
                ).all()
            )
            by_type = dict(
                session.execute(
                    select(table.c.order_type, func.count(table.c.id)).where(*in_range).group_by(table.c.order_type)
                ).all()
            )
        return total_orders, sales, by_status, by_type
