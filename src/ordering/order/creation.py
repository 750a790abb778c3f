"""Order placement: converts the user's cart into an order in one unit of work.

Steps, all inside the command's unit of work:
    1. Lock and re-validate the cart; re-run the scheduling evaluator for
       SCHEDULED orders against the current cart contents.
    2. Snapshot totals (subtotal, tax at the configured rate, total).
    3. Add the order as PENDING with one item per cart line, copying
       unit prices and gift selections verbatim.
    4. Decrement stock through the Inventory Ledger.
    5. Record the initial status history entry and empty the cart.

Any error raised along the way rolls the whole unit of work back.
"""

from datetime import UTC

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String, Text
from protean.utils.globals import current_domain

from inventory.stock import ledger
from inventory.stock.movement import MovementType
from ordering.cart.cart import Cart
from ordering.cart.items import scheduled_items_for_cart, validate_for_checkout
from ordering.order.order import DeliveryType, Order, OrderStatus, OrderType
from ordering.pricing import compute_totals
from scheduling.rule.evaluator import to_local
from scheduling.rule.validation import validate_scheduling
from shared.config import get_settings
from shared.domain import orderflow
from shared.errors import SchedulingRejected

logger = structlog.get_logger(__name__)


@orderflow.command(part_of="Order")
class PlaceOrder:
    user_id = Integer(required=True)
    order_type = String(required=True, max_length=20, choices=OrderType)
    delivery_type = String(required=True, max_length=20, choices=DeliveryType)
    scheduled_for = DateTime()
    address_id = Integer()
    notes = Text()
    payment_method = String(max_length=50)
    placed_at = DateTime()  # Evaluation time for scheduling rules; defaults to now


def _check_schedule(command, cart, products, subtotal, settings):
    if command.order_type == OrderType.IMMEDIATE.value:
        if command.scheduled_for is not None:
            raise ValidationError({"scheduled_for": ["Only scheduled orders take a delivery time"]})
        return None

    if command.scheduled_for is None:
        raise ValidationError({"scheduled_for": ["A delivery time is required for scheduled orders"]})

    decision = validate_scheduling(
        command.scheduled_for,
        scheduled_items_for_cart(cart, products),
        total=subtotal,
        settings=settings,
        now=command.placed_at,
    )
    if not decision.allowed:
        logger.warning(
            "Checkout rejected",
            user_id=command.user_id,
            scheduled_for=command.scheduled_for.isoformat(),
            reason=decision.reason,
        )
        raise SchedulingRejected({"scheduled_for": [decision.reason]})

    # Persist in UTC; naive input is business-local time
    return to_local(command.scheduled_for, settings.business_timezone).astimezone(UTC)


@orderflow.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        settings = get_settings()

        cart = current_domain.repository_for(Cart).lock_for_user(command.user_id)
        products = validate_for_checkout(cart)
        prices = {product_id: product.unit_price for product_id, product in products.items()}
        subtotal = cart.subtotal(prices)
        scheduled_for = _check_schedule(command, cart, products, subtotal, settings)

        order = Order.create(
            user_id=command.user_id,
            order_type=command.order_type,
            delivery_type=command.delivery_type,
            totals=compute_totals(subtotal, settings.tax_rate),
            scheduled_for=scheduled_for,
            address_id=command.address_id,
            notes=command.notes,
            payment_method=command.payment_method,
        )
        for cart_item in cart.lines:
            order.add_item(
                product_id=cart_item.product_id,
                quantity=cart_item.quantity,
                unit_price=prices[str(cart_item.product_id)],
                gift_selections=list(cart_item.gifts().items()),
            )
        order.record_status(OrderStatus.PENDING, command.user_id, "Order created")
        current_domain.repository_for(Order).add(order)

        for item in order.lines:
            ledger.adjust(
                item.product_id,
                item.quantity,
                MovementType.OUT,
                f"Order #{order.id}",
            )

        cart.clear()
        current_domain.repository_for(Cart).add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            user_id=order.user_id,
            type=order.order_type,
            item_count=len(order.items),
            total=str(order.total),
        )
        return str(order.id)
