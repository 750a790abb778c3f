"""Order status progression — command and handler.

Every transition first claims the stored status with a conditional UPDATE, so
of two units of work that loaded the same order only one can move it; the
loser fails with InvalidTransition before touching stock.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from inventory.stock import ledger
from inventory.stock.movement import MovementType
from ordering.order.order import Order, OrderStatus
from shared.domain import orderflow

logger = structlog.get_logger(__name__)


@orderflow.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=30, choices=OrderStatus)
    changed_by = Integer()
    notes = Text()


def restore_stock(order):
    """Return each item's quantity to stock with an IN movement."""
    for item in order.lines:
        ledger.adjust(
            item.product_id,
            item.quantity,
            MovementType.IN,
            f"Cancellation of order #{order.id}",
        )


def apply_transition(order, target_status, actor_id, notes=None):
    """Move ``order`` to ``target_status`` inside the active unit of work.

    Cancelling returns every item's stock.
    """
    target_status = OrderStatus(target_status)
    previous = order.status

    order.assert_can_transition(target_status)
    repo = current_domain.repository_for(Order)
    repo.claim_status(order, target_status)
    if target_status == OrderStatus.CANCELLED:
        restore_stock(order)
    order.transition_to(target_status, actor_id, notes)
    repo.add(order)

    logger.info(
        "Order status changed",
        order_id=str(order.id),
        from_status=previous,
        to_status=order.status,
        changed_by=actor_id,
    )
    return order


@orderflow.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        order = current_domain.repository_for(Order).get_order(command.order_id)
        apply_transition(order, command.status, command.changed_by, command.notes)
        return str(order.id)
