"""Order cancellation — command and handler.

Restores every item's stock, then moves the order to CANCELLED.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, Text
from protean.utils.globals import current_domain

from ordering.order.order import Order, OrderStatus
from ordering.order.status import apply_transition
from shared.domain import orderflow
from shared.errors import InvalidTransition

logger = structlog.get_logger(__name__)


@orderflow.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    cancelled_by = Integer()
    reason = Text()


@orderflow.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = current_domain.repository_for(Order).get_order(command.order_id)
        if not order.can_be_cancelled:
            raise InvalidTransition(
                {"status": [f"Only pending or in-preparation orders can be cancelled (current: {order.status})"]}
            )

        apply_transition(order, OrderStatus.CANCELLED, command.cancelled_by, command.reason or "Order cancelled")

        logger.info("Order cancelled", order_id=str(order.id), cancelled_by=command.cancelled_by, reason=command.reason)
        return str(order.id)
