"""Manual stock adjustment — command and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String

from inventory.stock import ledger
from inventory.stock.movement import InventoryMovement, MovementType
from shared.domain import orderflow


@orderflow.command(part_of="InventoryMovement")
class AdjustStock:
    """Receive (IN), remove (OUT) or set (ADJUSTMENT) stock for a product."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=0)
    movement_type = String(required=True, max_length=20, choices=MovementType)
    reason = String(max_length=255)


@orderflow.command_handler(part_of=InventoryMovement)
class AdjustStockHandler:
    @handle(AdjustStock)
    def adjust_stock(self, command):
        if not (command.reason or "").strip():
            raise ValidationError({"reason": ["Reason is required for stock adjustments"]})
        return ledger.adjust(
            command.product_id,
            command.quantity,
            command.movement_type,
            command.reason,
        )
