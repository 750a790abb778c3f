"""InventoryMovement: append-only audit trail of stock mutations.

Every change to ``Product.stock_quantity`` is paired with exactly one movement,
written in the same unit of work. Quantities are signed: OUT rows are negative,
IN rows positive, and ADJUSTMENT rows carry the absolute value that was set.
"""

from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String
from sqlalchemy import func, select

from shared.db import dao_session, table_of
from shared.domain import orderflow


class MovementType(Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


@orderflow.aggregate
class InventoryMovement:
    product_id = Identifier(required=True)
    movement_type = String(max_length=20, choices=MovementType, required=True)
    quantity = Integer(required=True)
    stock_after = Integer(required=True, min_value=0)
    reason = String(max_length=255)
    sequence = Integer(required=True, min_value=1)  # Per-product order of application
    created_at = DateTime()


@orderflow.repository(part_of=InventoryMovement)
class InventoryMovementRepository:
    def next_sequence(self, session, product_id):
        """Next per-product sequence; callers hold the product row through their stock UPDATE."""
        table = table_of(self._dao)
        current = session.scalar(select(func.max(table.c.sequence)).where(table.c.product_id == str(product_id)))
        return (current or 0) + 1

    def for_product(self, product_id, limit=None):
        """Movements for a product, newest first."""
        table = table_of(self._dao)
        stmt = select(table.c.id).where(table.c.product_id == str(product_id)).order_by(table.c.sequence.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        with dao_session(self._dao) as session:
            movement_ids = [row.id for row in session.execute(stmt)]
        return [self.get(movement_id) for movement_id in movement_ids]
