"""Stock initialization: opening stock of a new product, recorded as a ledger adjustment."""

from inventory.stock import ledger
from inventory.stock.movement import MovementType

INITIAL_STOCK_REASON = "Initial stock"


def initialize_stock(product_id, initial_quantity):
    """Set the opening stock of a freshly created product.

    Runs in the caller's unit of work so the product and its first movement
    commit together. Nothing is recorded for an opening stock of zero.
    """
    if not initial_quantity:
        return None
    return ledger.adjust(product_id, initial_quantity, MovementType.ADJUSTMENT, INITIAL_STOCK_REASON)
