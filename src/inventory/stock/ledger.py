"""Inventory Ledger: the only writer of product stock counters.

Stock Model:
    stock_quantity: units on hand, never negative
    min_stock:      reorder threshold (informational; only logged)

Every mutation goes through ``adjust``, which updates the counter and appends
an InventoryMovement in the active unit of work. OUT adjustments are a single
conditional UPDATE on the provider's session, so two concurrent decrements
cannot both pass a stock check and drive the counter below zero.
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain
from sqlalchemy import select, update

from catalogue.product.product import Product
from inventory.stock.movement import InventoryMovement, MovementType
from shared.clock import utcnow
from shared.db import dao_session, table_of, uow_session
from shared.errors import InsufficientStock, NotFound

logger = structlog.get_logger(__name__)


def _products():
    dao = current_domain.repository_for(Product)._dao
    return dao, table_of(dao)


def _stock_of(product_id):
    dao, table = _products()
    with dao_session(dao) as session:
        return session.scalar(select(table.c.stock_quantity).where(table.c.id == str(product_id)))


def check_availability(product_id, quantity):
    """True iff the product currently holds at least ``quantity`` units."""
    stock = _stock_of(product_id)
    return stock is not None and stock >= quantity


def current_stock(product_id):
    stock = _stock_of(product_id)
    if stock is None:
        raise NotFound({"product_id": [f"Product {product_id} not found"]})
    return stock


def adjust(product_id, quantity, direction, reason=None):
    """Apply a stock movement and return the new stock level.

    Must run inside a unit of work; the counter change and its movement
    commit or roll back with it.

    Args:
        product_id: Product whose counter changes.
        quantity: Units moved (OUT/IN) or the absolute level to set (ADJUSTMENT).
        direction: A MovementType or its string value.
        reason: Free-text audit reason, e.g. ``"Order #<id>"``.

    Raises:
        InsufficientStock: the resulting stock would be negative. Stock is left unchanged.
        NotFound: the product does not exist.
    """
    direction = MovementType(direction.value if isinstance(direction, MovementType) else direction)
    dao, table = _products()
    key = str(product_id)

    if direction == MovementType.ADJUSTMENT:
        if quantity < 0:
            raise InsufficientStock({"quantity": [f"Stock cannot be set to a negative level: {quantity}"]})
        stmt = update(table).where(table.c.id == key).values(stock_quantity=quantity)
        signed_quantity = quantity
    else:
        if quantity < 0:
            raise ValidationError({"quantity": ["Quantity must not be negative"]})
        if direction == MovementType.OUT:
            stmt = (
                update(table)
                .where(table.c.id == key, table.c.stock_quantity >= quantity)
                .values(stock_quantity=table.c.stock_quantity - quantity)
            )
            signed_quantity = -quantity
        else:
            stmt = update(table).where(table.c.id == key).values(stock_quantity=table.c.stock_quantity + quantity)
            signed_quantity = quantity

    session = uow_session(dao)
    row = session.execute(stmt.returning(table.c.stock_quantity, table.c.min_stock)).first()
    if row is None:
        available = current_stock(product_id)  # raises NotFound for unknown products
        raise InsufficientStock(
            {"quantity": [f"Insufficient stock for product {product_id}: {available} available, {quantity} requested"]}
        )
    new_stock, min_stock = row.stock_quantity, row.min_stock

    # Loaded product rows in this session no longer reflect the counter
    for instance in list(session.identity_map.values()):
        if isinstance(instance, dao.database_model_cls) and str(instance.id) == key:
            session.expire(instance)

    movements = current_domain.repository_for(InventoryMovement)
    movements.add(
        InventoryMovement(
            product_id=key,
            movement_type=direction.value,
            quantity=signed_quantity,
            stock_after=new_stock,
            reason=reason,
            sequence=movements.next_sequence(session, key),
            created_at=utcnow(),
        )
    )

    logger.info(
        "Stock adjusted",
        product_id=key,
        direction=direction.value,
        quantity=quantity,
        new_stock=new_stock,
        reason=reason,
    )
    if direction != MovementType.IN and new_stock <= min_stock:
        logger.warning(
            "Low stock detected",
            product_id=key,
            current_stock=new_stock,
            min_stock=min_stock,
        )
    return new_stock


def movements_for(product_id, limit=None):
    """Movements for a product, newest first."""
    return current_domain.repository_for(InventoryMovement).for_product(product_id, limit)


def low_stock_products():
    """Active products at or below their reorder threshold."""
    dao, table = _products()
    stmt = (
        select(table.c.id)
        .where(table.c.is_active.is_(True), table.c.stock_quantity <= table.c.min_stock)
        .order_by(table.c.stock_quantity, table.c.name)
    )
    with dao_session(dao) as session:
        product_ids = [row.id for row in session.execute(stmt)]
    repo = current_domain.repository_for(Product)
    return [repo.get(product_id) for product_id in product_ids]
