"""Product aggregate root with GiftAllocation entity.

The catalogue is a collaborator of the fulfillment engine: the engine reads
prices, stock counters and gift allocations from here, but stock counters are
only ever mutated through the Inventory Ledger.
"""

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text
from protean.utils.globals import current_domain, current_uow
from sqlalchemy import select

from shared.clock import utcnow
from shared.db import dao_session, table_of, uow_session
from shared.domain import orderflow
from shared.errors import NotFound
from shared.money import as_decimal


@orderflow.entity(part_of="Product")
class GiftAllocation:
    """Buying one unit of the product entitles the buyer to ``quantity`` units of ``gift_id``."""

    gift_id: Identifier(required=True)
    quantity: Integer(min_value=1, default=1)


@orderflow.aggregate
class Product:
    """Product aggregate root."""

    name: String(required=True, max_length=150)
    presentation: String(max_length=100, default="")
    description: Text()
    price: Float(required=True, min_value=0.0)
    stock_quantity: Integer(min_value=0, default=0)
    min_stock: Integer(min_value=0, default=0)
    has_gifts: Boolean(default=False)
    is_active: Boolean(default=True)
    is_flagship: Boolean(default=False)
    gifts: HasMany(GiftAllocation)
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def cannot_gift_itself(self):
        if any(str(g.gift_id) == str(self.id) for g in self.gifts):
            raise ValidationError({"gifts": ["A product cannot be its own gift"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        name,
        price,
        presentation="",
        description=None,
        min_stock=0,
        is_active=True,
        is_flagship=False,
    ):
        """New product with no stock; opening stock is recorded through the ledger."""
        now = utcnow()
        return cls(
            name=name,
            presentation=presentation or "",
            description=description,
            price=price,
            stock_quantity=0,
            min_stock=min_stock or 0,
            is_active=is_active,
            is_flagship=is_flagship,
            has_gifts=False,
            created_at=now,
            updated_at=now,
        )

    @property
    def display_name(self):
        return f"{self.name} {self.presentation or ''}".strip()

    @property
    def unit_price(self):
        return as_decimal(self.price)

    def allocation_for(self, gift_id):
        """Return the GiftAllocation for ``gift_id``, or None."""
        return next((g for g in self.gifts if str(g.gift_id) == str(gift_id)), None)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def update_details(self, **changes):
        """Apply the given field changes; ``None`` leaves a field as it is."""
        for field, value in changes.items():
            if value is not None:
                setattr(self, field, value)
        self.updated_at = utcnow()

    def replace_gifts(self, allocations):
        """Replace every gift allocation with ``allocations``, a list of (gift_id, quantity) pairs."""
        for existing in list(self.gifts):
            self.remove_gifts(existing)
        for gift_id, quantity in allocations:
            self.add_gifts(GiftAllocation(gift_id=gift_id, quantity=quantity))
        self.has_gifts = bool(allocations)
        self.updated_at = utcnow()


@orderflow.repository(part_of=Product)
class ProductRepository:
    """Catalogue read path used by the engine."""

    def add(self, product):
        # Stock belongs to the ledger; saving details must not write back a stale counter
        if current_uow:
            table = table_of(self._dao)
            row = (
                uow_session(self._dao)
                .execute(select(table.c.stock_quantity).where(table.c.id == str(product.id)).with_for_update())
                .first()
            )
            if row is not None:
                product.stock_quantity = row.stock_quantity
        return super().add(product)

    def get_product(self, product_id):
        try:
            return self.get(product_id)
        except ObjectNotFoundError:
            raise NotFound({"product_id": [f"Product {product_id} not found"]}) from None

    def find_by_name(self, name, presentation=""):
        """The product with this exact (name, presentation), or None."""
        for product in self._dao.query.filter(name=name).all().items:
            if (product.presentation or "") == (presentation or ""):
                return product
        return None

    def _ids(self, *criteria):
        table = table_of(self._dao)
        stmt = select(table.c.id).where(*criteria).order_by(table.c.name, table.c.presentation)
        with dao_session(self._dao) as session:
            return [row.id for row in session.execute(stmt)]

    def listing(self, include_inactive=False):
        table = table_of(self._dao)
        criteria = [] if include_inactive else [table.c.is_active.is_(True)]
        return [self.get(product_id) for product_id in self._ids(*criteria)]

    def gift_candidates(self):
        """Active products eligible as gift targets (those that bundle no gifts themselves)."""
        table = table_of(self._dao)
        product_ids = self._ids(table.c.is_active.is_(True), table.c.has_gifts.is_(False))
        return [self.get(product_id) for product_id in product_ids]

    def existing(self, product_ids):
        """Products among ``product_ids`` that exist, keyed by id."""
        if not product_ids:
            return {}
        table = table_of(self._dao)
        return {str(product_id): self.get(product_id) for product_id in self._ids(table.c.id.in_(list(product_ids)))}

    def gifting_products(self, gift_id):
        """Display names of the products that allocate ``gift_id`` as a gift."""
        allocations = table_of(current_domain.repository_for(GiftAllocation)._dao)
        products = table_of(self._dao)
        stmt = (
            select(products.c.name, products.c.presentation)
            .join(allocations, allocations.c.product_id == products.c.id)
            .where(allocations.c.gift_id == str(gift_id))
            .order_by(products.c.name, products.c.presentation)
        )
        with dao_session(self._dao) as session:
            return [f"{row.name} {row.presentation or ''}".strip() for row in session.execute(stmt)]
