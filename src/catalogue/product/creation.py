"""Product creation — command and handler."""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Integer, String, Text
from protean.utils.globals import current_domain

from catalogue.product.product import Product
from inventory.stock.initialization import initialize_stock
from shared.domain import orderflow
from shared.errors import Conflict

logger = structlog.get_logger(__name__)


@orderflow.command(part_of="Product")
class CreateProduct:
    name: String(required=True, max_length=150)
    presentation: String(max_length=100, default="")
    description: Text()
    price: Float(required=True, min_value=0.0)
    stock_quantity: Integer(min_value=0, default=0)
    min_stock: Integer(min_value=0, default=0)
    is_active: Boolean(default=True)
    is_flagship: Boolean(default=False)
    gifts: Text()  # JSON array of {"gift_id", "quantity"}


def parse_gifts(payload):
    """(gift_id, quantity) pairs from a JSON gift list; ``None`` stays ``None``."""
    if payload is None:
        return None
    entries = json.loads(payload) if isinstance(payload, str) else payload
    allocations = []
    for entry in entries:
        quantity = int(entry.get("quantity") or 1)
        if quantity < 1:
            raise ValidationError({"gifts": ["Gift quantity must be at least 1"]})
        allocations.append((str(entry["gift_id"]), quantity))
    return allocations


def ensure_unique_name(name, presentation, product_id=None):
    """No other product may share this (name, presentation) pair."""
    duplicate = current_domain.repository_for(Product).find_by_name(name, presentation)
    if duplicate is not None and str(duplicate.id) != str(product_id):
        raise Conflict({"name": [f'A product named "{name}" with presentation "{presentation}" already exists']})


def validate_gift_targets(allocations, product_id=None):
    """Gift targets must exist, must not bundle gifts of their own, and cannot be the product itself."""
    if not allocations:
        return

    gift_ids = [gift_id for gift_id, _ in allocations]
    if len(set(gift_ids)) != len(gift_ids):
        raise ValidationError({"gifts": ["A gift product can only be allocated once"]})
    if product_id is not None and str(product_id) in gift_ids:
        raise ValidationError({"gifts": ["A product cannot be its own gift"]})

    targets = current_domain.repository_for(Product).existing(gift_ids)
    if len(targets) != len(gift_ids):
        raise ValidationError({"gifts": ["One or more gift products do not exist"]})

    bundles = sorted(t.display_name for t in targets.values() if t.has_gifts)
    if bundles:
        raise ValidationError({"gifts": [f"Products with gifts cannot be gifts themselves: {', '.join(bundles)}"]})


@orderflow.command_handler(part_of=Product)
class CreateProductHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        presentation = command.presentation or ""
        ensure_unique_name(command.name, presentation)

        allocations = parse_gifts(command.gifts) or []
        validate_gift_targets(allocations)

        product = Product.create(
            name=command.name,
            price=command.price,
            presentation=presentation,
            description=command.description,
            min_stock=command.min_stock,
            is_active=command.is_active,
            is_flagship=command.is_flagship,
        )
        if allocations:
            product.replace_gifts(allocations)
        current_domain.repository_for(Product).add(product)

        initialize_stock(product.id, command.stock_quantity or 0)

        logger.info(
            "Product created",
            product_id=str(product.id),
            name=product.display_name,
            gift_count=len(allocations),
        )
        return str(product.id)
