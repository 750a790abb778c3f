"""Product detail updates — command and handler.

Stock is not updatable here; it belongs to the Inventory Ledger. Fields left
as ``None`` keep their current value.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from catalogue.product.creation import ensure_unique_name, parse_gifts, validate_gift_targets
from catalogue.product.product import Product
from shared.domain import orderflow


@orderflow.command(part_of="Product")
class UpdateProduct:
    product_id: Identifier(required=True)
    name: String(max_length=150)
    presentation: String(max_length=100)
    description: Text()
    price: Float(min_value=0.0)
    min_stock: Integer(min_value=0)
    is_active: Boolean()
    is_flagship: Boolean()
    gifts: Text()  # JSON array; absent leaves allocations untouched, "[]" clears them


def ensure_can_bundle_gifts(product):
    """A product that is itself a gift of others cannot carry gifts."""
    gifting = current_domain.repository_for(Product).gifting_products(product.id)
    if gifting:
        raise ValidationError(
            {"gifts": [f"{product.display_name} is a gift of other products and cannot have gifts: {', '.join(gifting)}"]}
        )


@orderflow.command_handler(part_of=Product)
class UpdateProductHandler:
    @handle(UpdateProduct)
    def update_product(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get_product(command.product_id)

        if command.name is not None or command.presentation is not None:
            name = command.name if command.name is not None else product.name
            presentation = command.presentation if command.presentation is not None else product.presentation
            ensure_unique_name(name, presentation or "", product_id=product.id)

        product.update_details(
            name=command.name,
            presentation=command.presentation,
            description=command.description,
            price=command.price,
            min_stock=command.min_stock,
            is_active=command.is_active,
            is_flagship=command.is_flagship,
        )

        allocations = parse_gifts(command.gifts)
        if allocations is not None:
            validate_gift_targets(allocations, product_id=product.id)
            if allocations:
                ensure_can_bundle_gifts(product)
            product.replace_gifts(allocations)

        repo.add(product)
        return str(product.id)
