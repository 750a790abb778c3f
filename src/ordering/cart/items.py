"""Cart item management — commands and handlers, plus checkout validation."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, Text
from protean.utils.globals import current_domain

from catalogue.product.creation import parse_gifts
from catalogue.product.product import Product
from inventory.stock.ledger import check_availability
from ordering.cart.cart import Cart, per_unit_gifts
from ordering.pricing import compute_totals
from scheduling.rule.evaluator import count_flagship_items
from scheduling.rule.validation import scheduled_item
from shared.config import get_settings
from shared.domain import orderflow
from shared.errors import InsufficientStock, NotFound

logger = structlog.get_logger(__name__)


@orderflow.command(part_of="Cart")
class OpenCart:
    user_id = Integer(required=True)


@orderflow.command(part_of="Cart")
class AddToCart:
    user_id = Integer(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(min_value=1, default=1)
    selected_gifts = Text()  # JSON array of {"gift_id", "quantity"} per unit


@orderflow.command(part_of="Cart")
class UpdateCartItem:
    user_id = Integer(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@orderflow.command(part_of="Cart")
class RemoveFromCart:
    user_id = Integer(required=True)
    item_id = Identifier(required=True)


@orderflow.command(part_of="Cart")
class ClearCart:
    user_id = Integer(required=True)


def load_cart(user_id):
    """The user's cart, or an unsaved empty one."""
    return current_domain.repository_for(Cart).for_user(user_id) or Cart.create(user_id)


def _open_cart(user_id):
    repo = current_domain.repository_for(Cart)
    cart = repo.for_user(user_id)
    if cart is None:
        cart = Cart.create(user_id)
        repo.add(cart)
    return cart


def cart_products(cart):
    """Catalogue products for every cart line, keyed by product id."""
    return current_domain.repository_for(Product).existing([str(item.product_id) for item in cart.items])


def _ensure_available(product, quantity):
    if not check_availability(product.id, quantity):
        raise InsufficientStock({"quantity": [f"Insufficient stock for {product.display_name}: {quantity} requested"]})


@orderflow.command_handler(part_of=Cart)
class CartItemsHandler:
    @handle(OpenCart)
    def open_cart(self, command):
        return str(_open_cart(command.user_id).id)

    @handle(AddToCart)
    def add_to_cart(self, command):
        product = current_domain.repository_for(Product).get_product(command.product_id)
        if not product.is_active:
            raise ValidationError({"product_id": [f"{product.display_name} is not available"]})

        gifts = per_unit_gifts(product, parse_gifts(command.selected_gifts) or [])

        cart = _open_cart(command.user_id)
        quantity = command.quantity or 1
        existing = cart.item_for(product.id)
        requested = quantity + (existing.quantity if existing else 0)
        _ensure_available(product, requested)

        item = cart.add_item(product, quantity, gifts)
        current_domain.repository_for(Cart).add(cart)

        logger.info(
            "Item added to cart",
            user_id=command.user_id,
            product_id=str(product.id),
            quantity=quantity,
            line_quantity=item.quantity,
        )
        return str(item.id)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        cart = _open_cart(command.user_id)
        item = cart.get_item(command.item_id)
        product = current_domain.repository_for(Product).get_product(item.product_id)
        _ensure_available(product, command.quantity)

        cart.update_item_quantity(command.item_id, command.quantity)
        current_domain.repository_for(Cart).add(cart)
        return str(item.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = _open_cart(command.user_id)
        cart.remove_item(command.item_id)
        current_domain.repository_for(Cart).add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.for_user(command.user_id)
        if cart is not None:
            cart.clear()
            repo.add(cart)


def scheduled_items_for_cart(cart, products=None):
    products = cart_products(cart) if products is None else products
    return [scheduled_item(products[str(item.product_id)], item.quantity) for item in cart.lines]


def cart_summary(cart, settings=None):
    settings = settings or get_settings()
    products = cart_products(cart)
    prices = {product_id: product.unit_price for product_id, product in products.items()}
    totals = compute_totals(cart.subtotal(prices), settings.tax_rate)
    return {
        "item_count": cart.item_count,
        "subtotal": totals.subtotal,
        "tax": totals.tax,
        "total": totals.total,
        "flagship_count": count_flagship_items(scheduled_items_for_cart(cart, products), settings.flagship_token),
    }


def validate_for_checkout(cart):
    """Raise unless the cart is non-empty and every line is still covered by stock.

    Returns the products of the cart lines, keyed by id.
    """
    if cart is None or cart.is_empty:
        raise ValidationError({"cart": ["Cart is empty"]})

    products = cart_products(cart)
    for item in cart.lines:
        product = products.get(str(item.product_id))
        if product is None:
            raise NotFound({"product_id": [f"Product {item.product_id} not found"]})
        if not check_availability(item.product_id, item.quantity):
            raise InsufficientStock({"cart": [f"Insufficient stock for {product.display_name}"]})
    return products
