"""Tests for Cart line merging and gift bookkeeping."""

from decimal import Decimal

import pytest
from protean.exceptions import ValidationError

from catalogue.product.product import GiftAllocation, Product
from ordering.cart.cart import Cart, CartItem, per_unit_gifts
from shared.errors import NotFound


@pytest.fixture()
def combo():
    return Product(
        id="combo",
        name="Combo familiar",
        presentation="",
        price=200.0,
        stock_quantity=20,
        has_gifts=True,
        gifts=[GiftAllocation(gift_id="tortillas", quantity=2), GiftAllocation(gift_id="salsa", quantity=1)],
    )


@pytest.fixture()
def plain():
    return Product(id="salsa", name="Salsa", presentation="", price=15.5, stock_quantity=20)


def _prices(*products):
    return {str(product.id): product.unit_price for product in products}


class TestPerUnitGifts:
    def test_valid_selection(self, combo):
        assert per_unit_gifts(combo, [("tortillas", 2), ("salsa", 1)]) == {"tortillas": 2, "salsa": 1}

    def test_gift_not_allocated(self, combo):
        with pytest.raises(ValidationError) as exc:
            per_unit_gifts(combo, [("rice", 1)])
        assert "not available" in exc.value.messages["selected_gifts"][0]

    def test_quantity_above_allocation(self, combo):
        with pytest.raises(ValidationError) as exc:
            per_unit_gifts(combo, [("tortillas", 3)])
        assert "maximum: 2" in exc.value.messages["selected_gifts"][0]

    def test_product_without_gifts(self, plain):
        with pytest.raises(ValidationError):
            per_unit_gifts(plain, [("tortillas", 1)])

    def test_same_gift_twice(self, combo):
        with pytest.raises(ValidationError):
            per_unit_gifts(combo, [("tortillas", 1), ("tortillas", 1)])


class TestAddItem:
    def test_new_line_stores_gifts_times_quantity(self, combo):
        cart = Cart.create(user_id=1)

        item = cart.add_item(combo, 3, {"tortillas": 2, "salsa": 1})

        assert item.quantity == 3
        assert item.gifts() == {"tortillas": 6, "salsa": 3}

    def test_same_product_merges_into_one_line(self, plain):
        cart = Cart.create(user_id=1)

        cart.add_item(plain, 1)
        cart.add_item(plain, 2)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3

    def test_merging_with_new_selection_replaces_it(self, combo):
        cart = Cart.create(user_id=1)
        cart.add_item(combo, 1, {"tortillas": 2, "salsa": 1})

        item = cart.add_item(combo, 1, {"tortillas": 1})

        assert item.quantity == 2
        assert item.gifts() == {"tortillas": 2}

    def test_merging_without_selection_rescales_existing(self, combo):
        cart = Cart.create(user_id=1)
        cart.add_item(combo, 2, {"tortillas": 2})

        item = cart.add_item(combo, 3)

        assert item.quantity == 5
        assert item.gifts() == {"tortillas": 10}

    def test_lines_keep_insertion_order(self, combo, plain):
        cart = Cart.create(user_id=1)
        cart.add_item(plain, 1)
        cart.add_item(combo, 1)
        cart.add_item(plain, 1)

        assert [str(item.product_id) for item in cart.lines] == ["salsa", "combo"]


class TestRescale:
    def test_rescale_keeps_per_unit_selection(self):
        item = CartItem(product_id="combo", quantity=3)
        item.set_gifts({"tortillas": 6})

        item.rescale(5)

        assert item.quantity == 5
        assert item.gifts() == {"tortillas": 10}

    def test_rescale_down(self):
        item = CartItem(product_id="combo", quantity=4)
        item.set_gifts({"tortillas": 4})

        item.rescale(1)

        assert item.gifts() == {"tortillas": 1}


class TestTotals:
    def test_subtotal_and_count(self, combo, plain):
        cart = Cart.create(user_id=1)
        cart.add_item(combo, 1)
        cart.add_item(plain, 2)

        assert cart.item_count == 3
        assert cart.subtotal(_prices(combo, plain)) == Decimal("231.00")
        assert not cart.is_empty

    def test_clear(self, plain):
        cart = Cart.create(user_id=1)
        cart.add_item(plain, 2)

        cart.clear()

        assert cart.is_empty
        assert cart.subtotal(_prices(plain)) == Decimal("0")

    def test_unknown_item(self):
        with pytest.raises(NotFound):
            Cart.create(user_id=1).get_item("missing")
