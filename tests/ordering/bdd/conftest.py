"""Shared BDD fixtures and step definitions for the Ordering domain."""

from datetime import UTC, datetime

import pytest
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, then

from catalogue.product.creation import CreateProduct
from catalogue.product.product import Product
from ordering.cart.cart import Cart
from ordering.cart.items import AddToCart
from ordering.order.order import Order
from scheduling.rule.management import SeedDefaultRules


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer_id():
    return 11


@pytest.fixture()
def now():
    """Monday 10:00 in the business timezone."""
    return datetime(2026, 11, 2, 16, 0, tzinfo=UTC)


@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


@pytest.fixture()
def catalogue():
    """Products created by the scenario, keyed by name."""
    return {}


def stock_of(catalogue, name):
    return current_domain.repository_for(Product).get(catalogue[name]).stock_quantity


def cart_lines(customer_id):
    cart = current_domain.repository_for(Cart).for_user(customer_id)
    return {} if cart is None else {str(item.product_id): item.quantity for item in cart.items}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("the default weekly scheduling rules")
def default_rules():
    current_domain.process(SeedDefaultRules(), asynchronous=False)


@given(parsers.cfparse('a product "{name}" priced at {price:f} with {stock:d} in stock'))
def product_in_stock(catalogue, name, price, stock):
    catalogue[name] = current_domain.process(
        CreateProduct(name=name, price=price, stock_quantity=stock),
        asynchronous=False,
    )


@given(parsers.cfparse('the customer has {quantity:d} "{name}" in the cart'))
def cart_line(catalogue, customer_id, name, quantity):
    current_domain.process(
        AddToCart(user_id=customer_id, product_id=catalogue[name], quantity=quantity),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the stock of "{name}" is {stock:d}'))
def stock_is(catalogue, name, stock):
    assert stock_of(catalogue, name) == stock


@then(parsers.cfparse('the request is rejected with "{kind}"'))
def rejected_with(error, kind):
    assert error["exc"] is not None
    assert type(error["exc"]).__name__ == kind


@then("no order is placed")
def no_order_placed():
    assert current_domain.repository_for(Order).page(0, 10)[1] == 0


@then(parsers.cfparse("the cart still holds {count:d} lines"))
def cart_still_holds(customer_id, count):
    assert len(cart_lines(customer_id)) == count
